#!/usr/bin/env python3
"""
出力JSONの整合性チェック

各年度の集計結果について:
1. 府省庁ごとの Top10 + その他 が府省庁の事業予算合計と一致するか
2. その他・支出先不明の金額が負になっていないか
3. サンキー図の府省庁リンク合計が年度予算合計と一致するか
を確認します。

使用方法:
    python data_quality/check_rollups.py
    python data_quality/check_rollups.py --output-dir public/data
"""
import argparse
import json
import sys
from pathlib import Path
from typing import List

# プロジェクトルートをパスに追加
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from config import AVAILABLE_YEARS, OUTPUT_DIR


def check_year(year_dir: Path) -> List[str]:
    """1年度分の出力をチェックし、問題点のリストを返す"""
    problems = []

    sankey = json.loads((year_dir / 'sankey.json').read_text(encoding='utf-8'))
    ministries = json.loads((year_dir / 'ministries.json').read_text(encoding='utf-8'))
    ministry_projects = json.loads((year_dir / 'ministry-projects.json').read_text(encoding='utf-8'))
    project_expenditures = json.loads(
        (year_dir / 'project-expenditures.json').read_text(encoding='utf-8')
    )

    root = next((node for node in sankey['nodes'] if node['type'] == 'total'), None)
    link_total = sum(link['value'] for link in sankey['links'])
    if root is None:
        problems.append("sankey.json: total node missing")
    elif root['metadata']['budget'] != link_total:
        problems.append(
            f"sankey.json: total {root['metadata']['budget']:,} != links {link_total:,}"
        )

    ministry_budgets = {ministry['name']: ministry['budget'] for ministry in ministries}
    for name, rollup in ministry_projects.items():
        if rollup['othersTotal'] < 0:
            problems.append(f"{name}: othersTotal is negative")
        rollup_total = sum(project['budget'] for project in rollup['top10']) + rollup['othersTotal']
        if rollup_total != ministry_budgets.get(name, 0):
            problems.append(
                f"{name}: top10 + others {rollup_total:,} != ministry budget "
                f"{ministry_budgets.get(name, 0):,}"
            )

    for project_id, rollup in project_expenditures.items():
        if rollup['unknownAmount'] < 0 or rollup['othersTotal'] < 0:
            problems.append(f"project {project_id}: negative others/unknown")
        listed = sum(item['amount'] for item in rollup['top20Expenditures']) + rollup['othersTotal']
        if listed != rollup['totalExpenditureAmount']:
            problems.append(
                f"project {project_id}: top20 + others {listed:,} != "
                f"total {rollup['totalExpenditureAmount']:,}"
            )

    return problems


def main():
    parser = argparse.ArgumentParser(description="Check preprocessed JSON rollups")
    parser.add_argument("--output-dir", type=Path, default=OUTPUT_DIR)
    args = parser.parse_args()

    print("=" * 80)
    print("集計結果の整合性チェック")
    print("=" * 80)

    total_problems = 0
    for year in AVAILABLE_YEARS:
        year_dir = args.output_dir / f"year_{year}"
        if not (year_dir / 'sankey.json').exists():
            print(f"【{year}年】 未生成")
            continue

        problems = check_year(year_dir)
        total_problems += len(problems)
        status = "✓" if not problems else "✗"
        print(f"【{year}年】 {status} {len(problems)}件")
        for problem in problems:
            print(f"    ⚠️ {problem}")

    print("=" * 80)
    sys.exit(1 if total_problems else 0)


if __name__ == "__main__":
    main()
