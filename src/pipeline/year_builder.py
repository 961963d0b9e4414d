"""
年度別データ構築

1年度分のCSVを読み込み、集計してJSONファイルとして保存する
"""
import logging
from pathlib import Path
from typing import Any, Dict, Tuple

import pandas as pd

from config import BLOCK_CONNECTION, BUDGET_SUMMARY, EXPENDITURE
from src.pipeline.aggregator import (
    build_block_sankeys,
    build_ministry_projects,
    build_ministry_sankey,
    build_project_expenditures,
    build_project_sankey,
    summarize_ministries,
    top_project_ids,
)
from src.pipeline.emitter import write_artifacts
from src.pipeline.records import (
    build_budget_frame,
    build_connection_frame,
    build_expenditure_frame,
)
from src.pipeline.sources import load_year_sources
from src.pipeline.statistics import calculate_statistics

logger = logging.getLogger(__name__)


def build_year_artifacts(
    year: int,
    budget: pd.DataFrame,
    expenditures: pd.DataFrame,
    connections: pd.DataFrame,
) -> Dict[str, Tuple[Any, bool]]:
    """
    1年度分の出力データを構築

    Args:
        year: 事業年度
        budget: 予算レコード
        expenditures: 支出先レコード
        connections: 支出ブロックのつながり（存在しない年度は空）

    Returns:
        ファイル名 → (出力データ, exclude_none)
    """
    ministries = summarize_ministries(budget, year)
    ministry_projects = build_ministry_projects(budget, year, ministries)
    project_expenditures = build_project_expenditures(expenditures, year, ministry_projects)

    artifacts = {
        'sankey.json': (build_ministry_sankey(ministries, year), True),
        'statistics.json': (calculate_statistics(budget, year), False),
        'ministries.json': (ministries, False),
        'ministry-projects.json': (ministry_projects, False),
        'project-expenditures.json': (project_expenditures, False),
        'project-sankeys.json': (
            {project_id: build_project_sankey(rollup) for project_id, rollup in project_expenditures.items()},
            True,
        ),
    }

    block_sankeys = build_block_sankeys(
        connections, expenditures, year, top_project_ids(ministry_projects)
    )
    if block_sankeys:
        artifacts['block-sankeys.json'] = (block_sankeys, True)

    return artifacts


def process_year_data(year: int, data_dir: Path, output_dir: Path) -> int:
    """
    年度データを処理してJSONファイルを出力

    Args:
        year: 事業年度
        data_dir: データディレクトリ（year_YYYY を含む）
        output_dir: 出力ディレクトリ

    Returns:
        出力したファイル数

    Raises:
        SourceDataError: 必須CSVの読み込みに失敗した場合
        ArtifactWriteError: JSONの書き込みに失敗した場合
    """
    logger.info(f"Processing year {year}...")

    sources = load_year_sources(data_dir, year, [BUDGET_SUMMARY, EXPENDITURE, BLOCK_CONNECTION])

    budget = build_budget_frame(sources[BUDGET_SUMMARY], year)
    expenditures = build_expenditure_frame(sources[EXPENDITURE], year)
    connections = build_connection_frame(sources[BLOCK_CONNECTION])

    logger.info(f"  - Budget records: {len(budget)}")
    logger.info(f"  - Expenditure records: {len(expenditures)}")
    logger.info(f"  - Connection records: {len(connections)}")

    artifacts = build_year_artifacts(year, budget, expenditures, connections)

    year_output_dir = output_dir / f"year_{year}"
    write_artifacts({year_output_dir / name: payload for name, payload in artifacts.items()})

    logger.info(f"  ✓ Saved preprocessed data for year {year}")
    return len(artifacts)
