"""
年度横断の事業統合モジュール

予算事業IDは年度ごとに振り直されるため、事業名をキーとして全年度のデータを統合する
"""
import hashlib
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pandas as pd
from tqdm import tqdm

from config import (
    END_YEAR_RANGE,
    PROJECT_KEY_LENGTH,
    START_YEAR_RANGE,
    TOP_RECIPIENTS_PER_REPORT,
)
from src.models.schema import (
    ExpenditureTimeSeries,
    ProjectIndexEntry,
    ProjectTimeSeries,
    YearlyProjectData,
)
from src.pipeline.aggregator import filter_budget_year

logger = logging.getLogger(__name__)


def make_project_key(project_name: str) -> str:
    """
    事業名からURLセーフなキーを生成

    事業名が変わらない限り同じキーになる（SHA-256の先頭16桁）
    """
    digest = hashlib.sha256(project_name.encode('utf-8')).hexdigest()
    return digest[:PROJECT_KEY_LENGTH]


def _has_value(value) -> bool:
    return value is not None and not pd.isna(value)


def merge_yearly_record(
    yearly_data: Dict[int, YearlyProjectData],
    year: int,
    project_id: Optional[int],
    budget: int,
    execution: int,
    execution_rate: Optional[float],
) -> None:
    """
    同じ事業・年度の行を統合

    - 予算・執行額: 最初に得られた0以外の値を採用（0で既存値を上書きしない）
    - 執行率: 値がある行が来るたびに上書き

    Args:
        yearly_data: 年度 → YearlyProjectData（更新される）
        year: 年度
        project_id: その年度の予算事業ID
        budget: 当初予算（円、データなしは0）
        execution: 執行額（円、データなしは0）
        execution_rate: 執行率（データなしはNone）
    """
    rate = float(execution_rate) if _has_value(execution_rate) else None

    entry = yearly_data.get(year)
    if entry is None:
        yearly_data[year] = YearlyProjectData(
            project_id=project_id,
            budget=budget,
            execution=execution,
            execution_rate=rate,
        )
        return

    if entry.project_id is None and project_id is not None:
        entry.project_id = project_id
    if entry.budget == 0 and budget > 0:
        entry.budget = budget
    if entry.execution == 0 and execution > 0:
        entry.execution = execution
    if rate is not None:
        entry.execution_rate = rate


@dataclass
class _ProjectAccumulator:
    name: str
    ministry: Optional[str] = None
    yearly_data: Dict[int, YearlyProjectData] = field(default_factory=dict)


def collect_yearly_data(budget_by_year: Dict[int, pd.DataFrame]) -> Dict[str, _ProjectAccumulator]:
    """
    全年度の予算レコードを事業名ごとに集約

    府省庁は最も新しい年度の値を採用する

    Args:
        budget_by_year: 年度 → 予算レコード

    Returns:
        事業名 → 集約結果（初出順）
    """
    projects: Dict[str, _ProjectAccumulator] = {}

    for year in tqdm(sorted(budget_by_year), desc="Collecting budgets", leave=False):
        rows = filter_budget_year(budget_by_year[year], year)
        rows = rows[rows['project_name'].notna()]

        for row in rows.itertuples(index=False):
            project = projects.get(row.project_name)
            if project is None:
                project = projects[row.project_name] = _ProjectAccumulator(name=row.project_name)
            if row.ministry:
                project.ministry = row.ministry

            merge_yearly_record(
                project.yearly_data,
                year,
                int(row.project_id) if _has_value(row.project_id) else None,
                int(row.budget),
                int(row.execution),
                row.execution_rate,
            )

    return projects


def _in_range(year: Optional[int], bounds: Tuple[int, int]) -> bool:
    return year is not None and bounds[0] <= year <= bounds[1]


def resolve_declared_years(
    overview_by_year: Dict[int, pd.DataFrame]
) -> Dict[str, Tuple[Optional[int], Optional[int]]]:
    """
    事業概要から事業開始・終了(予定)年度を取得

    新しい年度の事業概要から順に見て、範囲内の値が最初に見つかった時点で確定する

    Args:
        overview_by_year: 年度 → 事業概要レコード

    Returns:
        事業名 → (開始年度, 終了年度)
    """
    start_years: Dict[str, int] = {}
    end_years: Dict[str, int] = {}

    for year in sorted(overview_by_year, reverse=True):
        frame = overview_by_year[year]
        if frame.empty:
            continue
        for row in frame[frame['project_name'].notna()].itertuples(index=False):
            if row.project_name not in start_years and _in_range(row.start_year, START_YEAR_RANGE):
                start_years[row.project_name] = row.start_year
            if row.project_name not in end_years and _in_range(row.end_year, END_YEAR_RANGE):
                end_years[row.project_name] = row.end_year

    names = list(start_years) + [name for name in end_years if name not in start_years]
    return {name: (start_years.get(name), end_years.get(name)) for name in names}


def aggregate_recipients(
    expenditure_by_year: Dict[int, pd.DataFrame],
    budget_by_year: Dict[int, pd.DataFrame],
) -> Dict[str, List[ExpenditureTimeSeries]]:
    """
    事業名 × 支出先名 で全年度の支出額を累計し、事業ごとのTop10を返す

    支出先レコードに事業名が無い場合は、同じ年度の予算事業IDから事業名を引く

    Args:
        expenditure_by_year: 年度 → 支出先レコード
        budget_by_year: 年度 → 予算レコード

    Returns:
        事業名 → 支出先Top10（累計額の降順）
    """
    totals: Dict[str, Dict[str, Dict[int, int]]] = {}

    for year in tqdm(sorted(expenditure_by_year), desc="Collecting expenditures", leave=False):
        frame = expenditure_by_year[year]
        if frame.empty:
            continue

        names_by_id: Dict[int, str] = {}
        budget = budget_by_year.get(year)
        if budget is not None and not budget.empty:
            for project_id, project_name in zip(budget['project_id'], budget['project_name']):
                if _has_value(project_id) and project_name:
                    names_by_id.setdefault(int(project_id), project_name)

        rows = frame[(frame['fiscal_year'] == year) & frame['recipient'].notna()]
        for row in rows.itertuples(index=False):
            project_name = row.project_name
            if not project_name and _has_value(row.project_id):
                project_name = names_by_id.get(int(row.project_id))
            if not project_name:
                continue

            yearly = totals.setdefault(project_name, {}).setdefault(row.recipient, {})
            yearly[year] = yearly.get(year, 0) + int(row.amount)

    result = {}
    for project_name, recipients in totals.items():
        series = [
            ExpenditureTimeSeries(
                name=recipient,
                total_amount=sum(yearly.values()),
                year_count=sum(1 for amount in yearly.values() if amount > 0),
                yearly_amounts=dict(sorted(yearly.items())),
            )
            for recipient, yearly in recipients.items()
        ]
        series.sort(key=lambda item: item.total_amount, reverse=True)
        result[project_name] = series[:TOP_RECIPIENTS_PER_REPORT]

    return result


def reconcile_projects(
    budget_by_year: Dict[int, pd.DataFrame],
    expenditure_by_year: Dict[int, pd.DataFrame],
    overview_by_year: Dict[int, pd.DataFrame],
) -> List[ProjectTimeSeries]:
    """
    全年度のデータから事業ごとの時系列データを構築

    Args:
        budget_by_year: 年度 → 予算レコード
        expenditure_by_year: 年度 → 支出先レコード
        overview_by_year: 年度 → 事業概要レコード

    Returns:
        ProjectTimeSeries のリスト（事業名の初出順）
    """
    projects = collect_yearly_data(budget_by_year)
    declared_years = resolve_declared_years(overview_by_year)
    recipients = aggregate_recipients(expenditure_by_year, budget_by_year)

    result = []
    for name, project in projects.items():
        start_year, end_year = declared_years.get(name, (None, None))
        result.append(ProjectTimeSeries(
            project_name=name,
            project_key=make_project_key(name),
            ministry=project.ministry or '',
            start_year=start_year,
            end_year=end_year,
            yearly_data=dict(sorted(project.yearly_data.items())),
            top_expenditures=recipients.get(name, []),
        ))

    logger.info(f"Reconciled {len(result)} projects across {len(budget_by_year)} years")
    return result


def build_project_index(projects: List[ProjectTimeSeries]) -> List[ProjectIndexEntry]:
    """
    検索用の事業インデックスを構築（全期間の予算合計の降順）

    Args:
        projects: 事業の時系列データ

    Returns:
        ProjectIndexEntry のリスト
    """
    index = []
    for project in projects:
        if not project.yearly_data:
            continue
        years = sorted(project.yearly_data)
        total_budget = sum(data.budget for data in project.yearly_data.values())

        index.append(ProjectIndexEntry(
            project_key=project.project_key,
            project_name=project.project_name,
            ministry=project.ministry,
            start_year=project.start_year,
            end_year=project.end_year,
            data_start_year=years[0],
            data_end_year=years[-1],
            total_budget=total_budget,
            average_budget=round(total_budget / len(years)),
        ))

    index.sort(key=lambda entry: entry.total_budget, reverse=True)
    return index
