"""
統計情報モジュール

年度ごとの予算総額・執行総額・平均執行率・事業数・府省庁数を計算
"""
import logging
from typing import List

import pandas as pd

from config import LATEST_YEAR
from src.models.schema import YearStatistics
from src.pipeline.aggregator import filter_budget_year

logger = logging.getLogger(__name__)

MAX_EXECUTION_RATE = 1.0


def _filed_rates(rows: pd.DataFrame) -> List[float]:
    """執行率カラムの値（空・0以下は除外）"""
    return [
        float(rate) for rate in rows['execution_rate']
        if rate is not None and not pd.isna(rate) and rate > 0
    ]


def _computed_rates(rows: pd.DataFrame) -> List[float]:
    """執行額 ÷ 当初予算（どちらも正の値のレコードのみ）"""
    return [
        execution / budget
        for budget, execution in zip(rows['budget'], rows['execution'])
        if budget > 0 and execution > 0
    ]


def calculate_statistics(
    budget: pd.DataFrame, year: int, latest_year: int = LATEST_YEAR
) -> YearStatistics:
    """
    統計情報を計算

    最新年度は執行実績がまだ無いため、執行額・執行率は前年度の予算年度レコードから取る。
    それ以前の年度は同じ予算年度のレコードから予算・執行の両方を取る。
    執行率は100%を超える値を1.0で頭打ちにしてから平均する

    Args:
        budget: 予算レコード（1年度分のCSVから構築したもの）
        year: 対象年度
        latest_year: 最新年度

    Returns:
        YearStatistics
    """
    current = filter_budget_year(budget, year)

    if year == latest_year:
        execution_rows = filter_budget_year(budget, year - 1)
        rates = _filed_rates(execution_rows)
    else:
        execution_rows = current
        rates = _computed_rates(current)

    rates = [min(rate, MAX_EXECUTION_RATE) for rate in rates]
    average_execution_rate = sum(rates) / len(rates) if rates else 0.0

    statistics = YearStatistics(
        total_budget=int(current['budget'].sum()),
        total_execution=int(execution_rows['execution'].sum()),
        average_execution_rate=average_execution_rate,
        event_count=current['project_id'].dropna().nunique(),
        ministry_count=current['ministry'].dropna().nunique(),
    )

    logger.info(
        f"  Statistics {year}: budget={statistics.total_budget:,}, "
        f"execution={statistics.total_execution:,}, projects={statistics.event_count}"
    )
    return statistics
