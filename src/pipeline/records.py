"""
レコード構築モジュール

読み込んだCSV（全カラム文字列）から、集計用の型付きDataFrameを構築する。
年度によるカラム名の違いは config.COLUMN_ALIASES で吸収し、金額は1円単位に正規化する
"""
from typing import Any, Callable, List

import pandas as pd

from config import COLUMN_ALIASES
from src.utils.normalization import (
    clean_name,
    is_blank,
    normalize_amount,
    normalize_ministry_name,
    parse_flag,
    parse_int,
    parse_number,
    parse_year,
)

BUDGET_COLUMNS = [
    'fiscal_year', 'project_id', 'project_name', 'ministry', 'budget_year',
    'budget', 'execution', 'execution_rate',
]

EXPENDITURE_COLUMNS = [
    'fiscal_year', 'project_id', 'project_name', 'ministry', 'recipient', 'amount',
    'block_id', 'block_name', 'corporate_number', 'role',
    'contract_type', 'bidders', 'fall_rate',
]

CONNECTION_COLUMNS = [
    'project_id', 'project_name', 'ministry', 'source_block', 'source_block_name',
    'from_organization', 'target_block', 'target_block_name',
]

OVERVIEW_COLUMNS = ['fiscal_year', 'project_name', 'start_year', 'end_year']


def coalesce_column(raw: pd.DataFrame, field: str) -> pd.Series:
    """
    論理フィールドの値を取得

    COLUMN_ALIASES の候補カラムを順に見て、行ごとに最初の空でない値を採用する。
    （例: "当初予算(合計)" が空なら "当初予算（合計）" を使う）

    Args:
        raw: 読み込んだCSV
        field: 論理フィールド名

    Returns:
        値のSeries（該当カラムが無い場合は全て空文字）
    """
    result = pd.Series([''] * len(raw), index=raw.index, dtype=object)

    for column in COLUMN_ALIASES[field]:
        if column not in raw.columns:
            continue
        values = raw[column]
        if isinstance(values, pd.DataFrame):
            values = values.iloc[:, 0]
        blank = result.map(is_blank).astype(bool)
        result = result.where(~blank, values)

    return result


def _convert(raw: pd.DataFrame, field: str, func: Callable[[Any], Any]) -> pd.Series:
    """フィールド値を変換（None を保持するため object 型）"""
    return pd.Series(
        [func(value) for value in coalesce_column(raw, field)],
        index=raw.index,
        dtype=object,
    )


def _amounts(raw: pd.DataFrame, field: str, year: int) -> pd.Series:
    """金額フィールドを1円単位の整数に変換"""
    return pd.Series(
        [normalize_amount(parse_number(value), year) for value in coalesce_column(raw, field)],
        index=raw.index,
        dtype='int64',
    )


def _empty(columns: List[str]) -> pd.DataFrame:
    return pd.DataFrame({column: pd.Series(dtype=object) for column in columns})


def build_budget_frame(raw: pd.DataFrame, year: int) -> pd.DataFrame:
    """
    予算・執行サマリのレコードを構築

    Args:
        raw: 2-1_予算・執行_サマリ のCSV
        year: CSVファイルの事業年度（金額の単位判定に使用）

    Returns:
        BUDGET_COLUMNS を持つDataFrame
    """
    if raw.empty:
        return _empty(BUDGET_COLUMNS)

    rates = [parse_number(value) for value in coalesce_column(raw, 'execution_rate')]

    frame = pd.DataFrame({
        'fiscal_year': _convert(raw, 'fiscal_year', lambda v: parse_year(v) or year),
        'project_id': _convert(raw, 'project_id', parse_int),
        'project_name': _convert(raw, 'project_name', clean_name),
        'ministry': _convert(raw, 'ministry', normalize_ministry_name),
        'budget_year': _convert(raw, 'budget_year', parse_year),
        'budget': _amounts(raw, 'initial_budget', year),
        'execution': _amounts(raw, 'execution', year),
        'execution_rate': pd.Series(rates, index=raw.index, dtype=object),
    })
    return frame.reset_index(drop=True)


def build_expenditure_frame(raw: pd.DataFrame, year: int) -> pd.DataFrame:
    """
    支出先・支出情報のレコードを構築

    Args:
        raw: 5-1_支出先_支出情報 のCSV
        year: CSVファイルの事業年度

    Returns:
        EXPENDITURE_COLUMNS を持つDataFrame
    """
    if raw.empty:
        return _empty(EXPENDITURE_COLUMNS)

    frame = pd.DataFrame({
        'fiscal_year': _convert(raw, 'fiscal_year', lambda v: parse_year(v) or year),
        'project_id': _convert(raw, 'project_id', parse_int),
        'project_name': _convert(raw, 'project_name', clean_name),
        'ministry': _convert(raw, 'ministry', normalize_ministry_name),
        'recipient': _convert(raw, 'recipient', clean_name),
        'amount': _amounts(raw, 'amount', year),
        'block_id': _convert(raw, 'block_id', clean_name),
        'block_name': _convert(raw, 'block_name', clean_name),
        'corporate_number': _convert(raw, 'corporate_number', clean_name),
        'role': _convert(raw, 'role', clean_name),
        'contract_type': _convert(raw, 'contract_type', clean_name),
        'bidders': _convert(raw, 'bidders', parse_int),
        'fall_rate': _convert(raw, 'fall_rate', parse_number),
    })
    return frame.reset_index(drop=True)


def build_connection_frame(raw: pd.DataFrame) -> pd.DataFrame:
    """
    支出ブロックのつながりのレコードを構築

    Args:
        raw: 5-2_支出先_支出ブロックのつながり のCSV

    Returns:
        CONNECTION_COLUMNS を持つDataFrame
    """
    if raw.empty:
        return _empty(CONNECTION_COLUMNS)

    frame = pd.DataFrame({
        'project_id': _convert(raw, 'project_id', parse_int),
        'project_name': _convert(raw, 'project_name', clean_name),
        'ministry': _convert(raw, 'ministry', normalize_ministry_name),
        'source_block': _convert(raw, 'source_block', clean_name),
        'source_block_name': _convert(raw, 'source_block_name', clean_name),
        'from_organization': _convert(raw, 'from_organization', parse_flag),
        'target_block': _convert(raw, 'target_block', clean_name),
        'target_block_name': _convert(raw, 'target_block_name', clean_name),
    })
    return frame.reset_index(drop=True)


def build_overview_frame(raw: pd.DataFrame, year: int) -> pd.DataFrame:
    """
    事業概要のレコードを構築（事業開始・終了年度）

    Args:
        raw: 1-2_基本情報_事業概要 のCSV
        year: CSVファイルの事業年度

    Returns:
        OVERVIEW_COLUMNS を持つDataFrame
    """
    if raw.empty:
        return _empty(OVERVIEW_COLUMNS)

    frame = pd.DataFrame({
        'fiscal_year': _convert(raw, 'fiscal_year', lambda v: parse_year(v) or year),
        'project_name': _convert(raw, 'project_name', clean_name),
        'start_year': _convert(raw, 'start_year', parse_year),
        'end_year': _convert(raw, 'end_year', parse_year),
    })
    return frame.reset_index(drop=True)
