"""
CSV読み込みモジュール

年度ごとのファイル名規則を解決し、RSシステム形式のCSVを読み込む
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Dict, Iterable, Optional

import pandas as pd

from config import SOURCE_FILES, get_year_config
from src.utils.normalization import normalize_column_name

logger = logging.getLogger(__name__)


class SourceDataError(Exception):
    """必須CSVが存在しない、または読み込めない時の例外"""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


def get_year_directory(data_dir: Path, year: int) -> Path:
    """年度のディレクトリパスを取得"""
    return data_dir / f"year_{year}"


def resolve_source_path(data_dir: Path, year: int, category: str) -> Optional[Path]:
    """
    CSVファイルのパスを取得

    Args:
        data_dir: データディレクトリ（year_YYYY を含む）
        year: 事業年度
        category: ファイルカテゴリ（config.SOURCE_FILES のキー）

    Returns:
        CSVファイルのパス（その年度に存在しないカテゴリの場合はNone）
    """
    if category not in SOURCE_FILES:
        raise ValueError(f"Unknown source category: {category}")

    year_config = get_year_config(year)
    if category not in year_config.available:
        return None

    return get_year_directory(data_dir, year) / year_config.file_name(category)


def read_csv(path: Path) -> pd.DataFrame:
    """
    CSVファイルを読み込み（全カラム文字列）

    BOMを除去し、列数が揃っていない行は先頭から列数分だけ採用する

    Args:
        path: CSVファイルパス

    Returns:
        DataFrame

    Raises:
        SourceDataError: ファイルが存在しない、または解析できない場合
    """
    if not path.exists():
        raise SourceDataError(path, "file not found")

    try:
        header = pd.read_csv(path, encoding='utf-8-sig', nrows=0, index_col=False).columns
        width = len(header)

        df = pd.read_csv(
            path,
            encoding='utf-8-sig',
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            index_col=False,
            engine='python',
            on_bad_lines=lambda bad_line: bad_line[:width],
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise SourceDataError(path, f"malformed CSV ({e})") from e
    except OSError as e:
        raise SourceDataError(path, f"unreadable ({e})") from e

    df.columns = [normalize_column_name(str(col)) for col in df.columns]
    df = df.fillna('').apply(lambda column: column.astype(str).str.strip())

    return df


def load_source(data_dir: Path, year: int, category: str) -> pd.DataFrame:
    """
    年度・カテゴリのCSVを読み込む

    その年度に存在しないカテゴリ、または任意カテゴリのファイルが無い場合は空のDataFrameを返す

    Args:
        data_dir: データディレクトリ
        year: 事業年度
        category: ファイルカテゴリ

    Returns:
        DataFrame
    """
    path = resolve_source_path(data_dir, year, category)
    if path is None:
        return pd.DataFrame()

    required = category in get_year_config(year).required
    if not required and not path.exists():
        logger.warning(f"Optional file not found, treated as empty: {path}")
        return pd.DataFrame()

    df = read_csv(path)
    logger.info(f"  Loaded {path.name}: {len(df)} rows")
    return df


def load_year_sources(
    data_dir: Path, year: int, categories: Iterable[str]
) -> Dict[str, pd.DataFrame]:
    """
    年度の複数カテゴリのCSVを並列で読み込む

    Args:
        data_dir: データディレクトリ
        year: 事業年度
        categories: 読み込むカテゴリ

    Returns:
        カテゴリ → DataFrame

    Raises:
        SourceDataError: 必須CSVの読み込みに失敗した場合
    """
    categories = list(categories)
    with ThreadPoolExecutor(max_workers=len(categories) or 1) as executor:
        futures = {
            category: executor.submit(load_source, data_dir, year, category)
            for category in categories
        }
        return {category: future.result() for category, future in futures.items()}
