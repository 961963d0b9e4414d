"""
値の正規化ユーティリティ

金額の単位変換、数値・年度・フラグの解析、カラム名・名称の表記揺れを処理
"""
import math
import re
import unicodedata
from typing import Any, Optional

from config import MINISTRY_NAME_MAPPING, get_year_config

# 和暦→西暦変換用の正規表現パターン
RE_WAREKI_SINGLE = re.compile(
    r'(明治|大正|昭和|平成|令和|M|T|S|H|R)(\d{1,2}|元)年'
)

# 和暦開始年の定義
WAREKI_START_YEARS = {
    '明治': 1868, 'M': 1868,
    '大正': 1912, 'T': 1912,
    '昭和': 1926, 'S': 1926,
    '平成': 1989, 'H': 1989,
    '令和': 2019, 'R': 2019,
}

RE_SEIREKI = re.compile(r'(\d{4})')

# データなしを表す記号
EMPTY_MARKERS = {'', '-', '－', '‐', 'N/A', 'n/a', '#N/A', 'nan', 'NaN', 'None'}

TRUE_MARKERS = {'true', '1', '○', '〇', 'はい', 'yes'}


def is_blank(value: Any) -> bool:
    """空値（None, NaN, 空文字, データなし記号）か判定"""
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() in EMPTY_MARKERS:
        return True
    return False


def normalize_amount(amount: Optional[float], year: int) -> int:
    """
    金額を1円単位に正規化

    2014-2023年は百万円単位なので1,000,000倍する。
    空値・0・負値は0として扱う

    Args:
        amount: CSV上の金額
        year: CSVファイルの事業年度

    Returns:
        1円単位の金額（整数）
    """
    if amount is None or is_blank(amount) or amount <= 0:
        return 0
    return int(round(amount * get_year_config(year).amount_multiplier))


def parse_number(value: Any) -> Optional[float]:
    """
    数値を解析

    例:
        - "1,234" → 1234.0
        - "95.5%" → 0.955
        - "-" → None

    Args:
        value: CSVのセル値

    Returns:
        数値（解析できない場合はNone）
    """
    if is_blank(value):
        return None

    if isinstance(value, bool):
        return float(value)

    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else None

    if isinstance(value, str):
        cleaned = unicodedata.normalize('NFKC', value)
        cleaned = cleaned.replace(',', '').replace('円', '').strip()
        divisor = 1.0
        if cleaned.endswith('%'):
            cleaned = cleaned[:-1].strip()
            divisor = 100.0
        try:
            number = float(cleaned) / divisor
        except ValueError:
            return None
        # "inf" や "1e400" は金額として扱わない
        return number if math.isfinite(number) else None

    return None


def parse_int(value: Any) -> Optional[int]:
    """整数を解析（予算事業ID等）"""
    number = parse_number(value)
    if number is None:
        return None
    return int(number)


def convert_wareki_to_seireki(text: str) -> str:
    """
    和暦を西暦に変換

    例:
        - 平成25年度 → 2013年度
        - H25年 → 2013年
        - 令和元年 → 2019年

    Args:
        text: 変換対象のテキスト

    Returns:
        変換後のテキスト
    """
    def replace_single(match):
        era = match.group(1)
        year = match.group(2)

        # "元年" の処理
        if year == '元':
            year = '1'

        return f"{WAREKI_START_YEARS[era] + int(year) - 1}年"

    return RE_WAREKI_SINGLE.sub(replace_single, text)


def parse_year(value: Any) -> Optional[int]:
    """
    年度を解析

    数値、"2013年度" のような西暦表記、"平成25年度" のような和暦表記に対応

    Args:
        value: CSVのセル値

    Returns:
        西暦年（解析できない場合はNone）
    """
    if is_blank(value):
        return None

    if isinstance(value, (int, float)):
        return int(value)

    if isinstance(value, str):
        text = convert_wareki_to_seireki(unicodedata.normalize('NFKC', value))
        match = RE_SEIREKI.search(text)
        if match:
            return int(match.group(1))

    return None


def parse_flag(value: Any) -> bool:
    """真偽値フラグを解析"""
    if isinstance(value, bool):
        return value
    if is_blank(value):
        return False
    return str(value).strip().lower() in TRUE_MARKERS


def normalize_column_name(column: str) -> str:
    """
    カラム名の正規化

    BOM、改行、タブ、連続空白を削除し、前後の空白をトリミング

    Args:
        column: カラム名

    Returns:
        正規化されたカラム名
    """
    if not isinstance(column, str):
        return column

    column = column.replace('\ufeff', '')

    # 改行・タブを空白に変換
    column = column.replace('\n', ' ').replace('\r', ' ').replace('\t', ' ')

    # 連続空白を1つに
    column = re.sub(r'\s+', ' ', column)

    return column.strip()


def clean_name(value: Any) -> Optional[str]:
    """事業名・支出先名をトリミング（空の場合はNone）"""
    if is_blank(value):
        return None
    return str(value).strip()


def normalize_ministry_name(value: Any) -> Optional[str]:
    """府省庁名を正規化（表記揺れを統一）"""
    name = clean_name(value)
    if name is None:
        return None
    return MINISTRY_NAME_MAPPING.get(name, name)
