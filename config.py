"""
パイプライン設定

入出力パス、対象年度、年度ごとのCSVファイル構成、カラム名の表記揺れを定義
"""
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, FrozenSet, List, Tuple

# --- Path Definitions ---
PROJECT_ROOT = Path(__file__).parent
DATA_DIR = PROJECT_ROOT / "data" / "rs_system"
OUTPUT_DIR = PROJECT_ROOT / "public" / "data"
LOG_FILE = PROJECT_ROOT / "pipeline.log"

# --- Year Definitions ---
AVAILABLE_YEARS = [2014, 2015, 2016, 2017, 2018, 2019, 2020, 2021, 2022, 2023, 2024]
LATEST_YEAR = 2024

# 2014-2023年は百万円単位、2024年(RSシステム)は1円単位
UNIT_CONVERSION_CUTOFF_YEAR = 2023
MILLION = 1_000_000

# --- Aggregation ---
TOP_PROJECTS_PER_MINISTRY = 10
TOP_RECIPIENTS_PER_PROJECT = 20
TOP_RECIPIENTS_PER_REPORT = 10

# 事業開始・終了年度として採用する範囲
START_YEAR_RANGE = (2000, 2030)
END_YEAR_RANGE = (2000, 2050)

PROJECT_KEY_LENGTH = 16
MAX_YEAR_WORKERS = 4

# --- Source Files ---
BUDGET_SUMMARY = "budget_summary"
EXPENDITURE = "expenditure"
BLOCK_CONNECTION = "block_connection"
PROJECT_OVERVIEW = "project_overview"

# カテゴリ → (ファイル番号, ラベル)
SOURCE_FILES: Dict[str, Tuple[str, str]] = {
    BUDGET_SUMMARY: ("2-1", "予算・執行_サマリ"),
    EXPENDITURE: ("5-1", "支出先_支出情報"),
    BLOCK_CONNECTION: ("5-2", "支出先_支出ブロックのつながり"),
    PROJECT_OVERVIEW: ("1-2", "基本情報_事業概要"),
}


@dataclass(frozen=True)
class YearSourceConfig:
    """年度ごとのCSV構成"""
    year: int
    file_prefix: str
    amount_multiplier: int
    required: FrozenSet[str]
    available: FrozenSet[str]

    def file_name(self, category: str) -> str:
        number, label = SOURCE_FILES[category]
        return f"{number}_{self.file_prefix}_{label}.csv"


def get_year_config(year: int) -> YearSourceConfig:
    """
    年度のCSV構成を取得

    最新年度（RSシステム）はファイル名に "RS_" が付き、
    支出ブロックのつながりデータが存在する

    Args:
        year: 事業年度

    Returns:
        YearSourceConfig
    """
    is_latest = year == LATEST_YEAR
    available = {BUDGET_SUMMARY, EXPENDITURE, PROJECT_OVERVIEW}
    if is_latest:
        available.add(BLOCK_CONNECTION)

    return YearSourceConfig(
        year=year,
        file_prefix=f"RS_{year}" if is_latest else str(year),
        amount_multiplier=MILLION if year <= UNIT_CONVERSION_CUTOFF_YEAR else 1,
        required=frozenset({BUDGET_SUMMARY, EXPENDITURE}),
        available=frozenset(available),
    )


# --- Column Aliases ---
# 論理フィールド → CSVヘッダーの候補（先頭から順に空でない値を採用）
COLUMN_ALIASES: Dict[str, List[str]] = {
    "fiscal_year": ["事業年度"],
    "project_id": ["予算事業ID"],
    "project_name": ["事業名"],
    "ministry": ["府省庁", "政策所管府省庁"],
    "budget_year": ["予算年度"],
    "initial_budget": ["当初予算(合計)", "当初予算（合計）"],
    "execution": ["執行額(合計)", "執行額（合計）"],
    "execution_rate": ["執行率"],
    "recipient": ["支出先名"],
    "amount": ["金額", "支出額（百万円）", "支出額(百万円)"],
    "block_id": ["支出先ブロック番号", "支出先ブロック"],
    "block_name": ["支出先ブロック名"],
    "corporate_number": ["法人番号"],
    "role": ["事業を行う上での役割"],
    "contract_type": ["契約方式等"],
    "bidders": ["入札者数", "入札者数（応募者数）", "入札者数(応募者数)"],
    "fall_rate": ["落札率"],
    "source_block": ["支出元の支出先ブロック"],
    "source_block_name": ["支出元の支出先ブロック名"],
    "from_organization": ["担当組織からの支出"],
    "target_block": ["支出先の支出先ブロック"],
    "target_block_name": ["支出先の支出先ブロック名"],
    "start_year": ["事業開始年度"],
    "end_year": ["事業終了(予定)年度", "事業終了（予定）年度", "事業終了予定年度"],
}

# --- Master Data ---
# 府省庁名の表記揺れを統一するためのマッピング
MINISTRY_NAME_MAPPING = {
    '原子力規制員会': '原子力規制委員会',
    '特定個人情報保護委員会': '個人情報保護委員会',
}
