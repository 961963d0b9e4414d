"""
Pytest fixtures: raw CSV rows, typed record frames and year directories.
"""
import csv
from pathlib import Path

import pandas as pd
import pytest

from src.pipeline.records import (
    build_budget_frame,
    build_connection_frame,
    build_expenditure_frame,
    build_overview_frame,
)

BUDGET_HEADER = [
    '事業年度', '予算事業ID', '事業名', '府省庁', '予算年度',
    '当初予算(合計)', '執行額(合計)', '執行率',
]

EXPENDITURE_HEADER = [
    '事業年度', '予算事業ID', '事業名', '府省庁', '支出先ブロック番号', '支出先ブロック名',
    '支出先名', '法人番号', '金額', '契約方式等', '入札者数', '落札率', '事業を行う上での役割',
]

LEGACY_EXPENDITURE_HEADER = ['事業年度', '予算事業ID', '事業名', '府省庁', '支出先名', '支出額(百万円)']

CONNECTION_HEADER = [
    '事業年度', '予算事業ID', '事業名', '府省庁', '支出元の支出先ブロック',
    '支出元の支出先ブロック名', '担当組織からの支出', '支出先の支出先ブロック',
    '支出先の支出先ブロック名',
]

OVERVIEW_HEADER = ['事業年度', '予算事業ID', '事業名', '府省庁', '事業開始年度', '事業終了(予定)年度']


def _cell(value) -> str:
    return '' if value is None else str(value)


def raw_frame(header, rows) -> pd.DataFrame:
    """CSVを読み込んだ直後と同じ、全カラム文字列のDataFrame"""
    return pd.DataFrame([[_cell(value) for value in row] for row in rows], columns=header)


def write_csv(path: Path, header, rows) -> Path:
    """BOM付きUTF-8でCSVを書き込む"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, 'w', encoding='utf-8-sig', newline='') as f:
        writer = csv.writer(f)
        writer.writerow(header)
        writer.writerows([[_cell(value) for value in row] for row in rows])
    return path


@pytest.fixture
def make_budget():
    """(事業年度, ID, 事業名, 府省庁, 予算年度, 当初予算, 執行額, 執行率) の行から予算レコードを構築"""
    def _make(rows, year=2024, header=BUDGET_HEADER):
        return build_budget_frame(raw_frame(header, rows), year)
    return _make


@pytest.fixture
def make_expenditures():
    """EXPENDITURE_HEADER の行から支出先レコードを構築"""
    def _make(rows, year=2024, header=EXPENDITURE_HEADER):
        return build_expenditure_frame(raw_frame(header, rows), year)
    return _make


@pytest.fixture
def make_connections():
    def _make(rows):
        return build_connection_frame(raw_frame(CONNECTION_HEADER, rows))
    return _make


@pytest.fixture
def make_overview():
    def _make(rows, year=2024):
        return build_overview_frame(raw_frame(OVERVIEW_HEADER, rows), year)
    return _make


@pytest.fixture
def csv_writer():
    return write_csv


@pytest.fixture
def rs_data_dir(tmp_path):
    """
    2023年（百万円単位）と2024年（RSシステム、1円単位）のCSVを持つデータディレクトリ

    - 事業「道路整備」は2023年はID 10、2024年はID 501
    - 2024年は「運営費交付金」が予算年度2023の執行実績を持つ
    """
    data_dir = tmp_path / 'rs_system'

    write_csv(
        data_dir / 'year_2023' / '2-1_2023_予算・執行_サマリ.csv',
        BUDGET_HEADER,
        [
            (2023, 10, '道路整備', '国土交通省', 2023, 300, 250, ''),
            (2023, 11, '河川改修', '国土交通省', 2023, 100, 120, ''),
            (2023, 20, '運営費交付金', '文部科学省', 2023, 500, 400, ''),
            (2023, 20, '運営費交付金', '文部科学省', 2022, 480, 470, ''),
        ],
    )
    write_csv(
        data_dir / 'year_2023' / '5-1_2023_支出先_支出情報.csv',
        LEGACY_EXPENDITURE_HEADER,
        [
            (2023, 10, '道路整備', '国土交通省', '株式会社A建設', 100),
            (2023, 10, '道路整備', '国土交通省', '株式会社B土木', 50),
            (2023, 20, '運営費交付金', '文部科学省', '国立大学法人X', 450),
        ],
    )
    write_csv(
        data_dir / 'year_2023' / '1-2_2023_基本情報_事業概要.csv',
        OVERVIEW_HEADER,
        [
            (2023, 10, '道路整備', '国土交通省', '平成25年度', ''),
            (2023, 20, '運営費交付金', '文部科学省', 2004, ''),
        ],
    )

    write_csv(
        data_dir / 'year_2024' / '2-1_RS_2024_予算・執行_サマリ.csv',
        BUDGET_HEADER,
        [
            (2024, 501, '道路整備', '国土交通省', 2024, 320_000_000, '', ''),
            (2024, 501, '道路整備', '国土交通省', 2023, 300_000_000, 260_000_000, 0.87),
            (2024, 502, '運営費交付金', '文部科学省', 2024, 510_000_000, '', ''),
            (2024, 502, '運営費交付金', '文部科学省', 2023, 500_000_000, 600_000_000, 1.2),
        ],
    )
    write_csv(
        data_dir / 'year_2024' / '5-1_RS_2024_支出先_支出情報.csv',
        EXPENDITURE_HEADER,
        [
            (2024, 501, '道路整備', '国土交通省', 'A', '本体工事', '株式会社A建設', '1000000000001',
             120_000_000, '一般競争契約', 3, 0.92, '工事'),
            (2024, 501, '道路整備', '国土交通省', 'A', '本体工事', '株式会社A建設', '1000000000001',
             30_000_000, '一般競争契約', 3, 0.92, '工事'),
            (2024, 501, '道路整備', '国土交通省', 'B', '設計', '株式会社C設計', '', 20_000_000,
             '随意契約', 1, '', '設計'),
        ],
    )
    write_csv(
        data_dir / 'year_2024' / '5-2_RS_2024_支出先_支出ブロックのつながり.csv',
        CONNECTION_HEADER,
        [
            (2024, 501, '道路整備', '国土交通省', '', '', 'TRUE', 'A', '本体工事'),
            (2024, 501, '道路整備', '国土交通省', 'A', '本体工事', '', 'B', '設計'),
        ],
    )
    write_csv(
        data_dir / 'year_2024' / '1-2_RS_2024_基本情報_事業概要.csv',
        OVERVIEW_HEADER,
        [
            (2024, 501, '道路整備', '国土交通省', 2014, 2030),
        ],
    )

    return data_dir
