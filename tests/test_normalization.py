import pytest

from src.utils.normalization import (
    convert_wareki_to_seireki,
    is_blank,
    normalize_amount,
    normalize_column_name,
    normalize_ministry_name,
    parse_flag,
    parse_int,
    parse_number,
    parse_year,
)


class TestNormalizeAmount:

    @pytest.mark.parametrize("year", [2014, 2019, 2023])
    def test_million_yen_years_are_scaled(self, year):
        assert normalize_amount(5, year) == 5_000_000

    def test_latest_year_is_already_in_yen(self):
        assert normalize_amount(5, 2024) == 5

    def test_fractional_millions_are_rounded_to_yen(self):
        assert normalize_amount(12.3, 2015) == 12_300_000

    @pytest.mark.parametrize("value", [None, float('nan'), 0, -10, ''])
    def test_missing_zero_and_negative_are_zero(self, value):
        assert normalize_amount(value, 2020) == 0

    def test_yen_value_survives_division_back_to_millions(self):
        assert normalize_amount(1234.567, 2020) / 1_000_000 == pytest.approx(1234.567)


class TestParseNumber:

    def test_thousands_separator(self):
        assert parse_number("1,234") == 1234.0

    def test_full_width_digits_and_yen_suffix(self):
        assert parse_number("１，０００円") == 1000.0

    def test_percent_is_converted_to_ratio(self):
        assert parse_number("95.5%") == pytest.approx(0.955)

    @pytest.mark.parametrize("value", ["", "-", "－", "N/A", None, "不明"])
    def test_unparseable_is_none(self, value):
        assert parse_number(value) is None

    def test_numeric_input(self):
        assert parse_number(3) == 3.0
        assert parse_int("42") == 42
        assert parse_int("42.0") == 42


class TestParseYear:

    @pytest.mark.parametrize("value, expected", [
        ("2015", 2015),
        ("2015年度", 2015),
        ("平成25年度", 2013),
        ("H25年", 2013),
        ("令和元年度", 2019),
        ("令和５年度", 2023),
        (2016, 2016),
        (2016.0, 2016),
    ])
    def test_supported_formats(self, value, expected):
        assert parse_year(value) == expected

    @pytest.mark.parametrize("value", ["", "-", "未定", None])
    def test_unparseable_is_none(self, value):
        assert parse_year(value) is None

    def test_wareki_inside_text(self):
        assert convert_wareki_to_seireki("平成30年度から実施") == "2018年度から実施"


def test_is_blank():
    assert is_blank(None)
    assert is_blank("  ")
    assert is_blank("－")
    assert not is_blank("0")
    assert not is_blank(0)


@pytest.mark.parametrize("value, expected", [
    ("TRUE", True), ("true", True), ("○", True), ("1", True),
    ("FALSE", False), ("", False), (None, False),
])
def test_parse_flag(value, expected):
    assert parse_flag(value) is expected


def test_normalize_column_name_strips_bom_and_whitespace():
    assert normalize_column_name("\ufeff事業名") == "事業名"
    assert normalize_column_name(" 当初予算\n(合計) ") == "当初予算 (合計)"


def test_normalize_ministry_name():
    assert normalize_ministry_name(" 原子力規制員会 ") == "原子力規制委員会"
    assert normalize_ministry_name("総務省") == "総務省"
    assert normalize_ministry_name("") is None


@pytest.mark.parametrize("value", ["inf", "-inf", "1e400", "Infinity", float('inf')])
def test_non_finite_numbers_are_no_data(value):
    assert parse_number(value) is None
    assert normalize_amount(parse_number(value), 2024) == 0


def test_infinite_budget_cell_becomes_zero(make_budget):
    budget = make_budget([(2024, 1, '道路整備', '総務省', 2024, 'inf', '1e400', '')])
    assert budget.iloc[0]['budget'] == 0
    assert budget.iloc[0]['execution'] == 0
