import pytest

from src.models.schema import ProjectTimeSeries, YearlyProjectData
from src.pipeline.reconciler import (
    aggregate_recipients,
    build_project_index,
    make_project_key,
    merge_yearly_record,
    reconcile_projects,
    resolve_declared_years,
)


def _budget_row(year, project_id, name, budget, execution='', rate='', ministry='総務省'):
    return (year, project_id, name, ministry, year, budget, execution, rate)


def _expenditure_row(year, project_id, name, recipient, amount):
    return (year, project_id, name, '総務省', '', '', recipient, '', amount, '', '', '', '')


class TestMergeYearlyRecord:

    def test_zero_does_not_overwrite_value(self):
        yearly = {}
        merge_yearly_record(yearly, 2024, 1, 500, 0, None)
        merge_yearly_record(yearly, 2024, 1, 0, 0, None)
        assert yearly[2024].budget == 500

    def test_first_non_zero_fills_zero(self):
        yearly = {}
        merge_yearly_record(yearly, 2024, 1, 0, 0, None)
        merge_yearly_record(yearly, 2024, 1, 500, 300, None)
        assert yearly[2024].budget == 500
        assert yearly[2024].execution == 300

    def test_first_non_zero_wins(self):
        yearly = {}
        merge_yearly_record(yearly, 2024, 1, 500, 100, None)
        merge_yearly_record(yearly, 2024, 1, 300, 200, None)
        assert yearly[2024].budget == 500
        assert yearly[2024].execution == 100

    def test_rate_is_overwritten_whenever_present(self):
        yearly = {}
        merge_yearly_record(yearly, 2024, 1, 500, 0, 0.5)
        merge_yearly_record(yearly, 2024, 1, 0, 0, 0.8)
        merge_yearly_record(yearly, 2024, 1, 0, 0, None)
        assert yearly[2024].execution_rate == 0.8

    def test_project_id_is_filled_once(self):
        yearly = {}
        merge_yearly_record(yearly, 2024, None, 0, 0, None)
        merge_yearly_record(yearly, 2024, 7, 0, 0, None)
        merge_yearly_record(yearly, 2024, 8, 0, 0, None)
        assert yearly[2024].project_id == 7


class TestProjectKey:

    def test_stable_and_url_safe(self):
        key = make_project_key('道路整備事業')
        assert key == make_project_key('道路整備事業')
        assert len(key) == 16
        assert all(char in '0123456789abcdef' for char in key)

    def test_distinct_names(self):
        assert make_project_key('道路整備事業') != make_project_key('河川改修事業')


class TestReconcileProjects:

    def test_identity_follows_project_name(self, make_budget):
        budget_by_year = {
            2023: make_budget([_budget_row(2023, 10, '道路整備', 300)], year=2023),
            2024: make_budget([
                _budget_row(2024, 501, '道路整備', 320_000_000),
                _budget_row(2024, 10, '新規事業', 5_000_000),
            ], year=2024),
        }

        projects = {project.project_name: project for project in reconcile_projects(budget_by_year, {}, {})}

        assert set(projects) == {'道路整備', '新規事業'}
        road = projects['道路整備']
        assert list(road.yearly_data) == [2023, 2024]
        assert road.yearly_data[2023].project_id == 10
        assert road.yearly_data[2023].budget == 300_000_000
        assert road.yearly_data[2024].project_id == 501
        assert road.project_key == make_project_key('道路整備')
        assert list(projects['新規事業'].yearly_data) == [2024]

    def test_other_budget_years_are_ignored(self, make_budget):
        budget_by_year = {
            2024: make_budget([
                _budget_row(2024, 1, '道路整備', 100),
                (2024, 1, '道路整備', '総務省', 2023, 999, 888, 0.9),
            ], year=2024),
        }
        project = reconcile_projects(budget_by_year, {}, {})[0]
        assert list(project.yearly_data) == [2024]
        assert project.yearly_data[2024].budget == 100

    def test_latest_ministry_wins(self, make_budget):
        budget_by_year = {
            2022: make_budget([_budget_row(2022, 1, '統計調査', 1, ministry='総務省')], year=2022),
            2023: make_budget([_budget_row(2023, 1, '統計調査', 1, ministry='内閣府')], year=2023),
        }
        assert reconcile_projects(budget_by_year, {}, {})[0].ministry == '内閣府'

    def test_top_recipients_across_years(self, make_budget, make_expenditures):
        budget_by_year = {
            2023: make_budget([_budget_row(2023, 10, '道路整備', 300)], year=2023),
            2024: make_budget([_budget_row(2024, 501, '道路整備', 300_000_000)], year=2024),
        }
        expenditure_by_year = {
            2023: make_expenditures([
                _expenditure_row(2023, 10, '道路整備', '株式会社A', 100),
                _expenditure_row(2023, 10, '', '株式会社B', 30),
            ], year=2023),
            2024: make_expenditures([
                _expenditure_row(2024, 501, '道路整備', '株式会社A', 50_000_000),
                _expenditure_row(2024, 501, '道路整備', '株式会社A', 10_000_000),
            ], year=2024),
        }

        project = reconcile_projects(budget_by_year, expenditure_by_year, {})[0]

        first, second = project.top_expenditures
        assert first.name == '株式会社A'
        assert first.total_amount == 160_000_000
        assert first.year_count == 2
        assert first.yearly_amounts == {2023: 100_000_000, 2024: 60_000_000}
        # 事業名が空の行は予算事業IDから事業名を引く
        assert second.name == '株式会社B'
        assert second.total_amount == 30_000_000

    def test_recipients_are_limited_to_ten(self, make_budget, make_expenditures):
        budget_by_year = {2024: make_budget([_budget_row(2024, 1, '委託事業', 1000)])}
        expenditure_by_year = {
            2024: make_expenditures([
                _expenditure_row(2024, 1, '委託事業', f'支出先{index:02d}', 100 + index)
                for index in range(12)
            ]),
        }
        result = aggregate_recipients(expenditure_by_year, budget_by_year)['委託事業']
        assert len(result) == 10
        assert result[0].name == '支出先11'
        assert result[-1].name == '支出先02'


class TestDeclaredYears:

    def test_newest_overview_wins(self, make_overview):
        overview_by_year = {
            2023: make_overview([(2023, 10, '道路整備', '国土交通省', '平成25年度', 2028)], year=2023),
            2024: make_overview([(2024, 501, '道路整備', '国土交通省', 2014, '')], year=2024),
        }
        assert resolve_declared_years(overview_by_year)['道路整備'] == (2014, 2028)

    def test_out_of_range_values_fall_back_to_older_years(self, make_overview):
        overview_by_year = {
            2023: make_overview([(2023, 10, '道路整備', '国土交通省', 2013, 2040)], year=2023),
            2024: make_overview([(2024, 501, '道路整備', '国土交通省', 1990, 2099)], year=2024),
        }
        assert resolve_declared_years(overview_by_year)['道路整備'] == (2013, 2040)

    def test_no_valid_years(self, make_overview):
        overview_by_year = {2024: make_overview([(2024, 1, '道路整備', '国土交通省', 1950, '')])}
        assert resolve_declared_years(overview_by_year) == {}


class TestProjectIndex:

    def _project(self, name, budgets):
        return ProjectTimeSeries(
            project_name=name,
            project_key=make_project_key(name),
            ministry='総務省',
            yearly_data={year: YearlyProjectData(budget=budget) for year, budget in budgets.items()},
        )

    def test_sorted_by_total_budget(self):
        index = build_project_index([
            self._project('小規模事業', {2023: 100}),
            self._project('大規模事業', {2022: 1000, 2024: 2001}),
        ])

        assert [entry.project_name for entry in index] == ['大規模事業', '小規模事業']
        large = index[0]
        assert large.total_budget == 3001
        assert large.average_budget == 1500
        assert (large.data_start_year, large.data_end_year) == (2022, 2024)

    def test_projects_without_years_are_skipped(self):
        assert build_project_index([self._project('空の事業', {})]) == []


@pytest.mark.parametrize("exclude_none", [False, True])
def test_time_series_serializes_year_keys_as_strings(exclude_none):
    project = ProjectTimeSeries(
        project_name='道路整備',
        project_key=make_project_key('道路整備'),
        ministry='国土交通省',
        yearly_data={2024: YearlyProjectData(project_id=1, budget=100)},
    )
    data = project.model_dump(mode='json', by_alias=True, exclude_none=exclude_none)
    assert list(data['yearlyData']) == ['2024']
    assert data['projectKey'] == make_project_key('道路整備')
