import pytest

from report_views import (
    ALL_WEEKS,
    CREATED_COLUMN,
    NO_DATE_LABEL,
    SITE_COLUMN,
    WeekFilter,
    available_weeks,
    build_report_table,
    filter_by_week,
    format_created_at,
    sort_by_created_desc,
    summary_text,
)
from weekly_report import WeeklyReport


def _report(report_id, week, site, created_at=None):
    return WeeklyReport(reporting_week=week, site_name=site, created_at=created_at, id=report_id)


@pytest.fixture
def reports():
    return [
        _report('a', '2025-W29', '현장 C', '2025-07-14T01:00:00.000Z'),
        _report('b', '2025-W30', '현장 B', '2025-07-21T01:00:00.000Z'),
        _report('c', '2025-W30', '현장 A', '2025-07-22T01:00:00.000Z'),
        _report('d', '2025-W28', '현장 D'),
    ]


def test_available_weeks_descending_and_distinct(reports):
    assert available_weeks(reports) == ['2025-W30', '2025-W29', '2025-W28']


def test_empty_filter_is_full_set(reports):
    assert filter_by_week(reports, ALL_WEEKS) == reports
    assert [r.id for r in filter_by_week(reports, '2025-W30')] == ['b', 'c']


def test_sort_by_created_desc_puts_missing_dates_last(reports):
    assert [r.id for r in sort_by_created_desc(reports)] == ['c', 'b', 'a', 'd']


def test_week_filter_jumps_to_newest_when_weeks_change(reports):
    week_filter = WeekFilter()
    assert week_filter.sync(available_weeks(reports))
    assert week_filter.selected == '2025-W30'

    week_filter.select('2025-W28')
    assert not week_filter.sync(available_weeks(reports))
    assert week_filter.selected == '2025-W28'

    reports.append(_report('e', '2025-W31', '현장 E'))
    assert week_filter.sync(available_weeks(reports))
    assert week_filter.selected == '2025-W31'


def test_week_filter_apply_sorts_by_site(reports):
    week_filter = WeekFilter()
    week_filter.select('2025-W30')
    assert [r.site_name for r in week_filter.apply(reports)] == ['현장 A', '현장 B']

    week_filter.select(None)
    assert week_filter.selected == ALL_WEEKS
    assert len(week_filter.apply(reports)) == 4


def test_summary_text():
    assert summary_text('2025-W30', 2) == '2025-W30 주차 동안 총 2개의 보고서가 있습니다.'
    assert summary_text(ALL_WEEKS, 0) == '전체 기간 동안 총 0개의 보고서가 있습니다.'


def test_format_created_at_without_date(reports):
    assert format_created_at(reports[3]) == NO_DATE_LABEL
    assert format_created_at(reports[0]) == '2025. 7. 14. 오전 10:00:00'


def test_build_report_table_shape(reports):
    table = build_report_table(reports)
    # site + 20 leaves x 3 fields + proof link + created
    assert table.shape == (4, 1 + 60 + 2)
    assert list(table.index) == ['a', 'b', 'c', 'd']
    assert table.columns[0] == SITE_COLUMN
    assert table.columns[-1] == CREATED_COLUMN
    assert table.loc['c', SITE_COLUMN] == '현장 A'
    assert table.loc['d', CREATED_COLUMN] == NO_DATE_LABEL


def test_build_report_table_without_created_column(reports):
    table = build_report_table(reports, include_created=False)
    assert CREATED_COLUMN not in list(table.columns)
