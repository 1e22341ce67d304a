# report_views.py
"""
Derived dashboard views: week list, week filter, row ordering, pivot table
and the two-step delete confirmation
"""

from datetime import datetime
from typing import List, Optional, Sequence

import pandas as pd
import pytz

from date_utils import format_korean_datetime
from safety_taxonomy import FIELD_LABELS, LEAF_FIELDS, iter_leaves
from weekly_report import WeeklyReport

ALL_WEEKS = ''
ALL_WEEKS_LABEL = '-- 전체 주차 --'
NO_DATE_LABEL = '날짜 없음'
PROOF_LINK_LABEL = '링크 열기'

SITE_COLUMN = ('현장명', '', '')
PROOF_COLUMN = ('증빙 링크', '', '')
CREATED_COLUMN = ('제출일시', '', '')

_OLDEST = pytz.utc.localize(datetime.min)


def available_weeks(reports: Sequence[WeeklyReport]) -> List[str]:
    """Distinct reporting weeks, most recent first (YYYY-Www sorts lexicographically)"""
    return sorted({r.reporting_week for r in reports if r.reporting_week}, reverse=True)


def filter_by_week(reports: Sequence[WeeklyReport], week: str) -> List[WeeklyReport]:
    if not week:
        return list(reports)
    return [r for r in reports if r.reporting_week == week]


def sort_by_site(reports: Sequence[WeeklyReport]) -> List[WeeklyReport]:
    return sorted(reports, key=lambda r: r.site_name or '')


def sort_by_created_desc(reports: Sequence[WeeklyReport]) -> List[WeeklyReport]:
    return sorted(reports, key=lambda r: r.created_at_datetime or _OLDEST, reverse=True)


def period_label(week: str) -> str:
    return f"{week} 주차" if week else '전체 기간'


def summary_text(week: str, count: int) -> str:
    return f"{period_label(week)} 동안 총 {count}개의 보고서가 있습니다."


def format_created_at(report: WeeklyReport, tz_name: str = 'Asia/Seoul') -> str:
    created = report.created_at_datetime
    if created is None:
        return NO_DATE_LABEL
    return format_korean_datetime(created, tz_name)


class WeekFilter:
    """Selected week; jumps to the most recent week whenever the set of weeks changes"""

    def __init__(self):
        self.selected = ALL_WEEKS
        self._known_weeks: Optional[List[str]] = None

    def sync(self, weeks: Sequence[str]) -> bool:
        """Returns True when the selection was reset to the newest week"""
        weeks = list(weeks)
        if weeks == self._known_weeks:
            return False
        self._known_weeks = weeks
        if weeks:
            self.selected = weeks[0]
            return True
        return False

    def select(self, week: str):
        self.selected = week or ALL_WEEKS

    def apply(self, reports: Sequence[WeeklyReport]) -> List[WeeklyReport]:
        return sort_by_site(filter_by_week(reports, self.selected))


class DeleteConfirmation:
    """Two-step delete: request opens the prompt, confirm deletes, cancel closes"""

    PROMPT = '이 보고서를 정말 삭제하시겠습니까? 이 작업은 되돌릴 수 없습니다.'

    def __init__(self):
        self.pending_id: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.pending_id is not None

    def request(self, report_id: str):
        self.pending_id = report_id

    def cancel(self):
        self.pending_id = None

    def confirm(self, controller) -> bool:
        if self.pending_id is None:
            return False
        report_id = self.pending_id
        try:
            return controller.delete_report(report_id)
        finally:
            self.pending_id = None


def build_report_table(reports: Sequence[WeeklyReport], tz_name: str = 'Asia/Seoul',
                       include_created: bool = True) -> pd.DataFrame:
    """
    Pivot reports into one row per report with a (category, subcategory, field)
    column MultiIndex, bracketed by site name, proof link and creation time.
    """
    columns = [SITE_COLUMN]
    for cat, sub in iter_leaves():
        for field in LEAF_FIELDS:
            columns.append((cat['name'], sub['name'], FIELD_LABELS[field]))
    columns.append(PROOF_COLUMN)
    if include_created:
        columns.append(CREATED_COLUMN)

    rows = []
    for report in reports:
        row = [report.site_name]
        for cat, sub in iter_leaves():
            leaf = report.leaf(cat['id'], sub['id'])
            row.extend(leaf.get(field, '') for field in LEAF_FIELDS)
        row.append(report.proof_link)
        if include_created:
            row.append(format_created_at(report, tz_name))
        rows.append(row)

    table = pd.DataFrame(rows, columns=pd.MultiIndex.from_tuples(columns))
    table.index = [r.id for r in reports]
    return table
