# report_form.py
"""
Submission form model: initial state, field updates, validation and the
editing -> submitting -> editing state machine
"""

import copy
import logging
from datetime import datetime
from typing import Callable, Dict, Optional

from date_utils import format_korean_date, format_reporting_week, is_valid_reporting_week, now_in_timezone
from safety_taxonomy import LEAF_FIELDS, SITES, empty_categories, iter_leaves
from weekly_report import WeeklyReport

logger = logging.getLogger(__name__)

EDITING = 'editing'
SUBMITTING = 'submitting'

MSG_NOT_CONNECTED = '데이터베이스에 연결되지 않았습니다.'
MSG_NOT_AUTHENTICATED = '로그인 정보가 없습니다.'
MSG_WEEK_REQUIRED = '보고 주차를 입력하세요.'
MSG_WEEK_FORMAT = '보고 주차 형식이 올바르지 않습니다. (예: 2025-W30)'


def widget_key(category_id: str, subcategory_id: str, field: str) -> str:
    return f"form_{category_id}_{subcategory_id}_{field}"


class SubmissionFormModel:
    """Form state for one weekly report"""

    def __init__(self, tz_name: str = 'Asia/Seoul', now: Optional[Callable[[], datetime]] = None):
        self.tz_name = tz_name
        self.now = now or (lambda: now_in_timezone(self.tz_name))
        self.phase = EDITING
        self.reset()

    @property
    def is_submitting(self) -> bool:
        return self.phase == SUBMITTING

    def reset(self):
        """Back to the initial state, recomputing the current week and date"""
        today = self.now()
        self.reporting_week = format_reporting_week(today)
        self.site_name = SITES[0]
        self.proof_link = ''
        self.categories = empty_categories()
        self.today_display = format_korean_date(today)

    def update_category(self, category_id: str, subcategory_id: str, field: str, value: str):
        if field not in LEAF_FIELDS:
            raise KeyError(field)
        self.categories[category_id][subcategory_id][field] = value or ''

    def to_report(self) -> WeeklyReport:
        return WeeklyReport(
            reporting_week=(self.reporting_week or '').strip(),
            site_name=self.site_name,
            categories=copy.deepcopy(self.categories),
            proof_link=(self.proof_link or '').strip(),
        )

    def widget_state(self) -> Dict[str, str]:
        """Values keyed by Streamlit widget key"""
        state = {
            'form_reportingWeek': self.reporting_week,
            'form_siteName': self.site_name,
            'form_proofLink': self.proof_link,
        }
        for cat, sub in iter_leaves():
            for field in LEAF_FIELDS:
                state[widget_key(cat['id'], sub['id'], field)] = self.categories[cat['id']][sub['id']][field]
        return state

    def load_widget_state(self, state):
        self.reporting_week = state.get('form_reportingWeek', self.reporting_week) or ''
        self.site_name = state.get('form_siteName', self.site_name)
        self.proof_link = state.get('form_proofLink', self.proof_link) or ''
        for cat, sub in iter_leaves():
            for field in LEAF_FIELDS:
                key = widget_key(cat['id'], sub['id'], field)
                if key in state:
                    self.update_category(cat['id'], sub['id'], field, state[key])

    def validate(self, connected: bool, user_id: Optional[str]) -> Optional[str]:
        """First failing check as a user-facing message, or None"""
        if not connected:
            return MSG_NOT_CONNECTED
        if not user_id:
            return MSG_NOT_AUTHENTICATED
        week = (self.reporting_week or '').strip()
        if not week:
            return MSG_WEEK_REQUIRED
        if not is_valid_reporting_week(week):
            return MSG_WEEK_FORMAT
        return None

    def begin_submit(self, controller) -> bool:
        """Validate and enter the submitting phase; nothing is written yet"""
        if self.is_submitting:
            logger.warning("Submit ignored: a submission is already in progress")
            return False

        message = self.validate(controller.connected, controller.user_id)
        if message:
            controller.alerts.error(message)
            return False

        self.phase = SUBMITTING
        return True

    def finish_submit(self, controller) -> Optional[str]:
        """Write through the controller and return to editing; resets on success and returns the new id"""
        if not self.is_submitting:
            return None

        try:
            report_id = controller.create_report(self.to_report())
        finally:
            self.phase = EDITING

        if report_id:
            self.reset()
        return report_id
