# date_utils.py
"""
Reporting-week and Korean locale date helpers
"""

import re
from datetime import date, datetime
from typing import Optional

import pytz

REPORTING_WEEK_PATTERN = re.compile(r'^(\d{4})-W(\d{2})$')


def get_iso_week(value: date) -> int:
    """ISO-8601 week number: week 1 is the week holding the year's first Thursday"""
    return value.isocalendar()[1]


def format_reporting_week(value: date) -> str:
    """Format a date as a reporting week string, e.g. 2025-W30"""
    # The week-based year differs from the calendar year around New Year
    iso_year, iso_week, _ = value.isocalendar()
    return f"{iso_year}-W{iso_week:02d}"


def is_valid_reporting_week(week: str) -> bool:
    match = REPORTING_WEEK_PATTERN.match(week or '')
    if not match:
        return False
    year, week_number = int(match.group(1)), int(match.group(2))
    if year < 1:
        return False
    # Dec 28 always falls in the last ISO week of its year
    weeks_in_year = date(year, 12, 28).isocalendar()[1]
    return 1 <= week_number <= weeks_in_year


def now_in_timezone(tz_name: str) -> datetime:
    return datetime.now(pytz.timezone(tz_name))


def utc_now() -> datetime:
    return datetime.now(pytz.utc)


def to_iso_timestamp(value: datetime) -> str:
    """UTC ISO string with millisecond precision and Z suffix"""
    value = value.astimezone(pytz.utc)
    return value.strftime('%Y-%m-%dT%H:%M:%S.') + f"{value.microsecond // 1000:03d}Z"


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a stored createdAt value into an aware datetime, or None"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else pytz.utc.localize(value)
    try:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else pytz.utc.localize(parsed)


def format_korean_date(value: date) -> str:
    """Korean short date, e.g. 2025. 7. 21."""
    return f"{value.year}. {value.month}. {value.day}."


def format_korean_datetime(value: datetime, tz_name: str = 'Asia/Seoul') -> str:
    """Korean date and 12-hour time, e.g. 2025. 7. 21. 오후 3:04:05"""
    local = value.astimezone(pytz.timezone(tz_name))
    meridiem = '오전' if local.hour < 12 else '오후'
    hour = local.hour % 12 or 12
    return f"{format_korean_date(local)} {meridiem} {hour}:{local.minute:02d}:{local.second:02d}"
