"""
Date labels and reporting windows.

The record sheet stores dates as Indonesian display strings
(``Minggu, 18 Oktober 2026``), so every period view re-parses them.
Labels that do not parse are left out of period views.
"""
import re
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from errors import InvalidDateArgument, InvalidPeriodArgument
from models import ActivationRecord
from utils import get_local_time

WEEKDAY_NAMES = ["Senin", "Selasa", "Rabu", "Kamis", "Jumat", "Sabtu", "Minggu"]

MONTH_NAMES = [
    "Januari", "Februari", "Maret", "April", "Mei", "Juni",
    "Juli", "Agustus", "September", "Oktober", "November", "Desember"
]

MONTH_LOOKUP = {name.lower(): number for number, name in enumerate(MONTH_NAMES, start=1)}
MONTH_LOOKUP.update({
    "january": 1, "february": 2, "march": 3, "may": 5, "june": 6, "july": 7,
    "august": 8, "october": 10, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7, "agu": 8, "agt": 8,
    "aug": 8, "sep": 9, "okt": 10, "oct": 10, "nov": 11, "des": 12, "dec": 12,
})

LABEL_PATTERN = re.compile(r'(\d{1,2})\s+([A-Za-z]+)\.?\s+(\d{4})')
NUMERIC_DMY = re.compile(r'^(\d{1,2})[/-](\d{1,2})[/-](\d{4})$')
NUMERIC_YMD = re.compile(r'^(\d{4})-(\d{1,2})-(\d{1,2})$')


class Period(Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


PERIOD_ALIASES = {
    "daily": Period.DAILY, "harian": Period.DAILY, "hari": Period.DAILY, "today": Period.DAILY,
    "weekly": Period.WEEKLY, "mingguan": Period.WEEKLY, "minggu": Period.WEEKLY, "week": Period.WEEKLY,
    "monthly": Period.MONTHLY, "bulanan": Period.MONTHLY, "bulan": Period.MONTHLY, "month": Period.MONTHLY,
}

PERIOD_TITLES = {
    Period.DAILY: "HARIAN",
    Period.WEEKLY: "MINGGUAN",
    Period.MONTHLY: "BULANAN",
}


def format_date_label(day: date) -> str:
    """Render a date the way the record sheet stores it"""
    return f"{WEEKDAY_NAMES[day.weekday()]}, {day.day} {MONTH_NAMES[day.month - 1]} {day.year}"


def today_label() -> str:
    return format_date_label(get_local_time().date())


def _safe_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def parse_date_label(label: str) -> Optional[date]:
    """Parse a stored long-form label back into a date; None when it does not parse."""
    match = LABEL_PATTERN.search(label or "")
    if not match:
        return None
    month = MONTH_LOOKUP.get(match.group(2).lower())
    if not month:
        return None
    return _safe_date(int(match.group(3)), month, int(match.group(1)))


def parse_anchor(value: str) -> date:
    """Parse a user-supplied anchor date (dd/mm/yyyy, dd-mm-yyyy, yyyy-mm-dd or a long label)."""
    text = (value or "").strip()
    parsed = None
    match = NUMERIC_DMY.match(text)
    if match:
        parsed = _safe_date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
    else:
        match = NUMERIC_YMD.match(text)
        if match:
            parsed = _safe_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        else:
            parsed = parse_date_label(text)
    if parsed is None:
        raise InvalidDateArgument(value)
    return parsed


def parse_period(value: str) -> Period:
    period = PERIOD_ALIASES.get((value or "").strip().lower())
    if period is None:
        raise InvalidPeriodArgument(value)
    return period


def parse_period_args(args: str, default: Period = Period.DAILY) -> Tuple[Period, Optional[date]]:
    """Split '[period] [date]' command arguments."""
    text = (args or "").strip()
    period, anchor = default, None
    head, _, rest = text.partition(" ")
    if head.isalpha():
        period = parse_period(head)
        text = rest.strip()
    if text:
        anchor = parse_anchor(text)
    return period, anchor


def period_window(period: Period, anchor: date) -> Tuple[date, date]:
    """Inclusive first and last calendar day of the period containing anchor."""
    if period is Period.DAILY:
        return anchor, anchor
    if period is Period.WEEKLY:
        # isoweekday: Monday=1 .. Sunday=7
        start = anchor - timedelta(days=anchor.isoweekday() - 1)
        return start, start + timedelta(days=6)
    start = anchor.replace(day=1)
    next_month = (start + timedelta(days=32)).replace(day=1)
    return start, next_month - timedelta(days=1)


def resolve_anchor(anchor: Optional[date] = None) -> date:
    if anchor is None:
        return get_local_time().date()
    if isinstance(anchor, datetime):
        return anchor.date()
    return anchor


def filter_by_period(records: Iterable[ActivationRecord], period: Period,
                     anchor: Optional[date] = None) -> List[ActivationRecord]:
    """Records whose parsed date label falls inside the period window (inclusive)."""
    start, end = period_window(period, resolve_anchor(anchor))
    selected = []
    for record in records:
        day = parse_date_label(record.date_label)
        if day is not None and start <= day <= end:
            selected.append(record)
    return selected


def describe_window(period: Period, anchor: Optional[date] = None) -> str:
    start, end = period_window(period, resolve_anchor(anchor))
    if start == end:
        return format_date_label(start)
    return f"{format_date_label(start)} s/d {format_date_label(end)}"
