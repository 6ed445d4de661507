"""
Expiry schedule calculator.

Products made during one production week (Monday to Saturday) all carry the
same expiry date, which moves forward one week per week. Given the anchor
pair (anchor Monday, base expiry Monday) the target for a reference date is::

    monday = reference - weekday        (Sunday counts as next week)
    weeks  = (monday - anchor_monday) // 7
    target = base_expiry_monday + weeks

All functions are pure: no clock is read and no state is kept.
"""

from datetime import date, timedelta

from .types import ScheduleAnchor

DEFAULT_ANCHOR = ScheduleAnchor(
    anchor_monday=date(2025, 8, 11),
    base_expiry_monday=date(2026, 1, 26),
)


def week_start(day: date) -> date:
    """Monday of the ISO week containing ``day``."""
    return day - timedelta(days=day.weekday())


def effective_monday(reference_date: date) -> date:
    """Monday of the production week for a reference date.

    Sunday belongs to the following production week.
    """
    if reference_date.weekday() == 6:
        return week_start(reference_date + timedelta(days=7))
    return week_start(reference_date)


def weeks_passed(reference_date: date, anchor: ScheduleAnchor = DEFAULT_ANCHOR) -> int:
    """Whole weeks between the anchor week and the reference date's week.

    Negative for reference dates before the anchor week.
    """
    return (effective_monday(reference_date) - week_start(anchor.anchor_monday)).days // 7


def compute_target_date(reference_date: date, anchor: ScheduleAnchor = DEFAULT_ANCHOR) -> date:
    """
    Compute the expected expiry date for a reference date.

    Example:
        >>> compute_target_date(date(2025, 9, 1))
        datetime.date(2026, 2, 16)
    """
    return anchor.base_expiry_monday + timedelta(weeks=weeks_passed(reference_date, anchor))


def compute_target(reference_date: date, anchor: ScheduleAnchor = DEFAULT_ANCHOR) -> str:
    """Expected expiry date as ``YYYY-MM-DD``; always a Monday."""
    return compute_target_date(reference_date, anchor).isoformat()


def expected_lot_code(reference_date: date) -> str:
    """
    Lot code printed on a given day: ``LS`` + zero-padded day of year.

    Example:
        >>> expected_lot_code(date(2025, 8, 11))
        'LS223'
    """
    return f"LS{reference_date.timetuple().tm_yday:03d}"
