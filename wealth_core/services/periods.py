from __future__ import annotations

import datetime as dt
from typing import List, Optional, Sequence, Tuple

from wealth_core.domain.models import Snapshot, TimePeriod

TRAILING_MONTHS = {
    TimePeriod.ONE_YEAR: 12,
    TimePeriod.THREE_YEAR: 36,
    TimePeriod.FIVE_YEAR: 60,
}


def _shift_months(date: dt.date, months: int) -> dt.date:
    index = date.year * 12 + (date.month - 1) + months
    return dt.date(index // 12, index % 12 + 1, 1)


def period_date_range(
    period: TimePeriod,
    now: dt.date,
    custom_start: Optional[dt.date] = None,
    custom_end: Optional[dt.date] = None,
) -> Optional[Tuple[dt.date, dt.date]]:
    """
    Inclusive date range for a named period. Start dates are anchored to the
    first day of the start month; ALL has no range (None), as has CUSTOM
    without both bounds.
    """
    period = TimePeriod(period)
    if period is TimePeriod.YTD:
        return dt.date(now.year, 1, 1), now
    if period in TRAILING_MONTHS:
        return _shift_months(now, -(TRAILING_MONTHS[period] - 1)), now
    if period is TimePeriod.CUSTOM:
        if custom_start is None or custom_end is None:
            return None
        return dt.date(custom_start.year, custom_start.month, 1), custom_end
    return None


def snapshots_for_period(
    snapshots: Sequence[Snapshot],
    period: TimePeriod,
    now: Optional[dt.date] = None,
    custom_start: Optional[dt.date] = None,
    custom_end: Optional[dt.date] = None,
) -> List[Snapshot]:
    """Non-dummy snapshots whose month start falls inside the period, sorted by month."""
    period = TimePeriod(period)
    real = sorted((s for s in snapshots if not s.is_dummy), key=lambda s: s.key)
    if period is TimePeriod.ALL:
        return real

    bounds = period_date_range(period, now or dt.date.today(), custom_start, custom_end)
    if bounds is None:
        return []
    start, end = bounds
    return [s for s in real if start <= s.date <= end]
