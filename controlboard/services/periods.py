# controlboard/services/periods.py
"""
Expected reporting period and due date per cadence.

All dates are calendar days, inclusive, with no timezone handling: callers pass
an `as_of` already normalized to the reference timezone.

    monthly     period_end = last day of the previous month
                due_date   = 14th of as_of's month
    quarterly   period_end = last day of the previous quarter
                due_date   = last day of the 2nd month after period_end
    semiannual  period_end = Dec 31 (prior year) in H1, Jun 30 in H2
                due_date   = as quarterly
    annual      period_end = Dec 31 of the prior year
                due_date   = Nov 30 of the following year
    on_demand   no expected period
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta
from typing import FrozenSet, List, Optional

from controlboard.core.exceptions import DateArithmeticOverflow
from controlboard.schemas.compliance import Cadence, ExpectedPeriod, PeriodOverride

MONTHLY_DUE_DAY = 14
GRACE_MONTHS = 2
ANNUAL_DUE_MONTH = 11

# Months (1-12) in which each period of a cadence closes
_PERIOD_END_MONTHS = {
    Cadence.MONTHLY: frozenset(range(1, 13)),
    Cadence.QUARTERLY: frozenset({3, 6, 9, 12}),
    Cadence.SEMIANNUAL: frozenset({6, 12}),
    Cadence.ANNUAL: frozenset({12}),
}

# Leave one year of headroom on both sides for period/due arithmetic
MIN_YEAR = date.min.year + 1
MAX_YEAR = date.max.year - 1


# ---- Calendar helpers --------------------------------------------------------
def month_end(year: int, month: int) -> date:
    return date(year, month, calendar.monthrange(year, month)[1])


def add_months(year: int, month: int, n: int) -> tuple[int, int]:
    idx = year * 12 + (month - 1) + n
    return idx // 12, idx % 12 + 1


def month_key(d: date) -> str:
    return d.strftime("%Y-%m")


def parse_month(value: str) -> tuple[int, int]:
    """'YYYY-MM' → (year, month); DateArithmeticOverflow on malformed input."""
    try:
        y, m = value.split("-")
        year, month = int(y), int(m)
    except (AttributeError, ValueError):
        raise DateArithmeticOverflow(f"Invalid month {value!r}; expected YYYY-MM.")
    if not 1 <= month <= 12:
        raise DateArithmeticOverflow(f"Invalid month {value!r}; expected YYYY-MM.")
    _check_year(year, value)
    return year, month


def _check_year(year: int, value: object) -> None:
    if not MIN_YEAR <= year <= MAX_YEAR:
        raise DateArithmeticOverflow(
            f"Date {value} is outside the supported range {MIN_YEAR}-{MAX_YEAR}.",
            details={"value": str(value)},
        )


def validate_as_of(as_of: object) -> date:
    """Reject anything that is not a plain date inside the supported range."""
    # datetime is a date subclass; a datetime here means an un-normalized caller
    if not isinstance(as_of, date) or isinstance(as_of, datetime):
        raise DateArithmeticOverflow(f"as_of must be a date, got {type(as_of).__name__}.")
    _check_year(as_of.year, as_of)
    return as_of


# ---- Period math -------------------------------------------------------------
def period_end_for(cadence: Cadence, as_of: date) -> Optional[date]:
    """Last day of the most recently completed period for `cadence` as of `as_of`."""
    if cadence == Cadence.ON_DEMAND:
        return None
    validate_as_of(as_of)

    if cadence == Cadence.MONTHLY:
        return as_of.replace(day=1) - timedelta(days=1)

    if cadence == Cadence.QUARTERLY:
        quarter_start_month = 3 * ((as_of.month - 1) // 3) + 1
        return date(as_of.year, quarter_start_month, 1) - timedelta(days=1)

    if cadence == Cadence.SEMIANNUAL:
        if as_of.month <= 6:
            return date(as_of.year - 1, 12, 31)
        return date(as_of.year, 6, 30)

    # annual
    return date(as_of.year - 1, 12, 31)


def due_date_for(cadence: Cadence, period_end: date) -> Optional[date]:
    """Last day an execution for the period ending `period_end` is on time."""
    if cadence == Cadence.ON_DEMAND:
        return None
    _check_year(period_end.year, period_end)

    if cadence == Cadence.MONTHLY:
        y, m = add_months(period_end.year, period_end.month, 1)
        return date(y, m, MONTHLY_DUE_DAY)

    if cadence in (Cadence.QUARTERLY, Cadence.SEMIANNUAL):
        y, m = add_months(period_end.year, period_end.month, GRACE_MONTHS)
        return month_end(y, m)

    # annual: Nov 30 of the year after the reported year
    return month_end(period_end.year + 1, ANNUAL_DUE_MONTH)


def resolve_period(entity_id: int, cadence: Cadence, as_of: date) -> Optional[ExpectedPeriod]:
    period_end = period_end_for(cadence, as_of)
    if period_end is None:
        return None
    return ExpectedPeriod(
        entity_id=entity_id,
        cadence=cadence,
        period_end=period_end,
        due_date=due_date_for(cadence, period_end),
    )


def resolve_override(
    entity_id: int, cadence: Cadence, override: PeriodOverride
) -> Optional[ExpectedPeriod]:
    """
    Expected period for a caller-selected period. A `month` selects the period
    ending on that month's last day; an explicit `period_end` is used as-is.
    """
    if cadence == Cadence.ON_DEMAND:
        return None
    if override.period_end is not None:
        period_end = override.period_end
        _check_year(period_end.year, period_end)
    elif override.month:
        year, month = parse_month(override.month)
        period_end = month_end(year, month)
    else:
        raise DateArithmeticOverflow("Period override needs a month or a period_end.")

    return ExpectedPeriod(
        entity_id=entity_id,
        cadence=cadence,
        period_end=period_end,
        due_date=due_date_for(cadence, period_end),
    )


# ---- Applicability -----------------------------------------------------------
def anchor_months(cadence: Cadence) -> FrozenSet[int]:
    """
    Months in which a new period of `cadence` becomes reportable: the month
    right after each period end. Monthly/on-demand are reportable every month.
    """
    if cadence == Cadence.ON_DEMAND:
        return frozenset(range(1, 13))
    return frozenset(add_months(2000, m, 1)[1] for m in _PERIOD_END_MONTHS[cadence])


def is_applicable(cadence: Cadence, month: int) -> bool:
    return month in anchor_months(cadence)


def reporting_month(period_end: date) -> int:
    """Calendar month (1-12) in which the period ending `period_end` is reported."""
    return add_months(period_end.year, period_end.month, 1)[1]


def month_options(as_of: date, count: int = 12) -> List[str]:
    """'YYYY-MM' for the last `count` months up to as_of's month, newest first."""
    validate_as_of(as_of)
    out: List[str] = []
    for k in range(max(0, count)):
        y, m = add_months(as_of.year, as_of.month, -k)
        _check_year(y, f"{y:04d}-{m:02d}")
        out.append(f"{y:04d}-{m:02d}")
    return out
