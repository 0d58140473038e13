"""Tests for expected-period, due-date and applicability math."""
from datetime import date, datetime

import pytest

from controlboard.core.exceptions import DateArithmeticOverflow
from controlboard.schemas.compliance import Cadence, PeriodOverride
from controlboard.services.periods import (
    add_months,
    anchor_months,
    due_date_for,
    is_applicable,
    month_options,
    parse_month,
    period_end_for,
    reporting_month,
    resolve_override,
    resolve_period,
    validate_as_of,
)

TRACKED = (Cadence.MONTHLY, Cadence.QUARTERLY, Cadence.SEMIANNUAL, Cadence.ANNUAL)


class TestPeriodResolution:
    """Most recently completed period per cadence."""

    def test_monthly(self):
        p = resolve_period(1, Cadence.MONTHLY, date(2024, 2, 20))
        assert p.period_end == date(2024, 1, 31)
        assert p.due_date == date(2024, 2, 14)

    def test_monthly_in_january_reports_december(self):
        assert period_end_for(Cadence.MONTHLY, date(2024, 1, 1)) == date(2023, 12, 31)

    def test_quarterly(self):
        p = resolve_period(1, Cadence.QUARTERLY, date(2024, 4, 15))
        assert p.period_end == date(2024, 3, 31)
        assert p.due_date == date(2024, 5, 31)

    def test_quarterly_grace_crosses_leap_february(self):
        p = resolve_period(1, Cadence.QUARTERLY, date(2024, 1, 5))
        assert p.period_end == date(2023, 12, 31)
        assert p.due_date == date(2024, 2, 29)

    def test_semiannual_first_half(self):
        assert period_end_for(Cadence.SEMIANNUAL, date(2024, 3, 1)) == date(2023, 12, 31)

    def test_semiannual_second_half(self):
        p = resolve_period(1, Cadence.SEMIANNUAL, date(2024, 8, 1))
        assert p.period_end == date(2024, 6, 30)
        assert p.due_date == date(2024, 8, 31)

    def test_annual(self):
        p = resolve_period(1, Cadence.ANNUAL, date(2024, 6, 1))
        assert p.period_end == date(2023, 12, 31)
        assert p.due_date == date(2024, 11, 30)

    def test_on_demand_has_no_period(self):
        assert resolve_period(1, Cadence.ON_DEMAND, date(2024, 6, 1)) is None
        assert due_date_for(Cadence.ON_DEMAND, date(2024, 5, 31)) is None

    @pytest.mark.parametrize("cadence", TRACKED)
    def test_due_date_never_precedes_period_end(self, cadence):
        for month in range(1, 13):
            for day in (1, 14, 15, 28):
                p = resolve_period(1, cadence, date(2024, month, day))
                assert p.due_date >= p.period_end
                assert p.period_end < date(2024, month, day)


class TestApplicability:
    """Anchor months follow period ends."""

    def test_anchor_months(self):
        assert anchor_months(Cadence.QUARTERLY) == {1, 4, 7, 10}
        assert anchor_months(Cadence.SEMIANNUAL) == {1, 7}
        assert anchor_months(Cadence.ANNUAL) == {1}
        assert anchor_months(Cadence.MONTHLY) == set(range(1, 13))
        assert anchor_months(Cadence.ON_DEMAND) == set(range(1, 13))

    @pytest.mark.parametrize("cadence", TRACKED)
    def test_anchor_months_match_period_resolution(self, cadence):
        """Applicable exactly in the months that report the period just closed."""
        for month in range(1, 13):
            as_of = date(2024, month, 10)
            reported = reporting_month(period_end_for(cadence, as_of))
            assert is_applicable(cadence, month) == (reported == month)

    def test_quarterly_not_applicable_in_may(self):
        assert not is_applicable(Cadence.QUARTERLY, 5)

    def test_reporting_month_wraps_year(self):
        assert reporting_month(date(2023, 12, 31)) == 1


class TestOverride:
    """Caller-selected historical periods."""

    def test_month_override(self):
        p = resolve_override(7, Cadence.MONTHLY, PeriodOverride(month="2024-01"))
        assert p.entity_id == 7
        assert p.period_end == date(2024, 1, 31)
        assert p.due_date == date(2024, 2, 14)

    def test_explicit_period_end(self):
        p = resolve_override(7, Cadence.QUARTERLY, PeriodOverride(period_end=date(2024, 3, 31)))
        assert p.period_end == date(2024, 3, 31)
        assert p.due_date == date(2024, 5, 31)

    def test_override_matches_live_period(self):
        """A historical view of a period agrees with the live view of it."""
        live = resolve_period(1, Cadence.MONTHLY, date(2024, 2, 20))
        past = resolve_override(1, Cadence.MONTHLY, PeriodOverride(month="2024-01"))
        assert live == past

    def test_empty_override_rejected(self):
        with pytest.raises(DateArithmeticOverflow):
            resolve_override(1, Cadence.MONTHLY, PeriodOverride())

    def test_on_demand_override_has_no_period(self):
        assert resolve_override(1, Cadence.ON_DEMAND, PeriodOverride(month="2024-01")) is None


class TestCalendarHelpers:
    def test_add_months(self):
        assert add_months(2024, 1, -1) == (2023, 12)
        assert add_months(2024, 11, 2) == (2025, 1)
        assert add_months(2024, 3, -15) == (2022, 12)

    def test_parse_month(self):
        assert parse_month("2024-02") == (2024, 2)

    @pytest.mark.parametrize("bad", ["2024-13", "2024", "abcd-ef", "2024-00"])
    def test_parse_month_rejects_garbage(self, bad):
        with pytest.raises(DateArithmeticOverflow):
            parse_month(bad)

    def test_month_options_newest_first(self):
        assert month_options(date(2024, 2, 10), 3) == ["2024-02", "2024-01", "2023-12"]


class TestValidation:
    """Out-of-calendar inputs raise instead of clamping."""

    def test_datetime_rejected(self):
        with pytest.raises(DateArithmeticOverflow):
            validate_as_of(datetime(2024, 2, 20, 12, 0))

    def test_string_rejected(self):
        with pytest.raises(DateArithmeticOverflow):
            validate_as_of("2024-02-20")

    @pytest.mark.parametrize("as_of", [date(1, 1, 1), date(9999, 12, 31)])
    def test_calendar_edges_rejected(self, as_of):
        with pytest.raises(DateArithmeticOverflow):
            resolve_period(1, Cadence.MONTHLY, as_of)

    def test_overflow_is_a_value_error(self):
        with pytest.raises(ValueError):
            validate_as_of(date(9999, 1, 1))
