"""Tests for catalog frequency normalization."""
import logging

import pytest

from controlboard.schemas.compliance import Cadence
from controlboard.services.frequency import normalize_frequency


class TestControlledVocabulary:
    """Exact keys (en/pt) map directly."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Mensal", Cadence.MONTHLY),
            ("monthly", Cadence.MONTHLY),
            ("Trimestral", Cadence.QUARTERLY),
            ("Semestral", Cadence.SEMIANNUAL),
            ("Anual", Cadence.ANNUAL),
            ("yearly", Cadence.ANNUAL),
            ("Sob demanda", Cadence.ON_DEMAND),
            ("on-demand", Cadence.ON_DEMAND),
        ],
    )
    def test_exact_keys(self, raw, expected):
        assert normalize_frequency(raw) == expected

    def test_weekly_and_daily_are_tracked_monthly(self):
        """Sub-monthly cadences report on the monthly cycle."""
        assert normalize_frequency("Semanal") == Cadence.MONTHLY
        assert normalize_frequency("daily") == Cadence.MONTHLY

    def test_frequency_key_wins_over_text(self):
        """A stored controlled-vocabulary key beats the free text."""
        assert normalize_frequency("Mensal", frequency_key="quarterly") == Cadence.QUARTERLY

    def test_invalid_frequency_key_falls_back_to_text(self):
        assert normalize_frequency("Anual", frequency_key="bogus") == Cadence.ANNUAL


class TestPatterns:
    """Free text is matched by substring patterns."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Revisão trimestral (Q1-Q4)", Cadence.QUARTERLY),
            ("every quarter", Cadence.QUARTERLY),
            ("semestralmente", Cadence.SEMIANNUAL),
            ("Half-yearly", Cadence.SEMIANNUAL),
            ("once a year", Cadence.ANNUAL),
            ("ad hoc", Cadence.ON_DEMAND),
            ("mensalmente", Cadence.MONTHLY),
            ("every week", Cadence.MONTHLY),
        ],
    )
    def test_patterns(self, raw, expected):
        assert normalize_frequency(raw) == expected

    def test_semiannual_is_not_annual(self):
        """'semiannual' contains 'annual' but must stay semiannual."""
        assert normalize_frequency("semi-annual review") == Cadence.SEMIANNUAL


class TestFallback:
    """Unknown text never raises."""

    def test_unknown_text_defaults_to_monthly(self, caplog):
        with caplog.at_level(logging.WARNING, logger="controlboard.frequency"):
            assert normalize_frequency("whenever the moon is full") == Cadence.MONTHLY
        assert "Unrecognized frequency" in caplog.text

    def test_missing_text_defaults_to_monthly(self):
        assert normalize_frequency(None) == Cadence.MONTHLY
        assert normalize_frequency("   ") == Cadence.MONTHLY


class TestAnnualPattern:
    """Only word-initial 'anual' or 'annual'/'year' mean annual."""

    def test_manual_is_not_annual(self, caplog):
        with caplog.at_level(logging.WARNING, logger="controlboard.frequency"):
            assert normalize_frequency("Manual") == Cadence.MONTHLY
        assert "Unrecognized frequency" in caplog.text

    def test_month_name_is_not_annual(self):
        assert normalize_frequency("January review") == Cadence.MONTHLY

    def test_annual_adverbs(self):
        assert normalize_frequency("anualmente") == Cadence.ANNUAL
        assert normalize_frequency("Revisão anual") == Cadence.ANNUAL
        assert normalize_frequency("annually") == Cadence.ANNUAL
