"""Tests for execution auto-status grading."""
import pytest

from controlboard.services.auto_status import (
    compute_auto_status,
    is_boolean_type,
    normalize_operator,
)


class TestOperatorNormalization:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            (">=", "gte"),
            ("GTE", "gte"),
            ("greater or equal", "gte"),
            ("<=", "lte"),
            ("le", "lte"),
            ("less than or equal", "lte"),
            ("=", "eq"),
            ("equals", "eq"),
            (">", "unknown"),
            (None, "unknown"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_operator(raw) == expected

    def test_boolean_types(self):
        assert is_boolean_type("boolean")
        assert is_boolean_type("SimNao")
        assert not is_boolean_type("percent")
        assert not is_boolean_type(None)


class TestNumericGrading:
    """5% warning band around the target."""

    def test_higher_is_better(self):
        assert compute_auto_status("percent", ">=", 95, 96) == "in_target"
        assert compute_auto_status("percent", ">=", 95, 95) == "in_target"
        assert compute_auto_status("percent", ">=", 100, 96) == "warning"
        assert compute_auto_status("percent", ">=", 100, 94) == "out_of_target"

    def test_lower_is_better(self):
        assert compute_auto_status("numeric", "<=", 4, 3) == "in_target"
        assert compute_auto_status("numeric", "<=", 100, 104) == "warning"
        assert compute_auto_status("numeric", "<=", 100, 106) == "out_of_target"

    def test_equality_has_no_band(self):
        assert compute_auto_status("numeric", "=", 10, 10) == "in_target"
        assert compute_auto_status("numeric", "=", 10, 10.2) == "out_of_target"

    def test_custom_buffer(self):
        assert compute_auto_status("percent", ">=", 100, 89, buffer_pct=0.1) == "out_of_target"
        assert compute_auto_status("percent", ">=", 100, 91, buffer_pct=0.1) == "warning"

    def test_missing_value_is_unknown(self):
        assert compute_auto_status("numeric", ">=", 10, None) == "unknown"

    def test_unknown_operator_is_unknown(self):
        assert compute_auto_status("numeric", ">", 10, 11) == "unknown"


class TestBooleanGrading:
    def test_expected_true(self):
        assert compute_auto_status("boolean", "=", 1, result_boolean=True) == "in_target"
        assert compute_auto_status("boolean", "=", 1, result_boolean=False) == "out_of_target"

    def test_expected_false(self):
        assert compute_auto_status("boolean", "=", 0, result_boolean=False) == "in_target"

    def test_missing_boolean_is_unknown(self):
        assert compute_auto_status("boolean", "=", 1, result_numeric=1) == "unknown"


class TestNoTarget:
    def test_missing_target_is_not_applicable(self):
        assert compute_auto_status("percent", ">=", None, 50) == "not_applicable"
