# controlboard/services/auto_status.py
"""
Grading of a single KPI execution against its target.

Produces the `auto_status` stored on kpi_executions:
  in_target | warning | out_of_target | unknown | not_applicable
"""
from __future__ import annotations

from typing import Optional

DEFAULT_BUFFER_PCT = 0.05

_BOOLEAN_TYPES = {"yesno", "simnao", "sim_nao"}


def normalize_operator(op: Optional[str]) -> str:
    """Maps free-text operators to gte | lte | eq | unknown."""
    s = (op or "").strip().lower()

    if s in (">=", "gte", "ge", "gt_or_eq") or ("greater" in s and "equal" in s):
        return "gte"
    if s in ("<=", "lte", "le", "lt_or_eq") or ("less" in s and "equal" in s):
        return "lte"
    if s in ("=", "==", "eq", "equals"):
        return "eq"
    return "unknown"


def is_boolean_type(kpi_type: Optional[str]) -> bool:
    s = (kpi_type or "").strip().lower()
    return "bool" in s or s in _BOOLEAN_TYPES


def compute_auto_status(
    kpi_type: Optional[str],
    target_operator: Optional[str],
    target_value: Optional[float],
    result_numeric: Optional[float] = None,
    result_boolean: Optional[bool] = None,
    *,
    buffer_pct: float = DEFAULT_BUFFER_PCT,
) -> str:
    # no target configured
    if target_value is None:
        return "not_applicable"

    target = float(target_value)

    # boolean KPIs have no warning band
    if is_boolean_type(kpi_type):
        if not isinstance(result_boolean, bool):
            return "unknown"
        return "in_target" if result_boolean == (target >= 1) else "out_of_target"

    if result_numeric is None:
        return "unknown"
    val = float(result_numeric)

    op = normalize_operator(target_operator)

    if op == "gte":  # higher is better
        if val >= target:
            return "in_target"
        if val >= target * (1 - buffer_pct):
            return "warning"
        return "out_of_target"

    if op == "lte":  # lower is better
        if val <= target:
            return "in_target"
        if val <= target * (1 + buffer_pct):
            return "warning"
        return "out_of_target"

    if op == "eq":
        return "in_target" if val == target else "out_of_target"

    return "unknown"
