# controlboard/services/matcher.py
from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from controlboard.schemas.compliance import Execution


def match_execution(executions: Iterable[Execution], period_end: date) -> Optional[Execution]:
    """
    Authoritative execution for `period_end`: exact period_end match only,
    latest created_at wins (highest id on equal timestamps). None when nothing
    matches.

    Never raises AmbiguousExecutionMatch: (created_at, id) is a total order,
    so resubmissions always resolve to a single row and an empty result is
    "no execution", not an error.
    """
    best: Optional[Execution] = None
    for e in executions:
        if e.period_end != period_end:
            continue
        if best is None or (e.created_at, e.id) > (best.created_at, best.id):
            best = e
    return best
