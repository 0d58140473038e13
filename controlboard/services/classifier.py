# controlboard/services/classifier.py
from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Optional, Sequence

from controlboard.schemas.compliance import (
    Cadence,
    ControlRollup,
    Entity,
    EntityStatus,
    Execution,
    ExpectedPeriod,
    Status,
)

AUTO_STATUS_MAP = {
    "in_target": Status.EFFECTIVE,
    "warning": Status.WARNING,
    "out_of_target": Status.OUT_OF_STANDARD,
    "not_applicable": Status.NOT_APPLICABLE,
}

# Control roll-up: worst KPI wins
SEVERITY = {
    Status.OUT_OF_STANDARD: 5,
    Status.WARNING: 4,
    Status.OVERDUE: 3,
    Status.PENDING: 2,
    Status.EFFECTIVE: 1,
    Status.NOT_APPLICABLE: 0,
}

STATUS_LABELS = {
    Status.OUT_OF_STANDARD: "critical",
    Status.WARNING: "gap",
    Status.OVERDUE: "overdue",
    Status.PENDING: "pending",
    Status.EFFECTIVE: "effective",
    Status.NOT_APPLICABLE: "not_applicable",
}


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def status_from_auto(auto_status: Optional[str]) -> Status:
    """Unrecognized or missing auto_status counts as pending."""
    return AUTO_STATUS_MAP.get(_norm(auto_status), Status.PENDING)


def classify(
    entity: Entity,
    expected: Optional[ExpectedPeriod],
    execution: Optional[Execution],
    as_of: date,
    *,
    applicable: bool = True,
) -> EntityStatus:
    """
    Terminal status for one entity and period:
      1. not applicable this month         → not_applicable
      2. no expected period (on demand)    → not_applicable
      3. no execution: past due → overdue, else pending
      4. execution: mapped from auto_status
    """
    base = dict(
        entity_id=entity.id,
        kind=entity.kind,
        cadence=entity.cadence,
        period_end=expected.period_end if expected else None,
        due_date=expected.due_date if expected else None,
    )

    if not applicable or expected is None:
        return EntityStatus(status=Status.NOT_APPLICABLE, **base)

    if execution is None:
        status = Status.OVERDUE if as_of > expected.due_date else Status.PENDING
        return EntityStatus(status=status, **base)

    return EntityStatus(
        status=status_from_auto(execution.auto_status),
        matched_execution_id=execution.id,
        matched_execution_created_at=execution.created_at,
        auto_status=execution.auto_status,
        **base,
    )


def worst_status(statuses: Iterable[EntityStatus]) -> Status:
    """Highest-severity status; pending when nothing gradeable was found."""
    worst = max((SEVERITY[s.status] for s in statuses), default=0)
    return next(
        (st for st, sev in SEVERITY.items() if sev == worst and worst > 0),
        Status.PENDING,
    )


def control_status(
    control: Entity,
    expected: Optional[ExpectedPeriod],
    kpi_statuses: Sequence[EntityStatus],
    *,
    applicable: bool = True,
) -> EntityStatus:
    """
    A control's period status folded from its KPIs, in the same shape as a
    KPI status. The matched execution is the most recent one among the KPIs
    carrying the winning status.
    """
    base = dict(
        entity_id=control.id,
        kind=control.kind,
        cadence=control.cadence,
        period_end=expected.period_end if expected else None,
        due_date=expected.due_date if expected else None,
    )
    if not applicable or expected is None:
        return EntityStatus(status=Status.NOT_APPLICABLE, **base)

    status = worst_status(kpi_statuses)
    matched = [
        s for s in kpi_statuses if s.status == status and s.matched_execution_id is not None
    ]
    if not matched:
        return EntityStatus(status=status, **base)

    latest = max(
        matched,
        key=lambda s: (s.matched_execution_created_at or datetime.min, s.matched_execution_id),
    )
    return EntityStatus(
        status=status,
        matched_execution_id=latest.matched_execution_id,
        matched_execution_created_at=latest.matched_execution_created_at,
        auto_status=latest.auto_status,
        **base,
    )


def rollup_control(
    control: Entity,
    kpi_statuses: Iterable[EntityStatus],
    month: str,
    *,
    applicable: bool,
) -> ControlRollup:
    """
    Fold KPI statuses into the control's period status. A control with no
    gradeable KPI in an applicable month is still pending.
    """
    kpis = sorted(kpi_statuses, key=lambda s: s.entity_id)

    if not applicable or control.cadence == Cadence.ON_DEMAND:
        status = Status.NOT_APPLICABLE
    else:
        status = worst_status(kpis)

    return ControlRollup(
        control_id=control.id,
        month=month,
        status=status,
        status_label=STATUS_LABELS[status],
        applicable=status != Status.NOT_APPLICABLE,
        kpis=kpis,
    )
