# controlboard/crud/execution.py
import logging
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy import func
from sqlalchemy.orm import Session

from controlboard.core.config import REVIEW_QUEUE_STATES
from controlboard.models.execution import AUTO_STATUS, KpiExecution
from controlboard.models.kpi import Kpi
from controlboard.services.auto_status import DEFAULT_BUFFER_PCT, compute_auto_status

log = logging.getLogger("controlboard.crud.execution")


def list_executions(
    db: Session,
    *,
    kpi_id: Optional[int] = None,
    control_id: Optional[int] = None,
    period_end: Optional[date] = None,
) -> List[KpiExecution]:
    q = db.query(KpiExecution)
    if kpi_id is not None:
        q = q.filter(KpiExecution.kpi_id == kpi_id)
    if control_id is not None:
        q = q.filter(KpiExecution.control_id == control_id)
    if period_end is not None:
        q = q.filter(KpiExecution.period_end == period_end)
    return q.order_by(KpiExecution.created_at.desc(), KpiExecution.id.desc()).all()


def count_pending_review(
    db: Session,
    control_ids: Optional[Sequence[int]],
    period_from: date,
    period_to: date,
) -> int:
    """
    Executions waiting on the reviewing team whose period closed in
    [period_from, period_to]. `control_ids=None` means every control.
    """
    if control_ids is not None and not control_ids:
        return 0

    q = db.query(func.count(KpiExecution.id)).filter(
        KpiExecution.workflow_status.in_(REVIEW_QUEUE_STATES),
        KpiExecution.period_end >= period_from,
        KpiExecution.period_end <= period_to,
    )
    if control_ids is not None:
        q = q.filter(KpiExecution.control_id.in_(list(control_ids)))
    return int(q.scalar() or 0)


def recompute_auto_statuses(
    db: Session,
    *,
    buffer_pct: float = DEFAULT_BUFFER_PCT,
) -> int:
    """
    Re-grade every execution against its KPI's current target.
    Returns the number of rows whose auto_status changed.
    """
    rows = (
        db.query(KpiExecution, Kpi)
        .join(Kpi, Kpi.id == KpiExecution.kpi_id)
        .order_by(KpiExecution.id.asc())
        .all()
    )

    changed = 0
    for execution, kpi in rows:
        auto = compute_auto_status(
            kpi.kpi_type,
            kpi.target_operator,
            kpi.target_value,
            execution.result_numeric,
            execution.result_boolean,
            buffer_pct=buffer_pct,
        )
        # never persist a value outside the column vocabulary
        if auto not in AUTO_STATUS:
            auto = "unknown"
        if execution.auto_status != auto:
            execution.auto_status = auto
            changed += 1

    if changed:
        db.commit()
    log.info("auto_status recompute: %d of %d executions changed", changed, len(rows))
    return changed
