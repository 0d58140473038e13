# controlboard/crud/store.py
"""
SQLAlchemy-backed ComplianceStore.

Each call opens its own session so the engine can fan calls out over threads.
ORM rows are mapped to frozen schemas here; frequency text is normalized to a
Cadence once, at this boundary.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import date
from typing import Callable, Iterator, List, Optional, Sequence

from sqlalchemy.orm import Session

from controlboard.core.exceptions import ScopeResolutionFailure
from controlboard.core.scoping import ScopeFilter
from controlboard.crud import execution as crud_execution
from controlboard.db.session import SessionLocal
from controlboard.models.control import Control
from controlboard.models.execution import KpiExecution
from controlboard.models.kpi import Kpi
from controlboard.schemas.compliance import Entity, Execution
from controlboard.services.frequency import normalize_frequency

# archived controls stay in the table but leave the dashboard
INACTIVE_CONTROL_STATUS = "inactive"


def control_to_entity(c: Control) -> Entity:
    return Entity(
        id=c.id,
        kind="control",
        code=c.control_code,
        name=c.name,
        cadence=normalize_frequency(c.frequency, c.frequency_key),
        frequency=c.frequency,
        risk_classification=c.risk_classification,
        owner_name=c.owner_name,
        control_id=c.id,
    )


def kpi_to_entity(k: Kpi, parent: Entity) -> Entity:
    """KPIs report on their parent control's cadence and inherit its risk/owner."""
    return Entity(
        id=k.id,
        kind="kpi",
        code=k.kpi_code,
        name=k.kpi_name,
        cadence=parent.cadence,
        frequency=parent.frequency,
        risk_classification=parent.risk_classification,
        owner_name=parent.owner_name,
        control_id=parent.id,
    )


def execution_to_schema(e: KpiExecution) -> Execution:
    return Execution(
        id=e.id,
        kpi_id=e.kpi_id,
        control_id=e.control_id,
        period_start=e.period_start,
        period_end=e.period_end,
        result_numeric=e.result_numeric,
        result_boolean=e.result_boolean,
        auto_status=e.auto_status,
        workflow_status=e.workflow_status,
        created_at=e.created_at,
    )


class SqlComplianceStore:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal) -> None:
        self.session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self.session_factory()
        try:
            yield db
        finally:
            db.close()

    # ---- controls ------------------------------------------------------------
    def list_visible_controls(
        self, scope_filter: ScopeFilter, framework_id: Optional[int] = None
    ) -> List[Entity]:
        with self._session() as db:
            visible = scope_filter.list_visible_entity_ids(db)
            if visible is not None and not isinstance(visible, (set, frozenset)):
                raise ScopeResolutionFailure(
                    "Scope filter returned an invalid id set.",
                    details={"scope": getattr(scope_filter, "name", None)},
                )

            q = db.query(Control).filter(Control.status != INACTIVE_CONTROL_STATUS)
            if visible is not None:
                if not visible:
                    return []
                q = q.filter(Control.id.in_(sorted(visible)))
            if framework_id is not None:
                q = q.filter(Control.framework_id == framework_id)
            return [control_to_entity(c) for c in q.order_by(Control.id.asc()).all()]

    # ---- KPIs ----------------------------------------------------------------
    def list_visible_kpis_for_control(self, control_id: int) -> List[Entity]:
        with self._session() as db:
            c = db.query(Control).filter(Control.id == control_id).first()
            if c is None:
                return []
            parent = control_to_entity(c)
            rows = (
                db.query(Kpi)
                .filter(Kpi.control_id == control_id, Kpi.is_active.is_(True))
                .order_by(Kpi.id.asc())
                .all()
            )
            return [kpi_to_entity(k, parent) for k in rows]

    def get_kpi(self, kpi_id: int) -> Optional[Entity]:
        with self._session() as db:
            k = db.query(Kpi).filter(Kpi.id == kpi_id).first()
            if k is None:
                return None
            return kpi_to_entity(k, control_to_entity(k.control))

    # ---- executions ----------------------------------------------------------
    def list_executions(
        self, kind: str, entity_id: int, period_end: Optional[date] = None
    ) -> List[Execution]:
        """A control's executions are those of all its KPIs."""
        with self._session() as db:
            if kind == "kpi":
                rows = crud_execution.list_executions(db, kpi_id=entity_id, period_end=period_end)
            else:
                rows = crud_execution.list_executions(db, control_id=entity_id, period_end=period_end)
            return [execution_to_schema(e) for e in rows]

    def count_executions_pending_review(
        self,
        control_ids: Optional[Sequence[int]],
        period_from: date,
        period_to: date,
    ) -> int:
        with self._session() as db:
            return crud_execution.count_pending_review(db, control_ids, period_from, period_to)
