# controlboard/api/deps.py
from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional
from zoneinfo import ZoneInfo

from fastapi import Depends, Query

from controlboard.core.auth import get_scope_filter
from controlboard.core.config import APP_TIMEZONE
from controlboard.core.exceptions import EntityNotFound
from controlboard.core.scoping import ScopeFilter
from controlboard.crud.store import SqlComplianceStore
from controlboard.schemas.compliance import Entity, PeriodOverride
from controlboard.services.engine import ComplianceEngine
from controlboard.services.periods import validate_as_of

MONTH_PATTERN = r"^\d{4}-(0[1-9]|1[0-2])$"


def today() -> date:
    return datetime.now(ZoneInfo(APP_TIMEZONE)).date()


def get_store() -> SqlComplianceStore:
    return SqlComplianceStore()


def get_engine(store: SqlComplianceStore = Depends(get_store)) -> ComplianceEngine:
    return ComplianceEngine(store)


def get_as_of(
    as_of: Optional[date] = Query(None, description="Evaluation date (default: today)."),
) -> date:
    """The one place where "today" is read; everything downstream gets it injected."""
    return validate_as_of(as_of if as_of is not None else today())


def get_period_override(
    month: Optional[str] = Query(
        None, pattern=MONTH_PATTERN, description="Historical month YYYY-MM."
    ),
) -> Optional[PeriodOverride]:
    return PeriodOverride(month=month) if month else None


def visible_controls(
    store: SqlComplianceStore,
    scope: ScopeFilter,
    framework_id: Optional[int] = None,
) -> List[Entity]:
    return store.list_visible_controls(scope, framework_id)


def get_visible_control(
    control_id: int,
    store: SqlComplianceStore = Depends(get_store),
    scope: ScopeFilter = Depends(get_scope_filter),
) -> Entity:
    # invisible and missing look the same to the caller
    for c in visible_controls(store, scope):
        if c.id == control_id:
            return c
    raise EntityNotFound("Control not found.", details={"control_id": control_id})


def get_visible_kpi(
    kpi_id: int,
    store: SqlComplianceStore = Depends(get_store),
    scope: ScopeFilter = Depends(get_scope_filter),
) -> Entity:
    kpi = store.get_kpi(kpi_id)
    if kpi is None or not any(c.id == kpi.control_id for c in visible_controls(store, scope)):
        raise EntityNotFound("KPI not found.", details={"kpi_id": kpi_id})
    return kpi
