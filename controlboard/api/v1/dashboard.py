# controlboard/api/v1/dashboard.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from controlboard.api.deps import get_as_of, get_engine, get_store, visible_controls
from controlboard.core.auth import get_scope_filter
from controlboard.core.config import TREND_MONTHS
from controlboard.core.scoping import ScopeFilter
from controlboard.crud.store import SqlComplianceStore
from controlboard.schemas.dashboard import DashboardSummary, MonthlySeries
from controlboard.services.engine import ComplianceEngine

router = APIRouter(prefix="/dashboard", tags=["dashboard"])


@router.get("/summary", response_model=DashboardSummary)
def dashboard_summary(
    framework_id: Optional[int] = Query(None, ge=1),
    as_of: date = Depends(get_as_of),
    scope: ScopeFilter = Depends(get_scope_filter),
    engine: ComplianceEngine = Depends(get_engine),
):
    """
    Summary cards, status counts, trailing trend and the critical list for
    every control/KPI the caller can see.
    """
    return engine.evaluate_scope(scope, as_of, framework_id=framework_id)


@router.get("/trend", response_model=List[MonthlySeries])
def dashboard_trend(
    months_back: int = Query(TREND_MONTHS, ge=1, le=36),
    framework_id: Optional[int] = Query(None, ge=1),
    as_of: date = Depends(get_as_of),
    scope: ScopeFilter = Depends(get_scope_filter),
    store: SqlComplianceStore = Depends(get_store),
    engine: ComplianceEngine = Depends(get_engine),
):
    controls = visible_controls(store, scope, framework_id)
    return engine.evaluate_trend(controls + engine.list_kpis(controls), as_of, months_back)
