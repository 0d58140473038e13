# controlboard/api/v1/kpis.py
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from controlboard.api.deps import get_as_of, get_engine, get_period_override, get_visible_kpi
from controlboard.schemas.compliance import Entity, EntityStatus, PeriodOverride
from controlboard.services.engine import ComplianceEngine

router = APIRouter(prefix="/kpis", tags=["kpis"])


@router.get("/{kpi_id}/status", response_model=EntityStatus)
def kpi_status(
    kpi: Entity = Depends(get_visible_kpi),
    override: Optional[PeriodOverride] = Depends(get_period_override),
    as_of: date = Depends(get_as_of),
    engine: ComplianceEngine = Depends(get_engine),
):
    return engine.evaluate_entity(kpi, as_of, override)
