# controlboard/api/v1/controls.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends

from controlboard.api.deps import (
    get_as_of,
    get_engine,
    get_period_override,
    get_visible_control,
)
from controlboard.schemas.compliance import ControlRollup, Entity, EntityStatus, PeriodOverride
from controlboard.services.engine import ComplianceEngine

router = APIRouter(prefix="/controls", tags=["controls"])


@router.get("/{control_id}/status", response_model=ControlRollup)
def control_status(
    control: Entity = Depends(get_visible_control),
    override: Optional[PeriodOverride] = Depends(get_period_override),
    as_of: date = Depends(get_as_of),
    engine: ComplianceEngine = Depends(get_engine),
):
    """
    Control status for the live period, or for `month` when given.
    Folded from the control's KPIs: worst status wins.
    """
    return engine.evaluate_control(control, None, as_of, override)


@router.get("/{control_id}/kpis", response_model=List[EntityStatus])
def control_kpis(
    control: Entity = Depends(get_visible_control),
    override: Optional[PeriodOverride] = Depends(get_period_override),
    as_of: date = Depends(get_as_of),
    engine: ComplianceEngine = Depends(get_engine),
):
    kpis = engine.store.list_visible_kpis_for_control(control.id)
    return engine.evaluate_entities(kpis, as_of, override)
