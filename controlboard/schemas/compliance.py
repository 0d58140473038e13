# controlboard/schemas/compliance.py
from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Cadence(str, Enum):
    """Normalized reporting frequency. ON_DEMAND is never period-tracked."""

    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"
    ON_DEMAND = "on_demand"


class Status(str, Enum):
    EFFECTIVE = "effective"
    WARNING = "warning"
    OUT_OF_STANDARD = "out_of_standard"
    PENDING = "pending"
    OVERDUE = "overdue"
    NOT_APPLICABLE = "not_applicable"


EntityKind = Literal["control", "kpi"]
AutoStatus = Literal["in_target", "warning", "out_of_target", "unknown", "not_applicable"]

# critical > high > medium > low > unclassified
RISK_PRIORITY = {"critical": 4, "high": 3, "medium": 2, "low": 1}


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True)


class Entity(_Frozen):
    """A control or KPI as the engine sees it: cadence already normalized."""

    id: int
    kind: EntityKind
    code: str
    name: str
    cadence: Cadence
    frequency: Optional[str] = Field(None, description="Raw catalog text, display only.")
    risk_classification: Optional[str] = None
    owner_name: Optional[str] = None
    control_id: int = Field(..., description="Parent control (equals id for controls).")

    @property
    def priority(self) -> int:
        return RISK_PRIORITY.get((self.risk_classification or "").lower(), 0)


class Execution(_Frozen):
    id: int
    kpi_id: int
    control_id: int
    period_start: Optional[date] = None
    period_end: date
    result_numeric: Optional[float] = None
    result_boolean: Optional[bool] = None
    auto_status: Optional[str] = None
    workflow_status: Optional[str] = None
    created_at: datetime


class ExpectedPeriod(_Frozen):
    entity_id: int
    cadence: Cadence
    period_end: date
    due_date: date


class PeriodOverride(_Frozen):
    """
    Caller-selected period (e.g. a historical month picked in the UI).
    Either `month` (the reported month) or an explicit `period_end`.
    """

    month: Optional[str] = Field(None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
    period_end: Optional[date] = None


class EntityStatus(_Frozen):
    entity_id: int
    kind: EntityKind
    cadence: Cadence
    period_end: Optional[date] = None
    due_date: Optional[date] = None
    status: Status
    matched_execution_id: Optional[int] = None
    matched_execution_created_at: Optional[datetime] = None
    auto_status: Optional[str] = None


class ControlRollup(_Frozen):
    """Control period status folded from its KPIs (worst severity wins)."""

    control_id: int
    month: str
    status: Status
    # out_of_standard at control level is shown as "critical"
    status_label: str
    applicable: bool
    kpis: list[EntityStatus] = Field(default_factory=list)
