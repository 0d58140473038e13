# controlboard/schemas/dashboard.py
from datetime import date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class StatusCounts(BaseModel):
    effective: int = 0
    warning: int = 0
    out_of_standard: int = 0
    pending: int = 0
    overdue: int = 0
    not_applicable: int = 0
    total: int = 0


class MonthlySeries(BaseModel):
    month: str  # YYYY-MM
    as_of: date
    counts: StatusCounts = Field(default_factory=StatusCounts)
    pct_in_target: float = 0.0


class CriticalEntity(BaseModel):
    entity_id: int
    kind: Literal["control", "kpi"]
    code: str
    name: str
    owner_name: Optional[str] = None
    risk_classification: Optional[str] = None
    period_end: Optional[date] = None
    due_date: Optional[date] = None
    status: str
    status_label: str
    status_kind: Literal["danger", "warning", "info", "neutral"]


class DashboardSummary(BaseModel):
    as_of: date
    scope: str  # "all" | "teams" | "custom"
    counts: StatusCounts = Field(default_factory=StatusCounts)
    counts_by_kind: Dict[str, StatusCounts] = Field(default_factory=dict)

    # summary cards
    critical_risk_count: int = 0
    kpis_out_of_target: int = 0
    executions_pending_review: int = 0

    trend: List[MonthlySeries] = Field(default_factory=list)
    critical: List[CriticalEntity] = Field(default_factory=list)
