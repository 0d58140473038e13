# controlboard/models/execution.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Float, Boolean, Date, DateTime, Text, ForeignKey, Index
)
from sqlalchemy.orm import relationship

from controlboard.db.base import Base

AUTO_STATUS = ("in_target", "warning", "out_of_target", "unknown", "not_applicable")
WORKFLOW_STATUS = (
    "draft",
    "in_progress",
    "submitted",
    "under_review",
    "needs_changes",
    "approved",
)


class KpiExecution(Base):
    """
    One reported result for a KPI and period. Rows are never updated in place
    by a resubmission: a new row is written and the latest created_at wins.
    """

    __tablename__ = "kpi_executions"

    id = Column(Integer, primary_key=True, index=True)
    kpi_id = Column(Integer, ForeignKey("kpis.id", ondelete="CASCADE"), nullable=False, index=True)
    control_id = Column(Integer, ForeignKey("controls.id", ondelete="CASCADE"), nullable=False, index=True)

    period_start = Column(Date, nullable=True)
    period_end = Column(Date, nullable=False, index=True)

    result_numeric = Column(Float, nullable=True)
    result_boolean = Column(Boolean, nullable=True)

    # in_target | warning | out_of_target | unknown | not_applicable
    auto_status = Column(String(20), nullable=True, index=True)
    # draft | in_progress | submitted | under_review | needs_changes | approved
    workflow_status = Column(String(20), nullable=False, default="draft", index=True)

    notes = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow, index=True)

    kpi = relationship("Kpi")

    __table_args__ = (
        Index("ix_exec_kpi_period", "kpi_id", "period_end"),
        Index("ix_exec_control_period", "control_id", "period_end"),
    )

    def __repr__(self) -> str:
        return (
            f"<KpiExecution id={self.id} kpi_id={self.kpi_id} "
            f"period_end={self.period_end} auto={self.auto_status}>"
        )
