# controlboard/models/control.py
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Text, DateTime, ForeignKey, CheckConstraint, Index
)
from sqlalchemy.orm import relationship

from controlboard.db.base import Base

# NOTE: keep simple string "enums" for SQLite portability
CONTROL_STATUS = ("active", "inactive", "pending")
RISK_CLASSIFICATION = ("low", "medium", "high", "critical")


class Framework(Base):
    __tablename__ = "frameworks"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Framework id={self.id} name={self.name!r}>"


class Control(Base):
    __tablename__ = "controls"

    id = Column(Integer, primary_key=True, index=True)
    control_code = Column(String(50), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    framework_id = Column(Integer, ForeignKey("frameworks.id", ondelete="SET NULL"), nullable=True, index=True)
    # NULL team → visible to every team
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True, index=True)

    # free text from the catalog ("Mensal", "quarterly", ...); frequency_key is the
    # controlled-vocabulary value when the catalog form filled it
    frequency = Column(String(80), nullable=True)
    frequency_key = Column(String(30), nullable=True)

    # low | medium | high | critical
    risk_classification = Column(String(20), nullable=True, index=True)

    owner_name = Column(String(255), nullable=True)
    owner_email = Column(String(255), nullable=True)

    # active | inactive | pending (archived controls stay in the table)
    status = Column(String(20), nullable=False, default="active", index=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    framework = relationship("Framework")
    kpis = relationship("Kpi", back_populates="control", passive_deletes=True)

    __table_args__ = (
        CheckConstraint(
            f"status IN {CONTROL_STATUS}",
            name="ck_controls_status_allowed",
        ),
        Index("ix_controls_team_framework", "team_id", "framework_id"),
    )

    def __repr__(self) -> str:
        return f"<Control id={self.id} code={self.control_code!r} frequency={self.frequency!r}>"
