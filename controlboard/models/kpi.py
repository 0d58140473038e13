# controlboard/models/kpi.py
from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Boolean, DateTime, ForeignKey
from sqlalchemy.orm import relationship

from controlboard.db.base import Base


class Kpi(Base):
    __tablename__ = "kpis"

    id = Column(Integer, primary_key=True, index=True)
    control_id = Column(Integer, ForeignKey("controls.id", ondelete="CASCADE"), nullable=False, index=True)

    kpi_code = Column(String(50), nullable=False, index=True)
    kpi_name = Column(String(255), nullable=False)

    # numeric | percent | boolean
    kpi_type = Column(String(30), nullable=True)
    # >= | <= | = (free text tolerated; graded by services.auto_status)
    target_operator = Column(String(30), nullable=True)
    target_value = Column(Float, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)
    updated_at = Column(DateTime, nullable=False, default=datetime.utcnow, onupdate=datetime.utcnow)

    control = relationship("Control", back_populates="kpis")

    def __repr__(self) -> str:
        return f"<Kpi id={self.id} code={self.kpi_code!r} control_id={self.control_id}>"
