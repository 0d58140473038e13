# controlboard/models/team.py
from datetime import datetime

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from controlboard.db.base import Base


class Team(Base):
    __tablename__ = "teams"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(120), nullable=False, unique=True)
    created_at = Column(DateTime, nullable=False, default=datetime.utcnow)

    members = relationship("TeamMember", back_populates="team", cascade="all, delete-orphan")
    permissions = relationship(
        "TeamPermission", back_populates="team", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Team id={self.id} name={self.name!r}>"


class TeamMember(Base):
    __tablename__ = "team_members"
    __table_args__ = (UniqueConstraint("team_id", "user_id", name="ux_team_members"),)

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    # identity lives outside this service; user_id is the gateway-supplied id
    user_id = Column(String(64), nullable=False, index=True)

    team = relationship("Team", back_populates="members")


class TeamPermission(Base):
    """Permission keys granted to every member of a team (e.g. 'dashboard:view_all')."""

    __tablename__ = "team_permissions"
    __table_args__ = (
        UniqueConstraint("team_id", "permission_key", name="ux_team_permissions"),
    )

    id = Column(Integer, primary_key=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=False, index=True)
    permission_key = Column(String(120), nullable=False, index=True)

    team = relationship("Team", back_populates="permissions")
