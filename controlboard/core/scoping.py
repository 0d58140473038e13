# controlboard/core/scoping.py
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Protocol, Set, runtime_checkable

from sqlalchemy import or_
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from controlboard.core.config import DASHBOARD_VIEW_ALL_PERMISSION
from controlboard.core.exceptions import ScopeResolutionFailure
from controlboard.models.control import Control
from controlboard.models.team import TeamMember, TeamPermission

log = logging.getLogger("controlboard.scoping")


@runtime_checkable
class ScopeFilter(Protocol):
    """
    Visibility restriction applied before entities reach the engine.
    `list_visible_entity_ids` returns visible control ids, or None for "no
    restriction". Failures raise ScopeResolutionFailure.
    """

    name: str

    def list_visible_entity_ids(self, db: Session) -> Optional[Set[int]]:
        ...


# ---- Team / permission helpers -----------------------------------------------

def get_user_team_ids(db: Session, user_id: str) -> List[int]:
    rows = db.query(TeamMember.team_id).filter(TeamMember.user_id == user_id).all()
    return [tid for (tid,) in rows]


def has_team_permission(db: Session, team_ids: Iterable[int], permission_key: str) -> bool:
    team_ids = list(team_ids)
    if not team_ids:
        return False
    return (
        db.query(TeamPermission.id)
        .filter(
            TeamPermission.team_id.in_(team_ids),
            TeamPermission.permission_key == permission_key,
        )
        .first()
        is not None
    )


# ---- Implementations ---------------------------------------------------------

class AllVisible:
    """No restriction (scheduler jobs, super users)."""

    name = "all"

    def list_visible_entity_ids(self, db: Session) -> Optional[Set[int]]:
        return None


class FixedScope:
    """Explicit id set supplied by the caller."""

    name = "custom"

    def __init__(self, control_ids: Iterable[int]) -> None:
        self.control_ids = frozenset(int(i) for i in control_ids)

    def list_visible_entity_ids(self, db: Session) -> Optional[Set[int]]:
        return set(self.control_ids)


class TeamScopeFilter:
    """
    Team-based visibility:
      - a member of a team holding `allow_all_permission` sees everything
      - otherwise: controls of the user's teams + controls with no team
    """

    name = "teams"

    def __init__(
        self,
        user_id: str,
        *,
        allow_all_permission: str = DASHBOARD_VIEW_ALL_PERMISSION,
    ) -> None:
        self.user_id = user_id
        self.allow_all_permission = allow_all_permission

    def list_visible_entity_ids(self, db: Session) -> Optional[Set[int]]:
        try:
            team_ids = get_user_team_ids(db, self.user_id)
            if has_team_permission(db, team_ids, self.allow_all_permission):
                return None

            q = db.query(Control.id)
            if team_ids:
                q = q.filter(or_(Control.team_id.is_(None), Control.team_id.in_(team_ids)))
            else:
                q = q.filter(Control.team_id.is_(None))
            return {cid for (cid,) in q.all()}
        except SQLAlchemyError as exc:
            log.error("scope resolution failed for user=%s: %s", self.user_id, exc)
            raise ScopeResolutionFailure(
                "Could not resolve visible controls.",
                details={"user_id": self.user_id},
            ) from exc
