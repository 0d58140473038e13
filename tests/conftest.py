"""Pytest fixtures for the compliance status engine."""
import os

# settings are read at import time
os.environ.setdefault("ENABLE_SCHEDULER", "0")
os.environ.setdefault("ENABLE_CREATE_ALL", "0")
os.environ.setdefault("DATABASE_URL", "sqlite:///./controlboard_test.db")

from datetime import date, datetime
from typing import Dict, List, Optional, Sequence

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from controlboard.models import Base
from controlboard.models.control import Control, Framework
from controlboard.models.execution import KpiExecution
from controlboard.models.kpi import Kpi
from controlboard.models.team import Team, TeamMember, TeamPermission
from controlboard.schemas.compliance import Cadence, Entity, Execution
from controlboard.services.engine import ComplianceEngine


def make_entity(
    id: int = 1,
    kind: str = "control",
    cadence: Cadence = Cadence.MONTHLY,
    risk: Optional[str] = "high",
    control_id: Optional[int] = None,
) -> Entity:
    return Entity(
        id=id,
        kind=kind,
        code=f"{kind[:1].upper()}-{id}",
        name=f"{kind} {id}",
        cadence=cadence,
        risk_classification=risk,
        owner_name="Owner",
        control_id=control_id if control_id is not None else id,
    )


def make_execution(
    id: int,
    period_end: date,
    auto_status: Optional[str] = "in_target",
    created_at: datetime = datetime(2024, 2, 5, 10, 0),
    kpi_id: int = 1,
    control_id: int = 1,
    workflow_status: str = "approved",
) -> Execution:
    return Execution(
        id=id,
        kpi_id=kpi_id,
        control_id=control_id,
        period_end=period_end,
        auto_status=auto_status,
        workflow_status=workflow_status,
        created_at=created_at,
    )


class FakeStore:
    """In-memory ComplianceStore keyed by (kind, entity_id)."""

    def __init__(self) -> None:
        self.controls: List[Entity] = []
        self.kpis: Dict[int, List[Entity]] = {}
        self.executions: Dict[tuple, List[Execution]] = {}
        self.execution_calls = 0

    def add_execution(self, kind: str, entity_id: int, execution: Execution) -> None:
        self.executions.setdefault((kind, entity_id), []).append(execution)

    def list_visible_controls(self, scope_filter, framework_id=None) -> List[Entity]:
        visible = scope_filter.list_visible_entity_ids(None)
        if visible is None:
            return list(self.controls)
        return [c for c in self.controls if c.id in visible]

    def list_visible_kpis_for_control(self, control_id: int) -> List[Entity]:
        return list(self.kpis.get(control_id, []))

    def list_executions(self, kind, entity_id, period_end=None) -> List[Execution]:
        self.execution_calls += 1
        rows = self.executions.get((kind, entity_id), [])
        if period_end is not None:
            rows = [e for e in rows if e.period_end == period_end]
        return list(rows)

    def count_executions_pending_review(
        self, control_ids: Optional[Sequence[int]], period_from: date, period_to: date
    ) -> int:
        ids = set(control_ids or [])
        return sum(
            1
            for rows in self.executions.values()
            for e in rows
            if e.control_id in ids
            and period_from <= e.period_end <= period_to
            and e.workflow_status in ("submitted", "under_review", "needs_changes")
        )


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def engine(store):
    return ComplianceEngine(store, max_workers=4)


# ---- database ----------------------------------------------------------------

@pytest.fixture
def session_factory(tmp_path):
    """File-backed SQLite so every engine worker thread gets its own connection."""
    db_engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    Base.metadata.create_all(bind=db_engine)
    factory = sessionmaker(bind=db_engine, autocommit=False, autoflush=False, future=True)
    yield factory
    db_engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def seeded(db):
    """
    Two teams and four controls:
      AC-1 monthly/high (grc)    AC-2 quarterly/critical (it)
      AC-3 monthly/low (no team) AC-4 monthly/high (it, inactive)
    alice is in grc, bob in it, root holds dashboard:view_all.
    """
    grc = Team(name="grc")
    it = Team(name="it")
    admins = Team(name="admins")
    db.add_all([grc, it, admins])
    db.flush()
    db.add_all([
        TeamMember(team_id=grc.id, user_id="alice"),
        TeamMember(team_id=it.id, user_id="bob"),
        TeamMember(team_id=admins.id, user_id="root"),
        TeamPermission(team_id=admins.id, permission_key="dashboard:view_all"),
    ])

    fw = Framework(name="ISO 27001")
    other_fw = Framework(name="SOC 2")
    db.add_all([fw, other_fw])
    db.flush()

    c1 = Control(control_code="AC-1", name="Access review", frequency="Mensal",
                 risk_classification="high", team_id=grc.id, framework_id=fw.id)
    c2 = Control(control_code="AC-2", name="Backup test", frequency="Trimestral",
                 risk_classification="critical", team_id=it.id, framework_id=other_fw.id)
    c3 = Control(control_code="AC-3", name="Policy read", frequency="monthly",
                 risk_classification="low", team_id=None, framework_id=fw.id)
    c4 = Control(control_code="AC-4", name="Retired", frequency="monthly",
                 risk_classification="high", team_id=it.id, status="inactive")
    db.add_all([c1, c2, c3, c4])
    db.flush()

    k1 = Kpi(control_id=c1.id, kpi_code="AC-1-K1", kpi_name="Reviewed %",
             kpi_type="percent", target_operator=">=", target_value=95.0)
    k2 = Kpi(control_id=c1.id, kpi_code="AC-1-K2", kpi_name="Orphans",
             kpi_type="numeric", target_operator="<=", target_value=0.0, is_active=False)
    k3 = Kpi(control_id=c2.id, kpi_code="AC-2-K1", kpi_name="Restore ok",
             kpi_type="boolean", target_operator="=", target_value=1.0)
    db.add_all([k1, k2, k3])
    db.flush()

    db.add_all([
        KpiExecution(kpi_id=k1.id, control_id=c1.id, period_end=date(2024, 1, 31),
                     result_numeric=80.0, auto_status="in_target",
                     workflow_status="submitted", created_at=datetime(2024, 2, 3, 9, 0)),
        KpiExecution(kpi_id=k1.id, control_id=c1.id, period_end=date(2024, 1, 31),
                     result_numeric=80.0, auto_status="out_of_target",
                     workflow_status="under_review", created_at=datetime(2024, 2, 4, 9, 0)),
        KpiExecution(kpi_id=k3.id, control_id=c2.id, period_end=date(2023, 12, 31),
                     result_boolean=True, auto_status="in_target",
                     workflow_status="approved", created_at=datetime(2024, 1, 10, 9, 0)),
    ])
    db.commit()
    return {
        "teams": {"grc": grc.id, "it": it.id, "admins": admins.id},
        "frameworks": {"iso": fw.id, "soc2": other_fw.id},
        "controls": {"AC-1": c1.id, "AC-2": c2.id, "AC-3": c3.id, "AC-4": c4.id},
        "kpis": {"AC-1-K1": k1.id, "AC-1-K2": k2.id, "AC-2-K1": k3.id},
    }


@pytest.fixture
def client(session_factory):
    from fastapi.testclient import TestClient

    from controlboard.api.deps import get_store
    from controlboard.crud.store import SqlComplianceStore
    from controlboard.db.session import get_db
    from controlboard.main import app

    def _get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_store] = lambda: SqlComplianceStore(session_factory)
    app.dependency_overrides[get_db] = _get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
