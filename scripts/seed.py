#!/usr/bin/env python3
"""
Demo seed:
- Two teams (one with the dashboard:view_all permission).
- A framework with monthly/quarterly/annual/on-demand controls and their KPIs.
- Executions for the last closed monthly period, graded with auto_status.
Safe to run multiple times (idempotent by control_code / kpi_code).
"""
import os
import sys
from datetime import date, datetime

# enable 'controlboard.' imports
sys.path.append(os.getcwd())

from sqlalchemy.orm import Session

from controlboard.core.config import DASHBOARD_VIEW_ALL_PERMISSION
from controlboard.db.session import SessionLocal, engine
from controlboard.models import Base
from controlboard.models.control import Control, Framework
from controlboard.models.execution import KpiExecution
from controlboard.models.kpi import Kpi
from controlboard.models.team import Team, TeamMember, TeamPermission
from controlboard.services.auto_status import compute_auto_status
from controlboard.services.periods import period_end_for
from controlboard.schemas.compliance import Cadence

CONTROLS = [
    # code, name, frequency, risk, team
    ("AC-01", "Access review", "Mensal", "high", "grc"),
    ("BK-02", "Backup restore test", "Trimestral", "critical", "it"),
    ("PL-03", "Policy attestation", "Anual", "medium", None),
    ("IR-04", "Incident drill", "Sob demanda", "low", "it"),
]

KPIS = {
    "AC-01": [("AC-01-K1", "Accounts reviewed (%)", "percent", ">=", 95.0)],
    "BK-02": [("BK-02-K1", "Restore succeeded", "boolean", "=", 1.0)],
    "PL-03": [("PL-03-K1", "Staff attested (%)", "percent", ">=", 90.0)],
    "IR-04": [("IR-04-K1", "Mean time to contain (h)", "numeric", "<=", 4.0)],
}


def ensure_team(db: Session, name: str, members, permissions=()) -> Team:
    team = db.query(Team).filter(Team.name == name).first()
    if team is None:
        team = Team(name=name)
        db.add(team)
        db.flush()
    for user_id in members:
        if not any(m.user_id == user_id for m in team.members):
            team.members.append(TeamMember(user_id=user_id))
    for key in permissions:
        if not any(p.permission_key == key for p in team.permissions):
            team.permissions.append(TeamPermission(permission_key=key))
    return team


def seed(db: Session, today: date) -> int:
    teams = {
        "grc": ensure_team(db, "grc", ["alice"], [DASHBOARD_VIEW_ALL_PERMISSION]),
        "it": ensure_team(db, "it", ["bob"]),
    }

    fw = db.query(Framework).filter(Framework.name == "ISO 27001").first()
    if fw is None:
        fw = Framework(name="ISO 27001")
        db.add(fw)
        db.flush()

    period_end = period_end_for(Cadence.MONTHLY, today)
    created = 0
    for code, name, frequency, risk, team in CONTROLS:
        control = db.query(Control).filter(Control.control_code == code).first()
        if control is None:
            control = Control(
                control_code=code,
                name=name,
                framework_id=fw.id,
                team_id=teams[team].id if team else None,
                frequency=frequency,
                risk_classification=risk,
                owner_name="Demo Owner",
            )
            db.add(control)
            db.flush()
            created += 1

        for kpi_code, kpi_name, kpi_type, op, target in KPIS[code]:
            kpi = db.query(Kpi).filter(Kpi.kpi_code == kpi_code).first()
            if kpi is None:
                kpi = Kpi(
                    control_id=control.id,
                    kpi_code=kpi_code,
                    kpi_name=kpi_name,
                    kpi_type=kpi_type,
                    target_operator=op,
                    target_value=target,
                )
                db.add(kpi)
                db.flush()

            if code != "AC-01":
                continue
            exists = (
                db.query(KpiExecution.id)
                .filter(KpiExecution.kpi_id == kpi.id, KpiExecution.period_end == period_end)
                .first()
            )
            if exists is None:
                value = 93.0  # inside the 5% band → warning
                db.add(
                    KpiExecution(
                        kpi_id=kpi.id,
                        control_id=control.id,
                        period_start=period_end.replace(day=1),
                        period_end=period_end,
                        result_numeric=value,
                        auto_status=compute_auto_status(kpi_type, op, target, value),
                        workflow_status="submitted",
                        created_at=datetime.utcnow(),
                    )
                )

    db.commit()
    return created


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        created = seed(db, date.today())
        print(f"OK: demo data ensured ({created} new controls)")
    finally:
        db.close()


if __name__ == "__main__":
    main()
