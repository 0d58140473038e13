# controlboard/worker/scheduler.py
from __future__ import annotations

import logging
from datetime import date, datetime
from zoneinfo import ZoneInfo

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from sqlalchemy.exc import SQLAlchemyError

from controlboard.core.config import APP_SCHEDULER_HOUR, APP_SCHEDULER_MINUTE, APP_TIMEZONE
from controlboard.core.exceptions import ControlboardError
from controlboard.core.scoping import AllVisible
from controlboard.crud.execution import recompute_auto_statuses
from controlboard.crud.store import SqlComplianceStore
from controlboard.db.session import SessionLocal
from controlboard.services.engine import ComplianceEngine

log = logging.getLogger("controlboard.scheduler")


def _with_db(fn, **kwargs) -> int:
    """Run `fn` with a fresh DB session; returns its int result (0 on DB failure)."""
    db = SessionLocal()
    try:
        return int(fn(db, **kwargs) or 0)
    except SQLAlchemyError:
        db.rollback()
        log.exception("job step %s failed", getattr(fn, "__name__", fn))
        return 0
    finally:
        db.close()


def portfolio_snapshot(as_of: date) -> dict:
    """Counts for the whole portfolio (no team scoping) as of `as_of`."""
    engine = ComplianceEngine(SqlComplianceStore())
    summary = engine.evaluate_scope(AllVisible(), as_of)
    counts = summary.counts.model_dump()
    log.info(
        "portfolio snapshot as_of=%s total=%d overdue=%d out_of_standard=%d pending_review=%d",
        as_of,
        counts["total"],
        counts["overdue"],
        counts["out_of_standard"],
        summary.executions_pending_review,
    )
    return counts


def run_daily_recompute() -> dict:
    """
    Daily pipeline:
      - re-grade every execution's auto_status against current KPI targets
      - log a portfolio snapshot for today (APP_TIMEZONE)
    """
    changed = _with_db(recompute_auto_statuses)

    as_of = datetime.now(ZoneInfo(APP_TIMEZONE)).date()
    try:
        counts = portfolio_snapshot(as_of)
    except (ControlboardError, SQLAlchemyError):
        log.exception("portfolio snapshot failed as_of=%s", as_of)
        counts = {}

    return {"auto_status_changed": changed, "as_of": as_of.isoformat(), "counts": counts}


def make_scheduler() -> BackgroundScheduler:
    """
    BackgroundScheduler configured from env:
      - APP_TIMEZONE          (default: UTC)
      - APP_SCHEDULER_HOUR    (default: 5)
      - APP_SCHEDULER_MINUTE  (default: 30)
    """
    sched = BackgroundScheduler(timezone=APP_TIMEZONE)
    sched.add_job(
        run_daily_recompute,
        CronTrigger(hour=APP_SCHEDULER_HOUR, minute=APP_SCHEDULER_MINUTE),
        id="daily_recompute",
        replace_existing=True,
    )
    return sched
