# controlboard/main.py
from __future__ import annotations

import logging

from fastapi import FastAPI

from controlboard.core.config import ENABLE_CREATE_ALL, ENABLE_SCHEDULER, LOG_LEVEL
from controlboard.core.errors import register_exception_handlers
from controlboard.db.session import engine
from controlboard.middleware.request_logging import RequestLoggingMiddleware

# models must be imported before create_all
from controlboard.models import Base

from controlboard.api import health
from controlboard.api.v1 import controls, dashboard, kpis, months
from controlboard.worker.scheduler import make_scheduler

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
log = logging.getLogger("controlboard")

# ---------------------------
# CREATE TABLES (dev-only; guard with env)
# ---------------------------
if ENABLE_CREATE_ALL:
    Base.metadata.create_all(bind=engine)

# ---------------------------
# APP
# ---------------------------
app = FastAPI(
    title="Controlboard",
    version="1.0.0",
    description="Compliance period & status engine for controls and KPIs",
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)

app.include_router(health.router, prefix="/api")
app.include_router(dashboard.router, prefix="/api/v1")
app.include_router(controls.router, prefix="/api/v1")
app.include_router(kpis.router, prefix="/api/v1")
app.include_router(months.router, prefix="/api/v1")


# ---------------------------
# Scheduler (daily auto-status recompute)
# ---------------------------
@app.on_event("startup")
def _start_scheduler():
    app.state.scheduler = None
    if not ENABLE_SCHEDULER:
        return
    try:
        app.state.scheduler = make_scheduler()
        app.state.scheduler.start()
    except Exception:
        # keep the API up if the scheduler cannot start
        log.exception("scheduler failed to start")
        app.state.scheduler = None


@app.on_event("shutdown")
def _stop_scheduler():
    sched = getattr(app.state, "scheduler", None)
    if sched:
        sched.shutdown(wait=False)
