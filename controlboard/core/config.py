# controlboard/core/config.py
from __future__ import annotations

import os
from pathlib import Path

from dotenv import load_dotenv, find_dotenv

# ---------------------------
# Env loading (root .env first, then controlboard/.env as fallback)
# ---------------------------
load_dotenv(find_dotenv(usecwd=True))
load_dotenv(Path(__file__).resolve().parent.parent / ".env", override=False)


def _int_env(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value >= minimum else default


# Database
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./controlboard.db")
ENABLE_CREATE_ALL = os.getenv("ENABLE_CREATE_ALL", "1") == "1"

# Engine
ENGINE_MAX_WORKERS = _int_env("ENGINE_MAX_WORKERS", 8)
CRITICAL_LIST_PAGE_SIZE = _int_env("CRITICAL_LIST_PAGE_SIZE", 10)
TREND_MONTHS = _int_env("TREND_MONTHS", 6)

# "today" at the HTTP boundary is resolved in this timezone
APP_TIMEZONE = os.getenv("APP_TIMEZONE", "UTC")

# Scheduler (auto-status recompute)
ENABLE_SCHEDULER = os.getenv("ENABLE_SCHEDULER", "1") == "1"
APP_SCHEDULER_HOUR = _int_env("APP_SCHEDULER_HOUR", 5, minimum=0)
APP_SCHEDULER_MINUTE = _int_env("APP_SCHEDULER_MINUTE", 30, minimum=0)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# RBAC: permission key that lifts team scoping on the dashboard
DASHBOARD_VIEW_ALL_PERMISSION = os.getenv(
    "DASHBOARD_VIEW_ALL_PERMISSION", "dashboard:view_all"
)

# Risk classifications that put a control on the "critical" list
CRITICAL_RISK_CLASSES = ("high", "critical")

# Workflow states that mean "waiting on the GRC team"
REVIEW_QUEUE_STATES = ("submitted", "under_review", "needs_changes")
