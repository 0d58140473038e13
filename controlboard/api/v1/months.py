# controlboard/api/v1/months.py
from datetime import date
from typing import Any, Dict

from fastapi import APIRouter, Depends, Query

from controlboard.api.deps import get_as_of
from controlboard.services.periods import month_key, month_options

router = APIRouter(tags=["months"])


@router.get("/months")
def list_months(
    count: int = Query(12, ge=1, le=60),
    as_of: date = Depends(get_as_of),
) -> Dict[str, Any]:
    """Values for the historical-month selector, newest first."""
    return {
        "as_of": as_of.isoformat(),
        "current": month_key(as_of),
        "months": month_options(as_of, count),
    }
