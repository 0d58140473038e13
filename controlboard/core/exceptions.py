# controlboard/core/exceptions.py
from __future__ import annotations

from typing import Any, Optional


class ControlboardError(Exception):
    """Base class for errors raised by the status engine and its adapters."""

    status_code = 500
    error_type = "engine_error"

    def __init__(self, message: str, *, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class InvalidFrequency(ControlboardError):
    """
    Unparseable cadence text. Recovered by the normalizer (fallback to
    monthly) and logged; never propagated to callers.
    """

    error_type = "invalid_frequency"

    def __init__(self, raw: Optional[str]) -> None:
        super().__init__(f"Unrecognized frequency {raw!r}; using monthly.")
        self.raw = raw


class AmbiguousExecutionMatch(ControlboardError):
    """
    Two executions competing for one period. `match_execution` orders by
    (created_at, id) and therefore never raises this.
    """

    error_type = "ambiguous_execution_match"


class ScopeResolutionFailure(ControlboardError):
    """The visible-entity set could not be resolved. Fails the whole request."""

    status_code = 503
    error_type = "scope_resolution_failure"


class DateArithmeticOverflow(ControlboardError, ValueError):
    """as_of or period input outside the supported calendar."""

    status_code = 422
    error_type = "validation_error"


class EntityNotFound(ControlboardError):
    status_code = 404
    error_type = "not_found"
