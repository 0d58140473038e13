# controlboard/core/auth.py
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from controlboard.core.scoping import TeamScopeFilter


def get_current_user_id(
    request: Request,
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
) -> str:
    """
    Caller identity as forwarded by the authenticating gateway.
    Additionally stores it on request.state (for request logging).
    """
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing caller identity.",
        )

    try:
        request.state.user_id = user_id
    except Exception:
        # Never break the request because of logging context
        pass

    return user_id


def get_scope_filter(user_id: str = Depends(get_current_user_id)) -> TeamScopeFilter:
    """Dashboard visibility for the current caller."""
    return TeamScopeFilter(user_id)
