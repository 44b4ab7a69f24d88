import os
from typing import Optional

from fastapi import Header, HTTPException, Request


def dev_auth_enabled() -> bool:
    return os.getenv("APP_ENV") != "production" and os.getenv("DEV_FAKE_AUTH") == "1"


def current_user_id(
    request: Request,
    x_dev_user_id: Optional[str] = Header(default=None),
) -> str:
    # an upstream auth middleware (token verification) sets request.state.user_id;
    # dev identity is only a fallback when DEV_FAKE_AUTH=1 outside production
    user_id = getattr(request.state, "user_id", None)
    if user_id is None and dev_auth_enabled():
        user_id = x_dev_user_id or os.getenv("DEV_FAKE_USER_ID")
    if not user_id:
        raise HTTPException(status_code=401, detail="Not authenticated")
    return user_id
