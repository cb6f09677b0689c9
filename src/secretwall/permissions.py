# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Union

from fastapi import HTTPException, Request

from secretwall.auth.session import COOKIE_NAME, SessionManager

LOGIN_PATH = "/login"


@dataclass(frozen=True)
class LoginRedirect:
    location: str = LOGIN_PATH


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    token: str


def require_session(sessions: SessionManager, token: Optional[str]) -> Union[str, LoginRedirect]:
    """Return the session's user id, or where to send an anonymous caller."""
    user_id = sessions.validate(token)
    if user_id is None:
        return LoginRedirect()
    return user_id


def session_token(request: Request) -> Optional[str]:
    sessions: SessionManager = request.app.state.sessions
    return sessions.load_cookie(request.cookies.get(COOKIE_NAME, ""))


def load_user_from_request(request: Request) -> Optional[CurrentUser]:
    sessions: SessionManager = request.app.state.sessions
    token = session_token(request)
    guard = require_session(sessions, token)
    if isinstance(guard, LoginRedirect):
        return None
    return CurrentUser(user_id=guard, token=token or "")


def current_user_optional(request: Request) -> Optional[CurrentUser]:
    u = getattr(request.state, "user", None)
    if u is not None:
        return u
    return load_user_from_request(request)


def require_user(request: Request) -> CurrentUser:
    u = current_user_optional(request)
    if u:
        return u
    raise HTTPException(status_code=303, headers={"Location": LOGIN_PATH})


def cookie_settings() -> dict:
    secure = os.getenv("SECRETWALL_COOKIE_SECURE", "false").lower() in {"1", "true", "yes", "y"}
    return {"httponly": True, "samesite": "lax", "secure": secure}
