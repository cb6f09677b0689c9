# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
import os
import secrets
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, Optional

from itsdangerous import BadSignature, BadTimeSignature, URLSafeTimedSerializer

from secretwall.auth.users import utcnow

_logger = logging.getLogger(__name__)

COOKIE_NAME = os.getenv("SECRETWALL_COOKIE_NAME", "secretwall_session")
DEFAULT_MAX_AGE_SECONDS = int(os.getenv("SECRETWALL_SESSION_MAX_AGE", "28800"))  # 8 hours


class SessionState(str, Enum):
    ACTIVE = "active"
    INVALIDATED = "invalidated"


@dataclass
class Session:
    token: str
    user_id: str
    created_at: datetime
    expires_at: datetime
    state: SessionState = SessionState.ACTIVE

    def is_active(self, now: Optional[datetime] = None) -> bool:
        if self.state is not SessionState.ACTIVE:
            return False
        return (now or utcnow()) < self.expires_at


class SessionManager:
    """Server-side session table.

    The token is the only thing handed to the client, and only inside a
    signed cookie (see ``dump_cookie``). Entries live for the lifetime of
    this object.
    """

    def __init__(self, *, secret_key: str, max_age: int = DEFAULT_MAX_AGE_SECONDS, salt: str = "secretwall.session.v1") -> None:
        if not secret_key:
            raise RuntimeError("Missing SECRETWALL_SECRET_KEY (or SECRET_KEY)")
        self.max_age = max_age
        self._serializer = URLSafeTimedSerializer(secret_key=secret_key, salt=salt)
        self._lock = threading.Lock()
        self._sessions: Dict[str, Session] = {}

    @classmethod
    def from_env(cls) -> "SessionManager":
        secret = os.getenv("SECRETWALL_SECRET_KEY") or os.getenv("SECRET_KEY") or ""
        salt = os.getenv("SECRETWALL_SESSION_SALT", "secretwall.session.v1")
        return cls(secret_key=secret, max_age=DEFAULT_MAX_AGE_SECONDS, salt=salt)

    # ------------------ session table ------------------

    def create(self, user_id: str) -> Session:
        now = utcnow()
        session = Session(
            token=secrets.token_urlsafe(32),
            user_id=user_id,
            created_at=now,
            expires_at=now + timedelta(seconds=self.max_age),
        )
        with self._lock:
            self._sessions[session.token] = session
        _logger.debug("Created session for user %s", user_id)
        return session

    def validate(self, token: Optional[str]) -> Optional[str]:
        if not token:
            return None
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_active():
                return session.user_id
            session.state = SessionState.INVALIDATED
            del self._sessions[token]
        _logger.debug("Session for user %s expired", session.user_id)
        return None

    def invalidate(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            session = self._sessions.pop(token, None)
        if session is not None:
            session.state = SessionState.INVALIDATED
            _logger.debug("Invalidated session for user %s", session.user_id)

    def purge_expired(self) -> int:
        now = utcnow()
        with self._lock:
            dead = [t for t, s in self._sessions.items() if not s.is_active(now)]
            for t in dead:
                self._sessions.pop(t).state = SessionState.INVALIDATED
        if dead:
            _logger.info("Purged %d expired sessions", len(dead))
        return len(dead)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ------------------ cookie codec ------------------

    def dump_cookie(self, token: str) -> str:
        return self._serializer.dumps({"t": token})

    def load_cookie(self, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            data = self._serializer.loads(value, max_age=self.max_age)
        except (BadSignature, BadTimeSignature):
            return None
        token = (data or {}).get("t") if isinstance(data, dict) else None
        return str(token) if token else None
