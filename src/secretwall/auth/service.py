# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Registration, login and logout.

The authenticator owns no state; it is wired with a user store, a hasher and
a session manager and coordinates them. Store and hasher errors are allowed to
propagate unchanged.
"""

from __future__ import annotations

import logging
from typing import Optional

from starlette.concurrency import run_in_threadpool

from secretwall.auth.errors import AuthError, InvalidCredentials, InvalidInput
from secretwall.auth.passwords import CredentialHasher
from secretwall.auth.session import Session, SessionManager
from secretwall.auth.users import UserRecord, UserStore

_logger = logging.getLogger(__name__)


def normalize_username(username: Optional[str]) -> str:
    return (username or "").strip()


class Authenticator:
    def __init__(self, store: UserStore, hasher: CredentialHasher, sessions: SessionManager) -> None:
        self.store = store
        self.hasher = hasher
        self.sessions = sessions

    async def register(self, username: str, password: str) -> Session:
        """Create an account and log it in.

        Raises:
            InvalidInput: blank username or empty password
            DuplicateUsername: the username is taken (no session is created)
        """
        u = normalize_username(username)
        if not u:
            raise InvalidInput("Username is required")
        if not password:
            raise InvalidInput("Password is required")

        credential_hash = await run_in_threadpool(self.hasher.hash, password)
        user = await self.store.create(u, credential_hash)
        _logger.info("Registered user %s", user.username)
        return self.sessions.create(user.id)

    async def login(self, username: str, password: str) -> Session:
        """Check credentials and open a new session.

        Raises:
            InvalidCredentials: for every kind of mismatch, including unknown users
        """
        u = normalize_username(username)
        user = await self.store.find_by_username(u) if u else None
        if user is None or not password:
            # Pay the same argon2 cost as a real check so timing does not reveal the username.
            await run_in_threadpool(self.hasher.verify_dummy, password)
            _logger.warning("Rejected login for %r", u)
            raise InvalidCredentials()

        ok = await run_in_threadpool(self.hasher.verify, password, user.credential_hash)
        if not ok:
            _logger.warning("Rejected login for %r", u)
            raise InvalidCredentials()

        await self._maybe_rehash(user, password)
        _logger.info("User %s logged in", user.username)
        return self.sessions.create(user.id)

    def logout(self, token: Optional[str]) -> None:
        self.sessions.invalidate(token)

    async def _maybe_rehash(self, user: UserRecord, password: str) -> None:
        if not self.hasher.needs_rehash(user.credential_hash):
            return
        try:
            new_hash = await run_in_threadpool(self.hasher.hash, password)
            await self.store.update_credential_hash(user.id, new_hash)
            _logger.info("Upgraded credential hash for %s", user.username)
        except AuthError as e:
            # The login itself already succeeded.
            _logger.warning("Could not upgrade credential hash for %s: %s", user.username, e.kind.value)
