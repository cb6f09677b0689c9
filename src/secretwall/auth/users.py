# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from secretwall.auth.errors import DuplicateUsername, UserNotFound


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class UserRecord:
    id: str
    username: str
    credential_hash: str
    secret: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def new(cls, username: str, credential_hash: str) -> "UserRecord":
        return cls(
            id=uuid.uuid4().hex,
            username=username,
            credential_hash=credential_hash,
            secret=None,
            created_at=utcnow(),
        )


class UserStore(Protocol):
    """Persistence for user records.

    ``create`` must check username uniqueness and insert in one atomic step.
    Lookups return None when nothing matches; updates raise ``UserNotFound``.
    """

    async def create(self, username: str, credential_hash: str) -> UserRecord:
        ...

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        ...

    async def update_secret(self, user_id: str, secret: str) -> UserRecord:
        ...

    async def update_credential_hash(self, user_id: str, credential_hash: str) -> UserRecord:
        ...

    async def list_users_with_secret(self) -> List[UserRecord]:
        ...


class InMemoryUserStore:
    """Process-local store. Records are immutable, updates swap them out."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._by_username: Dict[str, UserRecord] = {}
        self._by_id: Dict[str, UserRecord] = {}

    def _put(self, user: UserRecord) -> None:
        self._by_username[user.username] = user
        self._by_id[user.id] = user

    async def create(self, username: str, credential_hash: str) -> UserRecord:
        with self._lock:
            if username in self._by_username:
                raise DuplicateUsername(username)
            user = UserRecord.new(username, credential_hash)
            self._put(user)
            return user

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        with self._lock:
            return self._by_username.get(username)

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self._lock:
            return self._by_id.get(user_id)

    async def update_secret(self, user_id: str, secret: str) -> UserRecord:
        return self._update(user_id, secret=secret)

    async def update_credential_hash(self, user_id: str, credential_hash: str) -> UserRecord:
        return self._update(user_id, credential_hash=credential_hash)

    def _update(self, user_id: str, **changes) -> UserRecord:
        with self._lock:
            current = self._by_id.get(user_id)
            if current is None:
                raise UserNotFound(f"No user with id {user_id}")
            updated = replace(current, **changes)
            self._put(updated)
            return updated

    async def list_users_with_secret(self) -> List[UserRecord]:
        with self._lock:
            users = [u for u in self._by_id.values() if u.secret is not None]
        return sorted(users, key=lambda u: u.created_at)
