# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""YAML document store for user records.

Layout of the file::

    version: 1
    users:
      alice:
        id: 3f0c...
        credential_hash: $argon2id$...
        secret: null
        created_at: '2026-01-01T10:00:00+00:00'

Blocking file I/O runs in the threadpool; every mutation is a read-modify-write
under a single lock and lands on disk (temp file + os.replace) before the
awaiting caller resumes.
"""

from __future__ import annotations

import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import yaml
from starlette.concurrency import run_in_threadpool

from secretwall.auth.errors import DuplicateUsername, StoreUnavailable, UserNotFound
from secretwall.auth.users import UserRecord

_logger = logging.getLogger(__name__)

# Anchor the default path to the project root, not the current working directory.
BASE_DIR = Path(__file__).resolve().parents[3]
DEFAULT_USERS_PATH = Path(
    os.getenv("SECRETWALL_USERS_PATH", str(BASE_DIR / "data" / "users.yml"))
).resolve()
DEFAULT_TIMEOUT_SECONDS = float(os.getenv("SECRETWALL_STORE_TIMEOUT", "5"))


_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _parse_created(value) -> datetime:
    # Hand-edited files may hold unquoted timestamps (loaded as datetime) or nothing.
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return _EPOCH
    if not isinstance(value, datetime):
        return _EPOCH
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _to_record(username: str, doc: dict) -> UserRecord:
    secret = doc.get("secret")
    return UserRecord(
        id=str(doc.get("id") or ""),
        username=username,
        credential_hash=str(doc.get("credential_hash") or ""),
        secret=None if secret is None else str(secret),
        created_at=_parse_created(doc.get("created_at")),
    )


def _to_doc(u: UserRecord) -> dict:
    return {
        "id": u.id,
        "credential_hash": u.credential_hash,
        "secret": u.secret,
        "created_at": u.created_at.isoformat(),
    }


class YamlUserStore:
    def __init__(self, path: Path = DEFAULT_USERS_PATH, *, timeout: float = DEFAULT_TIMEOUT_SECONDS) -> None:
        self.path = Path(path)
        self.timeout = timeout
        self._lock = threading.Lock()
        self._cache: Tuple[float, Dict[str, UserRecord]] = (0.0, {})

    # ------------------ low level ------------------

    @contextmanager
    def _locked(self) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout):
            raise StoreUnavailable(f"Timed out waiting for {self.path.name}")
        try:
            yield
        finally:
            self._lock.release()

    def _load(self) -> Dict[str, UserRecord]:
        try:
            mtime = self.path.stat().st_mtime if self.path.exists() else 0.0
            cached_mtime, cached_users = self._cache
            if mtime and mtime == cached_mtime:
                return cached_users
            if not self.path.exists():
                return {}
            raw = yaml.safe_load(self.path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            _logger.exception("Could not read user store %s", self.path)
            raise StoreUnavailable("User store could not be read") from e

        users = (raw.get("users") or {}) if isinstance(raw, dict) else {}
        out: Dict[str, UserRecord] = {}
        for uname, doc in users.items():
            if not isinstance(doc, dict):
                continue
            username = str(uname)
            record = _to_record(username, doc)
            if not record.id or not record.credential_hash:
                _logger.warning("Skipping incomplete user document %r", username)
                continue
            out[username] = record
        self._cache = (mtime, out)
        return out

    def _save(self, users: Dict[str, UserRecord]) -> None:
        raw = {"version": 1, "users": {name: _to_doc(u) for name, u in users.items()}}
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(prefix=".users-", suffix=".yml", dir=str(self.path.parent))
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    yaml.safe_dump(raw, fh, sort_keys=False, allow_unicode=True)
                    fh.flush()
                    os.fsync(fh.fileno())
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
            mtime = self.path.stat().st_mtime
        except OSError as e:
            _logger.exception("Could not write user store %s", self.path)
            raise StoreUnavailable("User store could not be written") from e
        self._cache = (mtime, dict(users))

    # ------------------ sync operations ------------------

    def _create(self, username: str, credential_hash: str) -> UserRecord:
        with self._locked():
            users = dict(self._load())
            if username in users:
                raise DuplicateUsername(username)
            user = UserRecord.new(username, credential_hash)
            users[username] = user
            self._save(users)
        _logger.info("Created user %s (%s)", username, user.id)
        return user

    def _find_by_username(self, username: str) -> Optional[UserRecord]:
        with self._locked():
            return self._load().get(username)

    def _find_by_id(self, user_id: str) -> Optional[UserRecord]:
        with self._locked():
            for u in self._load().values():
                if u.id == user_id:
                    return u
        return None

    def _update(self, user_id: str, **changes) -> UserRecord:
        with self._locked():
            users = dict(self._load())
            current = next((u for u in users.values() if u.id == user_id), None)
            if current is None:
                raise UserNotFound(f"No user with id {user_id}")
            updated = replace(current, **changes)
            users[updated.username] = updated
            self._save(users)
            return updated

    def _list_users_with_secret(self) -> List[UserRecord]:
        with self._locked():
            users = [u for u in self._load().values() if u.secret is not None]
        return sorted(users, key=lambda u: u.created_at)

    # ------------------ UserStore ------------------

    async def create(self, username: str, credential_hash: str) -> UserRecord:
        return await run_in_threadpool(self._create, username, credential_hash)

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        return await run_in_threadpool(self._find_by_username, username)

    async def find_by_id(self, user_id: str) -> Optional[UserRecord]:
        return await run_in_threadpool(self._find_by_id, user_id)

    async def update_secret(self, user_id: str, secret: str) -> UserRecord:
        return await run_in_threadpool(self._update, user_id, secret=secret)

    async def update_credential_hash(self, user_id: str, credential_hash: str) -> UserRecord:
        return await run_in_threadpool(self._update, user_id, credential_hash=credential_hash)

    async def list_users_with_secret(self) -> List[UserRecord]:
        return await run_in_threadpool(self._list_users_with_secret)
