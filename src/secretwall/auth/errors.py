# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Error taxonomy shared by the store, hasher and authenticator."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "invalid_input"
    DUPLICATE_USERNAME = "duplicate_username"
    INVALID_CREDENTIALS = "invalid_credentials"
    NOT_FOUND = "not_found"
    STORE_UNAVAILABLE = "store_unavailable"
    HASHING_ERROR = "hashing_error"


# Kinds the user can fix by resubmitting the form they came from.
RECOVERABLE_KINDS = frozenset(
    {ErrorKind.INVALID_INPUT, ErrorKind.DUPLICATE_USERNAME, ErrorKind.INVALID_CREDENTIALS}
)


class AuthError(Exception):
    """Base error. ``kind`` is what callers branch on."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT

    @property
    def recoverable(self) -> bool:
        return self.kind in RECOVERABLE_KINDS


class InvalidInput(AuthError):
    kind = ErrorKind.INVALID_INPUT


class DuplicateUsername(AuthError):
    kind = ErrorKind.DUPLICATE_USERNAME

    def __init__(self, username: str) -> None:
        super().__init__(f"Username already registered: {username}")
        self.username = username


class InvalidCredentials(AuthError):
    """Login failed. Deliberately says nothing about which part was wrong."""

    kind = ErrorKind.INVALID_CREDENTIALS

    def __init__(self) -> None:
        super().__init__("Invalid username or password")


class UserNotFound(AuthError):
    kind = ErrorKind.NOT_FOUND


class StoreUnavailable(AuthError):
    kind = ErrorKind.STORE_UNAVAILABLE


class HashingError(AuthError):
    kind = ErrorKind.HASHING_ERROR
