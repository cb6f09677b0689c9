# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Credential hashing (argon2id).

Every hash carries its own random salt and cost parameters in the encoded
string, so ``verify`` needs nothing but the stored value.
"""

from __future__ import annotations

import logging
import os
import secrets
from typing import Optional

from argon2 import PasswordHasher
from argon2.exceptions import HashingError as Argon2HashingError
from argon2.exceptions import VerificationError, VerifyMismatchError

from secretwall.auth.errors import HashingError, InvalidInput

_logger = logging.getLogger(__name__)


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class CredentialHasher:
    def __init__(
        self,
        *,
        time_cost: Optional[int] = None,
        memory_cost: Optional[int] = None,
        parallelism: Optional[int] = None,
    ) -> None:
        params = {
            "time_cost": time_cost,
            "memory_cost": memory_cost,
            "parallelism": parallelism,
        }
        self._ph = PasswordHasher(**{k: v for k, v in params.items() if v is not None})
        # Same parameters as real hashes, so a check against it costs the same.
        self._dummy_hash = self._ph.hash(secrets.token_urlsafe(16))

    @classmethod
    def from_env(cls) -> "CredentialHasher":
        return cls(
            time_cost=_env_int("SECRETWALL_ARGON2_TIME_COST"),
            memory_cost=_env_int("SECRETWALL_ARGON2_MEMORY_COST"),
            parallelism=_env_int("SECRETWALL_ARGON2_PARALLELISM"),
        )

    def hash(self, plain: str) -> str:
        if not plain:
            raise InvalidInput("Empty password")
        try:
            return self._ph.hash(plain)
        except Argon2HashingError as e:
            _logger.error("argon2 hashing failed: %s", e)
            raise HashingError("Could not hash credential") from e

    def verify(self, plain: str, hash_value: str) -> bool:
        if not hash_value or not plain:
            return False
        try:
            return self._ph.verify(hash_value, plain)
        except VerifyMismatchError:
            return False
        except (ValueError, VerificationError) as e:
            # InvalidHashError and non-ASCII (UnicodeError) hashes are both ValueErrors.
            _logger.warning("Stored credential hash could not be checked: %s", type(e).__name__)
            return False

    def verify_dummy(self, plain: Optional[str]) -> bool:
        """Spend one verification on a throwaway hash. Always False."""
        try:
            self._ph.verify(self._dummy_hash, plain or "-")
        except VerificationError:
            pass
        return False

    def needs_rehash(self, hash_value: str) -> bool:
        try:
            return self._ph.check_needs_rehash(hash_value)
        except ValueError:
            return False
