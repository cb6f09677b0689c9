# Copyright (C) 2026 Bernardo Gómez Bey
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import logging
from typing import List

from secretwall.auth.errors import InvalidInput
from secretwall.auth.users import UserRecord, UserStore

_logger = logging.getLogger(__name__)

MAX_SECRET_LENGTH = 2000


async def submit_secret(store: UserStore, user_id: str, text: str) -> UserRecord:
    """Replace the user's secret with ``text``."""
    if not (text or "").strip():
        raise InvalidInput("Secret cannot be empty")
    if len(text) > MAX_SECRET_LENGTH:
        raise InvalidInput(f"Secret longer than {MAX_SECRET_LENGTH} characters")
    user = await store.update_secret(user_id, text)
    _logger.info("User %s submitted a secret", user.username)
    return user


async def list_secrets(store: UserStore) -> List[UserRecord]:
    return await store.list_users_with_secret()
