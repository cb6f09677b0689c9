#!/usr/bin/env python3
from __future__ import annotations

import asyncio
from getpass import getpass

from secretwall.auth.errors import AuthError
from secretwall.auth.passwords import CredentialHasher
from secretwall.infra.user_repo import DEFAULT_USERS_PATH, YamlUserStore

USERS_PATH = DEFAULT_USERS_PATH


async def _create(username: str, password: str) -> str:
    store = YamlUserStore(USERS_PATH)
    user = await store.create(username, CredentialHasher.from_env().hash(password))
    return user.id


def main() -> None:
    username = input("Username: ").strip()
    if not username:
        raise SystemExit("Empty username")

    pw1 = getpass("Password: ")
    pw2 = getpass("Repeat password: ")
    if pw1 != pw2:
        raise SystemExit("Passwords do not match")
    if not pw1:
        raise SystemExit("Empty password")

    try:
        user_id = asyncio.run(_create(username, pw1))
    except AuthError as e:
        raise SystemExit(f"{e.kind.value}: {e}")
    print(f"OK {username} ({user_id}) -> {USERS_PATH}")


if __name__ == "__main__":
    main()
