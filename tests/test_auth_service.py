import asyncio

import pytest

from argon2.exceptions import HashingError as Argon2HashingError

from secretwall.auth.errors import DuplicateUsername, ErrorKind, HashingError, InvalidCredentials, InvalidInput
from secretwall.auth.passwords import CredentialHasher
from secretwall.auth.service import Authenticator
from secretwall.services.secret_service import list_secrets, submit_secret


def test_register_then_login(auth, sessions):
    s1 = asyncio.run(auth.register("alice", "pw123"))
    s2 = asyncio.run(auth.login("alice", "pw123"))
    assert s1.token != s2.token
    assert sessions.validate(s1.token) == sessions.validate(s2.token)


def test_register_does_not_store_plaintext(auth, store):
    asyncio.run(auth.register("alice", "pw123"))
    user = asyncio.run(store.find_by_username("alice"))
    assert user.credential_hash
    assert "pw123" not in user.credential_hash


@pytest.mark.parametrize("username,password", [("", "pw"), ("   ", "pw"), ("alice", ""), (None, "pw")])
def test_register_rejects_empty_input(auth, sessions, username, password):
    with pytest.raises(InvalidInput) as exc:
        asyncio.run(auth.register(username, password))
    assert exc.value.kind is ErrorKind.INVALID_INPUT
    assert len(sessions) == 0


def test_register_duplicate_creates_no_session(auth, sessions, store):
    asyncio.run(auth.register("alice", "pw123"))
    with pytest.raises(DuplicateUsername):
        asyncio.run(auth.register("alice", "other"))
    assert len(sessions) == 1
    assert asyncio.run(store.find_by_username("alice")) is not None


def test_wrong_password_and_unknown_user_are_indistinguishable(auth, sessions):
    asyncio.run(auth.register("alice", "pw123"))
    with pytest.raises(InvalidCredentials) as wrong:
        asyncio.run(auth.login("alice", "wrong"))
    with pytest.raises(InvalidCredentials) as unknown:
        asyncio.run(auth.login("mallory", "pw123"))
    assert str(wrong.value) == str(unknown.value)
    assert len(sessions) == 1


def test_login_with_empty_fields_is_invalid_credentials(auth):
    asyncio.run(auth.register("alice", "pw123"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("", "pw123"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("alice", ""))


def test_login_upgrades_outdated_hash(store, sessions, hasher):
    asyncio.run(Authenticator(store, hasher, sessions).register("alice", "pw123"))
    old_hash = asyncio.run(store.find_by_username("alice")).credential_hash

    stronger = CredentialHasher(time_cost=2, memory_cost=1024, parallelism=1)
    asyncio.run(Authenticator(store, stronger, sessions).login("alice", "pw123"))

    new_hash = asyncio.run(store.find_by_username("alice")).credential_hash
    assert new_hash != old_hash
    assert not stronger.needs_rehash(new_hash)
    assert stronger.verify("pw123", new_hash)


def test_alice_scenario(auth, sessions, store):
    s1 = asyncio.run(auth.register("alice", "pw123"))

    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("alice", "wrong"))
    assert len(sessions) == 1

    s2 = asyncio.run(auth.login("alice", "pw123"))
    assert sessions.validate(s1.token) is not None

    user_id = sessions.validate(s2.token)
    asyncio.run(submit_secret(store, user_id, "hello"))
    assert asyncio.run(store.find_by_username("alice")).secret == "hello"
    assert [u.username for u in asyncio.run(list_secrets(store))] == ["alice"]

    auth.logout(s2.token)
    assert sessions.validate(s2.token) is None
    assert sessions.validate(s1.token) == user_id


def test_concurrent_register_race(auth, sessions):
    async def race():
        return await asyncio.gather(
            auth.register("bob", "one"),
            auth.register("bob", "two"),
            return_exceptions=True,
        )

    results = asyncio.run(race())
    dups = [r for r in results if isinstance(r, DuplicateUsername)]
    assert len(dups) == 1
    assert len(sessions) == 1


def test_submit_secret_rejects_blank(auth, sessions, store):
    s = asyncio.run(auth.register("alice", "pw123"))
    with pytest.raises(InvalidInput):
        asyncio.run(submit_secret(store, sessions.validate(s.token), "   "))
    assert asyncio.run(store.find_by_username("alice")).secret is None


def test_login_against_malformed_stored_hash_is_invalid_credentials(store, hasher, sessions):
    auth = Authenticator(store, hasher, sessions)
    asyncio.run(store.create("alice", "hashé"))
    asyncio.run(store.create("bob", "$argon2id$v=19$m=1024,t=1,p=1$é$é"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("alice", "pw"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("bob", "pw"))
    assert len(sessions) == 0


def test_login_with_yaml_store_and_malformed_hash(yaml_store, hasher, sessions):
    auth = Authenticator(yaml_store, hasher, sessions)
    asyncio.run(yaml_store.create("alice", "hashé"))
    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("alice", "pw"))


def test_unknown_user_costs_one_argon2_check_like_wrong_password(auth, hasher, monkeypatch):
    asyncio.run(auth.register("alice", "pw123"))

    calls = []
    real_verify = hasher._ph.verify

    def counting_verify(hash_value, plain):
        calls.append(hash_value)
        return real_verify(hash_value, plain)

    monkeypatch.setattr(hasher._ph, "verify", counting_verify)

    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("alice", "wrong"))
    assert len(calls) == 1

    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("ghost", "wrong"))
    assert len(calls) == 2

    with pytest.raises(InvalidCredentials):
        asyncio.run(auth.login("alice", ""))
    assert len(calls) == 3


def test_register_hashing_failure_propagates(auth, hasher, sessions, store, monkeypatch):
    def boom(*args, **kwargs):
        raise Argon2HashingError("out of memory")

    monkeypatch.setattr(hasher._ph, "hash", boom)
    with pytest.raises(HashingError):
        asyncio.run(auth.register("alice", "pw123"))
    assert len(sessions) == 0
    assert asyncio.run(store.find_by_username("alice")) is None


def test_submit_secret_keeps_text_as_given(auth, sessions, store):
    s = asyncio.run(auth.register("alice", "pw123"))
    asyncio.run(submit_secret(store, sessions.validate(s.token), "  spaced out  "))
    assert asyncio.run(store.find_by_username("alice")).secret == "  spaced out  "
