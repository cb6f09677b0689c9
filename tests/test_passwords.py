import logging

import pytest

from argon2.exceptions import HashingError as Argon2HashingError

from secretwall.auth.errors import ErrorKind, HashingError, InvalidInput
from secretwall.auth.passwords import CredentialHasher


def test_hash_is_salted_and_verifiable(hasher):
    h1 = hasher.hash("pw123")
    h2 = hasher.hash("pw123")
    assert h1 != h2
    assert h1.startswith("$argon2id$")
    assert hasher.verify("pw123", h1)
    assert hasher.verify("pw123", h2)


def test_verify_rejects_wrong_password(hasher):
    h = hasher.hash("pw123")
    assert not hasher.verify("wrong", h)


def test_verify_empty_inputs_are_false(hasher):
    h = hasher.hash("pw123")
    assert not hasher.verify("", h)
    assert not hasher.verify("pw123", "")


def test_verify_malformed_hash_logs_and_returns_false(hasher, caplog):
    with caplog.at_level(logging.WARNING, logger="secretwall.auth.passwords"):
        assert hasher.verify("pw123", "definitely-not-a-hash") is False
    assert "could not be checked" in caplog.text
    assert "pw123" not in caplog.text


def test_hash_rejects_empty_password_as_invalid_input(hasher):
    with pytest.raises(InvalidInput):
        hasher.hash("")


def test_needs_rehash_tracks_work_factor(hasher):
    h = hasher.hash("pw123")
    assert not hasher.needs_rehash(h)
    stronger = CredentialHasher(time_cost=2, memory_cost=1024, parallelism=1)
    assert stronger.needs_rehash(h)
    assert stronger.verify("pw123", h)


def test_from_env_reads_work_factor(monkeypatch):
    monkeypatch.setenv("SECRETWALL_ARGON2_TIME_COST", "1")
    monkeypatch.setenv("SECRETWALL_ARGON2_MEMORY_COST", "1024")
    monkeypatch.setenv("SECRETWALL_ARGON2_PARALLELISM", "1")
    h = CredentialHasher.from_env().hash("pw123")
    assert "m=1024,t=1,p=1" in h


def test_verify_non_ascii_hash_returns_false(hasher, caplog):
    with caplog.at_level(logging.WARNING, logger="secretwall.auth.passwords"):
        assert hasher.verify("pw123", "$argon2id$v=19$m=1024,t=1,p=1$é$é") is False
        assert hasher.verify("pw123", "hashé") is False
    assert "could not be checked" in caplog.text
    assert hasher.needs_rehash("hashé") is False


def test_argon2_failure_becomes_hashing_error(hasher, monkeypatch):
    def boom(*args, **kwargs):
        raise Argon2HashingError("out of memory")

    monkeypatch.setattr(hasher._ph, "hash", boom)
    with pytest.raises(HashingError) as exc:
        hasher.hash("pw123")
    assert exc.value.kind is ErrorKind.HASHING_ERROR


def test_verify_dummy_runs_argon2_and_fails(hasher, monkeypatch):
    calls = []
    real_verify = hasher._ph.verify

    def counting_verify(hash_value, plain):
        calls.append(hash_value)
        return real_verify(hash_value, plain)

    monkeypatch.setattr(hasher._ph, "verify", counting_verify)
    assert hasher.verify_dummy("pw123") is False
    assert hasher.verify_dummy("") is False
    assert hasher.verify_dummy(None) is False
    assert len(calls) == 3
