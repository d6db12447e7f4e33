"""Unit tests for opaque token generation and hashing."""

import pytest

from gatekeep.infrastructure.auth.opaque_token import (
    MIN_TOKEN_BYTES,
    generate_token,
    hash_token,
)


def test_generate_token_is_url_safe_and_long():
    token = generate_token()

    assert len(token) >= 64
    assert all(c.isalnum() or c in "-_" for c in token)


def test_generate_token_unique():
    assert len({generate_token() for _ in range(100)}) == 100


def test_generate_token_minimum_entropy():
    with pytest.raises(ValueError):
        generate_token(MIN_TOKEN_BYTES - 1)


def test_hash_token_is_deterministic_sha256():
    digest = hash_token("abc")

    assert digest == hash_token("abc")
    assert digest == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"


def test_hash_token_differs_per_token():
    assert hash_token("a") != hash_token("b")
