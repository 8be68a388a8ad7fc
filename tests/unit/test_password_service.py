"""
Unit tests for the password codec.
"""
import pytest

from backend.app.services.password_service import (
    TEMPORARY_PASSWORD_LENGTH,
    generate_temporary_password,
    hash_password,
    verify_password,
)


@pytest.mark.asyncio
async def test_hash_round_trip():
    hashed = await hash_password("correct horse", rounds=4)
    assert hashed != "correct horse"
    assert await verify_password("correct horse", hashed) is True


@pytest.mark.asyncio
async def test_wrong_password_rejected():
    hashed = await hash_password("first-password", rounds=4)
    assert await verify_password("second-password", hashed) is False


@pytest.mark.asyncio
async def test_same_password_gets_distinct_salts():
    first = await hash_password("repeat-me", rounds=4)
    second = await hash_password("repeat-me", rounds=4)
    assert first != second
    assert await verify_password("repeat-me", first)
    assert await verify_password("repeat-me", second)


@pytest.mark.asyncio
async def test_default_cost_is_twelve():
    hashed = await hash_password("expensive")
    assert hashed.startswith("$2b$12$")


@pytest.mark.asyncio
@pytest.mark.parametrize("bad_hash", ["", "not-a-bcrypt-hash", "$2b$12$short"])
async def test_malformed_hash_returns_false(bad_hash):
    assert await verify_password("anything", bad_hash) is False


def test_temporary_password_shape():
    password = generate_temporary_password()
    assert len(password) == TEMPORARY_PASSWORD_LENGTH
    assert password.isalnum()
    assert password == password.lower()


def test_temporary_passwords_vary():
    generated = {generate_temporary_password() for _ in range(20)}
    assert len(generated) > 1
