"""Tests for registration and token authentication.

Uses a temporary SQLite database via :class:`Database` and
:class:`AuthService` directly — no network layer needed.
"""

import pytest
import pytest_asyncio

from moondust.loaders.game_config_loader import GameConfig
from moondust.network.auth import AuthService, new_token
from moondust.persistence.database import Database


# ── Fixtures ────────────────────────────────────────────────

@pytest_asyncio.fixture
async def db(tmp_path):
    database = Database(str(tmp_path / "test.db"))
    await database.connect()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def auth(db):
    return AuthService(db, GameConfig())


# ── Tests ───────────────────────────────────────────────────

def test_tokens_are_unique():
    tokens = {new_token() for _ in range(100)}
    assert len(tokens) == 100
    assert all(len(t) >= 32 for t in tokens)


@pytest.mark.asyncio
async def test_register_then_authenticate(auth):
    result = await auth.register("Astronaut_1")
    assert isinstance(result, tuple)
    state, token = result
    assert state.nickname == "Astronaut_1"
    assert state.currency == 0

    found = await auth.authenticate(token)
    assert found == state


@pytest.mark.asyncio
async def test_nickname_is_trimmed(auth):
    state, _ = await auth.register("  luna  ")
    assert state.nickname == "luna"


@pytest.mark.asyncio
async def test_duplicate_nickname(auth):
    await auth.register("luna")
    assert await auth.register("luna") == "Nickname already taken"


@pytest.mark.asyncio
@pytest.mark.parametrize("nickname, fragment", [
    ("", "at least 2"),
    ("x", "at least 2"),
    ("x" * 21, "at most 20"),
    ("bad<name>", "may only contain"),
])
async def test_invalid_nickname(auth, nickname, fragment):
    result = await auth.register(nickname)
    assert isinstance(result, str)
    assert fragment in result


@pytest.mark.asyncio
async def test_nickname_limits_from_config(db):
    auth = AuthService(db, GameConfig(min_nickname_length=5, max_nickname_length=6))
    assert "at least 5" in await auth.register("abcd")
    assert isinstance(await auth.register("abcde"), tuple)


@pytest.mark.asyncio
async def test_unknown_or_empty_token(auth):
    await auth.register("luna")
    assert await auth.authenticate("not-a-token") is None
    assert await auth.authenticate("") is None
