"""Tests for the Redis session store adapter."""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from intake_bot.exceptions import CorruptedSessionError, SessionStoreUnavailable
from intake_bot.services.session_store import RedisSessionStore
from intake_bot.survey.session import Session


def _store(client, **kwargs):
    kwargs.setdefault("question_count", 7)
    return RedisSessionStore(client, **kwargs)


@pytest.mark.asyncio
async def test_get_missing_session_returns_none():
    client = AsyncMock()
    client.get.return_value = None

    assert await _store(client).get(42) is None
    client.get.assert_awaited_once_with("survey:session:42")


@pytest.mark.asyncio
async def test_get_parses_stored_payload():
    client = AsyncMock()
    client.get.return_value = json.dumps({"step": 2, "answers": ["Alice", "Kitchen"], "timestamp": "2024-05-01T10:00:00+00:00"})

    session = await _store(client).get(42)

    assert session.user_id == 42
    assert session.step == 2
    assert session.answers == ["Alice", "Kitchen"]
    assert session.timestamp.year == 2024


@pytest.mark.asyncio
async def test_set_uses_ttl():
    client = AsyncMock()
    store = _store(client, ttl_seconds=120)

    await store.set(42, Session(user_id=42, step=1, answers=["Alice"]))

    key, payload = client.set.call_args.args
    assert key == "survey:session:42"
    assert json.loads(payload)["answers"] == ["Alice"]
    assert client.set.call_args.kwargs == {"ex": 120}


@pytest.mark.asyncio
async def test_delete_absent_session_is_not_an_error():
    client = AsyncMock()
    client.delete.return_value = 0

    await _store(client).delete(42)

    client.delete.assert_awaited_once_with("survey:session:42")


@pytest.mark.asyncio
async def test_redis_error_becomes_store_unavailable():
    client = AsyncMock()
    client.get.side_effect = RedisConnectionError("connection refused")

    with pytest.raises(SessionStoreUnavailable):
        await _store(client).get(42)


@pytest.mark.asyncio
async def test_timeout_becomes_store_unavailable():
    async def _slow_get(key):
        await asyncio.sleep(1)

    client = AsyncMock()
    client.get.side_effect = _slow_get

    with pytest.raises(SessionStoreUnavailable):
        await _store(client, timeout=0.01).get(42)


@pytest.mark.asyncio
async def test_missing_client_is_unavailable():
    with pytest.raises(SessionStoreUnavailable):
        await _store(None).get(42)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "payload",
    [
        "not json",
        "[1, 2]",
        '{"step": 1}',
        '{"step": 1, "answers": "Alice"}',
        '{"step": "1", "answers": ["Alice"]}',
        '{"step": 0, "answers": ["Alice"]}',
        '{"step": 9, "answers": []}',
    ],
)
async def test_malformed_payload_is_corrupted(payload):
    client = AsyncMock()
    client.get.return_value = payload

    with pytest.raises(CorruptedSessionError):
        await _store(client).get(42)


@pytest.mark.asyncio
async def test_ping_and_close():
    client = AsyncMock()
    client.ping.return_value = True
    store = _store(client)
    pool = AsyncMock()
    store._pool = pool

    assert await store.ping() is True
    await store.close()

    pool.disconnect.assert_awaited_once()
    with pytest.raises(SessionStoreUnavailable):
        await store.get(42)
