"""Redis-backed storage for survey sessions."""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Optional

import redis.asyncio as redis
import structlog
from redis.exceptions import RedisError

from intake_bot.exceptions import SessionStoreUnavailable
from intake_bot.survey.session import Session, UserId

logger = structlog.get_logger(__name__)


class SessionStore(ABC):
    """Abstract interface for per-user session storage."""

    @abstractmethod
    async def get(self, user_id: UserId) -> Optional[Session]:
        """Return the stored session or None."""
        pass

    @abstractmethod
    async def set(self, user_id: UserId, session: Session) -> None:
        """Persist ``session`` with the store's TTL."""
        pass

    @abstractmethod
    async def delete(self, user_id: UserId) -> None:
        """Remove the session; deleting an absent session is not an error."""
        pass


class RedisSessionStore(SessionStore):
    """Session store keeping one JSON value per user with expiry.

    Raises ``SessionStoreUnavailable`` for connection problems and timeouts,
    and ``CorruptedSessionError`` (from ``Session.from_json``) when a stored
    value has an unexpected shape.
    """

    key_prefix = "survey:session:"

    def __init__(
        self,
        client: Optional[redis.Redis],
        *,
        ttl_seconds: int = 3600,
        timeout: float = 5.0,
        question_count: Optional[int] = None,
    ) -> None:
        self._client = client
        self._pool: Optional[redis.ConnectionPool] = None
        self.ttl_seconds = ttl_seconds
        self.timeout = timeout
        self.question_count = question_count

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisSessionStore":
        """Create a store with its own connection pool."""
        timeout = kwargs.get("timeout", 5.0)
        pool = redis.ConnectionPool.from_url(
            url,
            max_connections=20,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        store = cls(redis.Redis(connection_pool=pool), **kwargs)
        store._pool = pool
        return store

    def _key(self, user_id: UserId) -> str:
        return f"{self.key_prefix}{user_id}"

    async def _call(self, operation: str, user_id: Optional[UserId], awaitable: Awaitable[Any]) -> Any:
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except (RedisError, OSError, asyncio.TimeoutError) as exc:
            logger.error(
                "Session store unavailable",
                operation=operation,
                user_id=user_id,
                error=str(exc) or type(exc).__name__,
            )
            raise SessionStoreUnavailable(f"Session store {operation} failed") from exc

    def _require_client(self) -> redis.Redis:
        if self._client is None:
            raise SessionStoreUnavailable("Redis client is not initialized")
        return self._client

    async def get(self, user_id: UserId) -> Optional[Session]:
        client = self._require_client()
        payload = await self._call("get", user_id, client.get(self._key(user_id)))
        if payload is None:
            return None
        return Session.from_json(user_id, payload, self.question_count)

    async def set(self, user_id: UserId, session: Session) -> None:
        client = self._require_client()
        await self._call(
            "set",
            user_id,
            client.set(self._key(user_id), session.to_json(), ex=self.ttl_seconds),
        )

    async def delete(self, user_id: UserId) -> None:
        client = self._require_client()
        await self._call("delete", user_id, client.delete(self._key(user_id)))

    async def ping(self) -> bool:
        client = self._require_client()
        return bool(await self._call("ping", None, client.ping()))

    async def close(self) -> None:
        """Close the owned connection pool, if any."""
        if self._pool is not None:
            logger.info("Closing Redis connection pool...")
            await self._pool.disconnect()
            self._pool = None
            self._client = None
