"""Bounded per-agent message history backed by Redis lists."""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..errors import HistoryReadFailure, HistoryWriteFailure, MalformedHistoryEntry
from ..models import Message

logger = structlog.get_logger(__name__)

HISTORY_KEY_PREFIX = "agent:history:"
DEFAULT_MAX_ENTRIES = 100
DEFAULT_TTL_SECONDS = 24 * 60 * 60


def history_key(agent_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}{agent_id}"


def decode_entry(raw: str | bytes) -> Message:
    try:
        return Message.from_wire(raw)
    except (ValidationError, ValueError) as exc:
        raise MalformedHistoryEntry(str(exc)) from exc


class HistoryStore:
    """Newest-first Redis list per agent, trimmed to ``max_entries`` and expired as a whole.

    Push, trim and expiry refresh run in one MULTI/EXEC so concurrent appends for the
    same agent never lose entries or overshoot the bound. Reads return oldest first.
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_entries: int = DEFAULT_MAX_ENTRIES,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        honor_message_ttl: bool = True,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._max_entries = max_entries
        self._ttl_seconds = ttl_seconds
        self._honor_message_ttl = honor_message_ttl
        self._timeout = timeout

    def clamp_limit(self, limit: int | None) -> int:
        if limit is None or limit <= 0 or limit > self._max_entries:
            return self._max_entries
        return limit

    async def append(
        self, agent_id: str, message: Message, *, timeout: float | None = None
    ) -> None:
        key = history_key(agent_id)
        try:
            await asyncio.wait_for(
                self._push(key, message.to_wire()), timeout=self._deadline(timeout)
            )
        except asyncio.TimeoutError as exc:
            raise HistoryWriteFailure(f"history append timed out for agent '{agent_id}'") from exc
        except RedisError as exc:
            raise HistoryWriteFailure(
                f"failed to append history for agent '{agent_id}': {exc}"
            ) from exc

    async def list(
        self, agent_id: str, limit: int | None = None, *, timeout: float | None = None
    ) -> list[Message]:
        count = self.clamp_limit(limit)
        key = history_key(agent_id)
        try:
            raw_entries = await asyncio.wait_for(
                self._client.lrange(key, 0, count - 1), timeout=self._deadline(timeout)
            )
        except asyncio.TimeoutError as exc:
            raise HistoryReadFailure(f"history read timed out for agent '{agent_id}'") from exc
        except RedisError as exc:
            raise HistoryReadFailure(
                f"failed to read history for agent '{agent_id}': {exc}"
            ) from exc

        now = datetime.now(timezone.utc)
        messages: list[Message] = []
        # Storage is newest first.
        for raw in reversed(raw_entries or []):
            try:
                message = decode_entry(raw)
            except MalformedHistoryEntry as exc:
                logger.debug("history.entry_skipped", agent_id=agent_id, error=str(exc))
                continue
            if self._honor_message_ttl and _expired(message, now):
                continue
            messages.append(message)
        return messages

    async def _push(self, key: str, data: str) -> None:
        async with self._client.pipeline(transaction=True) as pipe:
            pipe.lpush(key, data)
            pipe.ltrim(key, 0, self._max_entries - 1)
            pipe.expire(key, self._ttl_seconds)
            await pipe.execute()

    def _deadline(self, timeout: float | None) -> float | None:
        return timeout if timeout is not None else self._timeout


def _expired(message: Message, now: datetime) -> bool:
    if message.ttl_seconds <= 0:
        return False
    created_at = message.created_at
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return created_at + timedelta(seconds=message.ttl_seconds) <= now
