"""Ownership of the shared Redis connection pools."""

from __future__ import annotations

import asyncio

from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..settings import Settings


class RedisManager:
    """Holds the standard (registry/history) and pub/sub Redis clients.

    Constructed once per process and passed into the services that need it;
    ``aclose`` releases both pools.
    """

    def __init__(self, standard: Redis, pubsub: Redis) -> None:
        self._standard = standard
        self._pubsub = pubsub

    @classmethod
    def from_settings(cls, settings: Settings) -> "RedisManager":
        return cls(
            standard=_client_from_url(settings.redis_standard_url, settings),
            pubsub=_client_from_url(settings.redis_pubsub_url, settings),
        )

    @property
    def standard(self) -> Redis:
        return self._standard

    @property
    def pubsub(self) -> Redis:
        return self._pubsub

    async def ping(self, timeout: float | None = None) -> dict[str, str | None]:
        """Ping both connections; map each to ``None`` when healthy or the error text."""

        results: dict[str, str | None] = {}
        for name, client in (("standard", self._standard), ("pubsub", self._pubsub)):
            try:
                await asyncio.wait_for(client.ping(), timeout)
                results[name] = None
            except asyncio.TimeoutError:
                results[name] = "ping timed out"
            except (RedisError, OSError) as exc:
                results[name] = str(exc) or exc.__class__.__name__
        return results

    async def aclose(self) -> None:
        try:
            await self._standard.aclose()
        finally:
            if self._pubsub is not self._standard:
                await self._pubsub.aclose()


def _client_from_url(url: str, settings: Settings) -> Redis:
    return Redis.from_url(
        url,
        max_connections=settings.redis_pool_size,
        socket_timeout=settings.redis_timeout_seconds,
        socket_connect_timeout=settings.redis_timeout_seconds,
        decode_responses=True,
        encoding_errors="replace",
    )
