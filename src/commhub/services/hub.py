"""Hub service wiring the registry, broker and memory client together."""

from __future__ import annotations

import httpx

from ..settings import Settings
from .broker import MessageBroker
from .connections import RedisManager
from .history import HistoryStore
from .memory import MemoryClient
from .pubsub import Publisher, Subscriber
from .registry import AgentRegistry


class HubService:
    """Main entry point owning the shared connections for the whole process."""

    def __init__(
        self,
        settings: Settings,
        redis: RedisManager | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._settings = settings
        self.redis = redis or RedisManager.from_settings(settings)
        self._client = http_client or httpx.AsyncClient(timeout=settings.memory_timeout_seconds)

        timeout = settings.redis_timeout_seconds
        self.registry = AgentRegistry(
            self.redis.standard,
            heartbeat_ttl_seconds=settings.agent_heartbeat_ttl_seconds,
            timeout=timeout,
        )
        self.broker = MessageBroker(
            publisher=Publisher(self.redis.pubsub, timeout=timeout),
            subscriber=Subscriber(self.redis.pubsub, timeout=timeout),
            history=HistoryStore(
                self.redis.standard,
                max_entries=settings.history_max_messages,
                ttl_seconds=settings.history_ttl_seconds,
                honor_message_ttl=settings.history_honor_message_ttl,
                timeout=timeout,
            ),
        )
        self.memory = MemoryClient(self._client, settings.memory_url)

    @property
    def settings(self) -> Settings:
        return self._settings

    async def shutdown(self) -> None:
        try:
            await self._client.aclose()
        finally:
            await self.redis.aclose()
