"""Agent directory stored in Redis with a heartbeat TTL."""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Awaitable
from datetime import datetime, timezone
from typing import TypeVar

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from ..errors import AgentNotFound, RegistryUnavailable
from ..models import Agent, AgentStatus, RegisterAgentRequest, UpdateAgentRequest

logger = structlog.get_logger(__name__)

AGENT_KEY_PREFIX = "agent:"
AGENT_INDEX_KEY = "agents:index"
HEARTBEAT_KEY_PREFIX = "agent:heartbeat:"
DEFAULT_HEARTBEAT_TTL_SECONDS = 5 * 60

T = TypeVar("T")


class AgentRegistry:
    """Key-value CRUD for agents plus an expiring heartbeat key per agent."""

    def __init__(
        self,
        client: Redis,
        *,
        heartbeat_ttl_seconds: int = DEFAULT_HEARTBEAT_TTL_SECONDS,
        timeout: float | None = None,
    ) -> None:
        self._client = client
        self._heartbeat_ttl_seconds = heartbeat_ttl_seconds
        self._timeout = timeout

    async def register(self, request: RegisterAgentRequest) -> Agent:
        now = datetime.now(timezone.utc)
        agent = Agent(
            id=str(uuid.uuid4()),
            name=request.name,
            type=request.type,
            capabilities=request.capabilities,
            endpoint=request.endpoint,
            status=AgentStatus.ONLINE,
            metadata=request.metadata,
            created_at=now,
            last_seen=now,
        )
        await self._save(agent)
        await self._call(self._client.sadd(AGENT_INDEX_KEY, agent.id))
        await self._touch_heartbeat(agent.id)
        logger.info("agent.registered", agent_id=agent.id, name=agent.name, type=agent.type)
        return agent

    async def get(self, agent_id: str) -> Agent:
        raw = await self._call(self._client.get(_agent_key(agent_id)))
        if raw is None:
            raise AgentNotFound(f"agent '{agent_id}' not found")
        try:
            return Agent.model_validate_json(raw)
        except ValidationError as exc:
            raise RegistryUnavailable(f"corrupt record for agent '{agent_id}'") from exc

    async def list(self) -> list[Agent]:
        agent_ids = await self._call(self._client.smembers(AGENT_INDEX_KEY))
        agents: list[Agent] = []
        for agent_id in sorted(agent_ids or ()):
            try:
                agents.append(await self.get(agent_id))
            except (AgentNotFound, RegistryUnavailable) as exc:
                # Index entries can outlive their records; skip them.
                logger.debug("agent.list_skipped", agent_id=agent_id, error=str(exc))
        return agents

    async def update(self, agent_id: str, request: UpdateAgentRequest) -> Agent:
        agent = await self.get(agent_id)
        changes = {
            field: value
            for field, value in request.model_dump(exclude_none=True).items()
            if value not in ("", [])
        }
        updated = Agent.model_validate({**agent.model_dump(), **changes})
        await self._save(updated)
        logger.info("agent.updated", agent_id=agent_id, fields=sorted(changes))
        return updated

    async def unregister(self, agent_id: str) -> None:
        await self.get(agent_id)
        await self._call(self._client.srem(AGENT_INDEX_KEY, agent_id))
        await self._call(
            self._client.delete(_agent_key(agent_id), f"{HEARTBEAT_KEY_PREFIX}{agent_id}")
        )
        logger.info("agent.unregistered", agent_id=agent_id)

    async def heartbeat(self, agent_id: str) -> Agent:
        agent = await self.get(agent_id)
        await self._touch_heartbeat(agent_id)
        refreshed = agent.model_copy(update={"last_seen": datetime.now(timezone.utc)})
        await self._save(refreshed)
        return refreshed

    async def is_alive(self, agent_id: str) -> bool:
        """True while the agent's heartbeat key has not expired."""

        return bool(await self._call(self._client.exists(f"{HEARTBEAT_KEY_PREFIX}{agent_id}")))

    async def _touch_heartbeat(self, agent_id: str) -> None:
        stamp = int(datetime.now(timezone.utc).timestamp())
        await self._call(
            self._client.set(
                f"{HEARTBEAT_KEY_PREFIX}{agent_id}", stamp, ex=self._heartbeat_ttl_seconds
            )
        )

    async def _save(self, agent: Agent) -> None:
        await self._call(self._client.set(_agent_key(agent.id), agent.model_dump_json()))

    async def _call(self, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, self._timeout)
        except asyncio.TimeoutError as exc:
            raise RegistryUnavailable("registry operation timed out") from exc
        except RedisError as exc:
            raise RegistryUnavailable(f"registry operation failed: {exc}") from exc


def _agent_key(agent_id: str) -> str:
    return f"{AGENT_KEY_PREFIX}{agent_id}"
