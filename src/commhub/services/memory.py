"""Client for the external agent memory service."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from ..errors import MemoryNotFound, MemoryServiceError
from ..models import Memory, MemoryType

logger = structlog.get_logger(__name__)

SHORT_TERM_PREFIX = "memory:short:"
LONG_TERM_PREFIX = "memory:long:"


def memory_key(memory_type: MemoryType, agent_id: str, key: str) -> str:
    prefix = SHORT_TERM_PREFIX if memory_type is MemoryType.SHORT_TERM else LONG_TERM_PREFIX
    return f"{prefix}{agent_id}:{key}"


class MemoryClient:
    """Namespaces keys per agent and forwards to the memory service over HTTP."""

    def __init__(self, client: httpx.AsyncClient, base_url: str) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")

    async def store(
        self,
        agent_id: str,
        memory_type: MemoryType,
        key: str,
        value: Any,
        ttl_seconds: int = 0,
    ) -> str:
        """Store a value and return the namespaced key the service holds it under."""

        full_key = memory_key(memory_type, agent_id, key)
        body: dict[str, Any] = {
            "memory_type": memory_type.value,
            "key": full_key,
            "value": value,
        }
        if memory_type is MemoryType.SHORT_TERM:
            body["ttl"] = ttl_seconds

        response = await self._request("POST", json=body)
        if response.status_code not in (200, 201):
            raise _service_error("store", response)
        logger.info("memory.stored", agent_id=agent_id, key=key, memory_type=memory_type.value)
        return full_key

    async def get(self, agent_id: str, memory_type: MemoryType, key: str) -> Memory:
        full_key = memory_key(memory_type, agent_id, key)
        response = await self._request("GET", params={"key": full_key})
        if response.status_code == 404:
            raise MemoryNotFound(f"memory '{key}' not found")
        if response.status_code != 200:
            raise _service_error("get", response)
        try:
            return Memory.model_validate(response.json())
        except ValueError as exc:
            raise MemoryServiceError(f"memory service returned an invalid body: {exc}") from exc

    async def delete(self, agent_id: str, memory_type: MemoryType, key: str) -> None:
        full_key = memory_key(memory_type, agent_id, key)
        response = await self._request("DELETE", params={"key": full_key})
        if response.status_code not in (200, 204):
            raise _service_error("delete", response)
        logger.info("memory.deleted", agent_id=agent_id, key=key, memory_type=memory_type.value)

    async def search_long_term(self, agent_id: str, query: str) -> list[Memory]:
        """Always empty: the memory service has no search endpoint."""

        return []

    async def _request(
        self,
        method: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
    ) -> httpx.Response:
        try:
            return await self._client.request(
                method, f"{self._base_url}/memory", json=json, params=params
            )
        except httpx.HTTPError as exc:
            raise MemoryServiceError(f"memory service unreachable: {exc}") from exc


def _service_error(action: str, response: httpx.Response) -> MemoryServiceError:
    return MemoryServiceError(
        f"memory {action} failed with status {response.status_code}: {response.text}",
        status_code=response.status_code,
    )
