"""Helper utilities for agents that talk to the hub."""

from __future__ import annotations

import json
from typing import Any, AsyncIterator

import httpx

DEFAULT_BASE_URL = "http://127.0.0.1:8080"
BROADCAST = "broadcast"


class HubAgentClient:
    """Thin async wrapper around the hub's agent, message and stream endpoints."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def __aenter__(self) -> "HubAgentClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def register(
        self,
        *,
        name: str,
        agent_type: str,
        capabilities: list[str] | None = None,
        endpoint: str = "",
        metadata: dict[str, str] | None = None,
    ) -> str:
        """Register an agent and return the id the hub assigned."""

        response = await self._client.post(
            "/api/v1/agents",
            json={
                "name": name,
                "type": agent_type,
                "capabilities": capabilities or [],
                "endpoint": endpoint,
                "metadata": metadata or {},
            },
        )
        response.raise_for_status()
        return response.json()["id"]

    async def heartbeat(self, agent_id: str) -> None:
        response = await self._client.post(f"/api/v1/agents/{agent_id}/heartbeat")
        response.raise_for_status()

    async def send(
        self,
        from_agent_id: str,
        to: str,
        payload: Any,
        *,
        kind: str | None = None,
        correlation_id: str | None = None,
        ttl_seconds: int | None = None,
    ) -> dict[str, Any]:
        """Send a message; the result confirms acceptance, not delivery."""

        body: dict[str, Any] = {"to": to, "payload": payload}
        if kind:
            body["kind"] = kind
        if correlation_id:
            body["correlation_id"] = correlation_id
        if ttl_seconds is not None:
            body["ttl_seconds"] = ttl_seconds

        response = await self._client.post(f"/api/v1/agents/{from_agent_id}/messages", json=body)
        response.raise_for_status()
        return response.json()

    async def broadcast(self, from_agent_id: str, payload: Any, **kwargs: Any) -> dict[str, Any]:
        return await self.send(from_agent_id, BROADCAST, payload, **kwargs)

    async def history(self, agent_id: str, limit: int | None = None) -> list[dict[str, Any]]:
        params = {"limit": limit} if limit is not None else None
        response = await self._client.get(f"/api/v1/agents/{agent_id}/messages", params=params)
        response.raise_for_status()
        return response.json()["messages"]

    async def stream_messages(self, agent_id: str) -> AsyncIterator[dict[str, Any]]:
        """Yield messages published to ``agent_id`` from now on."""

        async for event in self._stream_events(f"/api/v1/agents/{agent_id}/messages/stream"):
            if event["event"] == "message":
                yield event["data"]

    async def stream_broadcast(self) -> AsyncIterator[dict[str, Any]]:
        async for event in self._stream_events("/api/v1/broadcast/stream"):
            if event["event"] == "message":
                yield event["data"]

    async def _stream_events(self, path: str) -> AsyncIterator[dict[str, Any]]:
        async with self._client.stream("GET", path, timeout=None) as response:
            response.raise_for_status()
            current_event: str | None = None
            async for raw_line in response.aiter_lines():
                line = raw_line.strip()
                if not line or line.startswith(":"):
                    continue
                if line.startswith("event:"):
                    current_event = line.replace("event:", "", 1).strip()
                    continue
                if line.startswith("data:") and current_event:
                    data = json.loads(line.replace("data:", "", 1).strip())
                    yield {"event": current_event, "data": data}
                    current_event = None
