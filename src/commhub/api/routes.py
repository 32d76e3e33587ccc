"""HTTP routes for the hub."""

from __future__ import annotations

from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from starlette.responses import StreamingResponse

from ..errors import HubError
from ..logging import bind_context
from ..models import (
    Agent,
    Memory,
    MemoryType,
    Message,
    RegisterAgentRequest,
    SendMessageRequest,
    StoreMemoryRequest,
    UpdateAgentRequest,
)
from ..services import channels
from ..services.hub import HubService
from .errors import map_exception
from .schemas import (
    AgentListResponse,
    HealthResponse,
    MemoryListResponse,
    MessageListResponse,
    RegisterAgentResponse,
    SendMessageResponse,
    StoreMemoryResponse,
)
from .sse import message_events, sse_response

logger = structlog.get_logger(__name__)
router = APIRouter()
api = APIRouter(prefix="/api/v1")

DEFAULT_HISTORY_LIMIT = 50
HEALTH_TIMEOUT_SECONDS = 5.0


def get_hub(request: Request) -> HubService:
    hub: HubService = request.app.state.hub
    return hub


async def require_agent(agent_id: str, hub: HubService) -> Agent:
    bind_context(agent_id=agent_id)
    try:
        return await hub.registry.get(agent_id)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc


@router.get("/health", response_model=HealthResponse)
async def health_check(hub: HubService = Depends(get_hub)) -> HealthResponse:
    results = await hub.redis.ping(timeout=HEALTH_TIMEOUT_SECONDS)
    services: dict[str, str] = {}
    overall = "healthy"
    for name, error in results.items():
        if error is None:
            services[f"redis_{name}"] = "healthy"
        else:
            services[f"redis_{name}"] = f"unhealthy: {error}"
            overall = "degraded"
    return HealthResponse(status=overall, timestamp=datetime.now(timezone.utc), services=services)


@router.get("/ready")
async def readiness(hub: HubService = Depends(get_hub)) -> dict[str, object]:
    results = await hub.redis.ping(timeout=HEALTH_TIMEOUT_SECONDS)
    if any(error is not None for error in results.values()):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "not_ready", "details": results},
        )
    return {"status": "ready"}


@api.post("/agents", status_code=status.HTTP_201_CREATED, response_model=RegisterAgentResponse)
async def register_agent(
    payload: RegisterAgentRequest,
    hub: HubService = Depends(get_hub),
) -> RegisterAgentResponse:
    try:
        agent = await hub.registry.register(payload)
    except HubError as exc:
        raise map_exception(exc) from exc
    return RegisterAgentResponse(id=agent.id, status=agent.status)


@api.get("/agents", response_model=AgentListResponse)
async def list_agents(hub: HubService = Depends(get_hub)) -> AgentListResponse:
    try:
        agents = await hub.registry.list()
    except HubError as exc:
        raise map_exception(exc) from exc
    return AgentListResponse(agents=agents, count=len(agents))


@api.get("/agents/{agent_id}", response_model=Agent)
async def get_agent(agent_id: str, hub: HubService = Depends(get_hub)) -> Agent:
    return await require_agent(agent_id, hub)


@api.put("/agents/{agent_id}", response_model=Agent)
async def update_agent(
    agent_id: str,
    payload: UpdateAgentRequest,
    hub: HubService = Depends(get_hub),
) -> Agent:
    try:
        return await hub.registry.update(agent_id, payload)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc


@api.delete("/agents/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unregister_agent(agent_id: str, hub: HubService = Depends(get_hub)) -> Response:
    try:
        await hub.registry.unregister(agent_id)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@api.post("/agents/{agent_id}/heartbeat")
async def heartbeat(agent_id: str, hub: HubService = Depends(get_hub)) -> dict[str, str]:
    try:
        await hub.registry.heartbeat(agent_id)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc
    return {"status": "ok"}


@api.post(
    "/agents/{agent_id}/messages",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=SendMessageResponse,
)
async def send_message(
    agent_id: str,
    payload: SendMessageRequest,
    hub: HubService = Depends(get_hub),
) -> SendMessageResponse:
    await require_agent(agent_id, hub)
    try:
        message = await hub.broker.send(agent_id, payload)
    except HubError as exc:
        logger.warning(
            "message.send_failed", from_agent=agent_id, to_agent=payload.to, error=str(exc)
        )
        raise map_exception(exc, agent_id) from exc
    return SendMessageResponse(
        message_id=message.id,
        created_at=message.created_at,
        channel=channels.resolve(message.to_agent),
    )


@api.get("/agents/{agent_id}/messages", response_model=MessageListResponse)
async def message_history(
    agent_id: str,
    limit: int | None = None,
    hub: HubService = Depends(get_hub),
) -> MessageListResponse:
    await require_agent(agent_id, hub)
    if limit is None or limit <= 0:
        limit = DEFAULT_HISTORY_LIMIT
    try:
        messages: list[Message] = await hub.broker.history(agent_id, limit)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc
    return MessageListResponse(messages=messages, count=len(messages))


@api.get("/agents/{agent_id}/messages/stream")
async def stream_agent_messages(
    agent_id: str,
    hub: HubService = Depends(get_hub),
) -> StreamingResponse:
    await require_agent(agent_id, hub)
    try:
        subscription = await hub.broker.subscribe(agent_id)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc
    return sse_response(message_events(subscription), subscription)


@api.get("/broadcast/stream")
async def stream_broadcast(hub: HubService = Depends(get_hub)) -> StreamingResponse:
    try:
        subscription = await hub.broker.subscribe_broadcast()
    except HubError as exc:
        raise map_exception(exc) from exc
    return sse_response(message_events(subscription), subscription)


@api.post(
    "/agents/{agent_id}/memory",
    status_code=status.HTTP_201_CREATED,
    response_model=StoreMemoryResponse,
)
async def store_memory(
    agent_id: str,
    payload: StoreMemoryRequest,
    hub: HubService = Depends(get_hub),
) -> StoreMemoryResponse:
    await require_agent(agent_id, hub)
    ttl_seconds = payload.ttl_seconds
    if payload.memory_type is MemoryType.SHORT_TERM and ttl_seconds == 0:
        ttl_seconds = hub.settings.short_term_memory_ttl_seconds
    try:
        await hub.memory.store(
            agent_id, payload.memory_type, payload.key, payload.value, ttl_seconds=ttl_seconds
        )
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc
    return StoreMemoryResponse(key=payload.key, stored_at=datetime.now(timezone.utc))


@api.get("/agents/{agent_id}/memory")
async def get_memory(
    agent_id: str,
    key: str | None = None,
    memory_type: MemoryType = Query(default=MemoryType.LONG_TERM, alias="type"),
    hub: HubService = Depends(get_hub),
) -> Memory | MemoryListResponse:
    await require_agent(agent_id, hub)
    if not key:
        # Listing is not supported by the memory service.
        return MemoryListResponse(memories=[], count=0)
    try:
        return await hub.memory.get(agent_id, memory_type, key)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc


@api.delete("/agents/{agent_id}/memory", status_code=status.HTTP_204_NO_CONTENT)
async def delete_memory(
    agent_id: str,
    key: str = Query(..., min_length=1),
    memory_type: MemoryType = Query(default=MemoryType.LONG_TERM, alias="type"),
    hub: HubService = Depends(get_hub),
) -> Response:
    await require_agent(agent_id, hub)
    try:
        await hub.memory.delete(agent_id, memory_type, key)
    except HubError as exc:
        raise map_exception(exc, agent_id) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


router.include_router(api)
