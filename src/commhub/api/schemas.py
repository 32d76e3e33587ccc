"""API response schemas for the hub endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel

from ..models import Agent, AgentStatus, Memory, Message


class RegisterAgentResponse(BaseModel):
    id: str
    status: AgentStatus


class AgentListResponse(BaseModel):
    agents: list[Agent]
    count: int


class SendMessageResponse(BaseModel):
    message_id: str
    created_at: datetime
    channel: str


class MessageListResponse(BaseModel):
    messages: list[Message]
    count: int


class StoreMemoryResponse(BaseModel):
    key: str
    stored_at: datetime


class MemoryListResponse(BaseModel):
    memories: list[Memory]
    count: int


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
    services: dict[str, str]
