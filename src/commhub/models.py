"""Shared domain models for agents, messages and memory."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class MessageKind(str, Enum):
    """Hint for consumers about the intent of a message; never interpreted by the hub."""

    REQUEST = "request"
    RESPONSE = "response"
    EVENT = "event"
    MESSAGE = "message"


class Message(BaseModel):
    """Transport envelope published on a channel and stored in agent history."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    id: str
    from_agent: str = Field(alias="from")
    to_agent: str = Field(alias="to")
    kind: MessageKind = MessageKind.MESSAGE
    payload: Any = None
    correlation_id: str | None = None
    created_at: datetime
    ttl_seconds: int = Field(default=0, ge=0, description="0 means no expiration.")

    def to_wire(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_wire(cls, data: str | bytes) -> "Message":
        return cls.model_validate_json(data)


class SendMessageRequest(BaseModel):
    """Caller-supplied fields for a send; id and created_at are assigned by the broker."""

    to: str = Field(..., description="Recipient agent id or 'broadcast'.")
    kind: MessageKind | None = None
    payload: Any = None
    correlation_id: str | None = None
    ttl_seconds: int = Field(default=0, ge=0)


class AgentStatus(str, Enum):
    ONLINE = "online"
    OFFLINE = "offline"
    BUSY = "busy"


class Agent(BaseModel):
    """Registered agent as stored in the directory."""

    id: str
    name: str
    type: str
    capabilities: list[str] = Field(default_factory=list)
    endpoint: str = ""
    status: AgentStatus = AgentStatus.ONLINE
    metadata: dict[str, str] = Field(default_factory=dict)
    created_at: datetime
    last_seen: datetime


class RegisterAgentRequest(BaseModel):
    name: str = Field(..., min_length=1)
    type: str = Field(..., min_length=1)
    capabilities: list[str] = Field(default_factory=list)
    endpoint: str = ""
    metadata: dict[str, str] = Field(default_factory=dict)


class UpdateAgentRequest(BaseModel):
    """Partial update; unset or empty fields keep their stored value."""

    name: str | None = None
    type: str | None = None
    capabilities: list[str] | None = None
    endpoint: str | None = None
    status: AgentStatus | None = None
    metadata: dict[str, str] | None = None


class MemoryType(str, Enum):
    SHORT_TERM = "short_term"
    LONG_TERM = "long_term"


class Memory(BaseModel):
    """Entry returned by the external memory service."""

    model_config = ConfigDict(extra="ignore")

    key: str
    value: Any = None
    memory_type: MemoryType
    stored_at: datetime | None = None
    ttl_seconds: int = Field(default=0, validation_alias=AliasChoices("ttl_seconds", "ttl"))


class StoreMemoryRequest(BaseModel):
    memory_type: MemoryType
    key: str = Field(..., min_length=1)
    value: Any
    ttl_seconds: int = Field(default=0, ge=0)
