"""Message broker orchestrating publish and history for agent sends."""

from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone

import structlog

from ..errors import HistoryWriteFailure, InvalidRecipient
from ..models import Message, MessageKind, SendMessageRequest
from . import channels
from .history import HistoryStore
from .pubsub import Publisher, Subscriber, Subscription

logger = structlog.get_logger(__name__)


class _Clock:
    """UTC wall clock that never goes backwards within a process."""

    def __init__(self) -> None:
        self._last: datetime | None = None

    def now(self) -> datetime:
        current = datetime.now(timezone.utc)
        if self._last is not None and current <= self._last:
            current = self._last + timedelta(microseconds=1)
        self._last = current
        return current


class MessageBroker:
    """Publishes agent messages and records them in sender/recipient history.

    Delivery is best effort: a returned message means the transport accepted
    the publish, not that any subscriber received it. History is a side
    channel, so history write failures are logged and never fail a send.
    """

    def __init__(
        self,
        publisher: Publisher,
        subscriber: Subscriber,
        history: HistoryStore,
    ) -> None:
        self._publisher = publisher
        self._subscriber = subscriber
        self._history = history
        self._clock = _Clock()

    async def send(
        self,
        from_agent_id: str,
        request: SendMessageRequest,
        *,
        timeout: float | None = None,
    ) -> Message:
        recipient = request.to
        if not isinstance(recipient, str) or not recipient.strip():
            raise InvalidRecipient("recipient is required")

        message = Message(
            id=str(uuid.uuid4()),
            from_agent=from_agent_id,
            to_agent=recipient,
            kind=request.kind or MessageKind.MESSAGE,
            payload=request.payload,
            correlation_id=request.correlation_id,
            created_at=self._clock.now(),
            ttl_seconds=request.ttl_seconds,
        )
        channel = channels.resolve(recipient)

        # Publish failure aborts before any history is written.
        receivers = await self._publisher.publish(channel, message.to_wire(), timeout=timeout)

        owners = [from_agent_id]
        if not channels.is_broadcast(recipient):
            owners.append(recipient)
        results = await asyncio.gather(
            *(self._history.append(owner, message, timeout=timeout) for owner in owners),
            return_exceptions=True,
        )
        for owner, result in zip(owners, results):
            if isinstance(result, HistoryWriteFailure):
                logger.warning(
                    "history.write_failed",
                    message_id=message.id,
                    agent_id=owner,
                    error=str(result),
                )
            elif isinstance(result, BaseException):
                raise result

        logger.info(
            "message.sent",
            message_id=message.id,
            from_agent=from_agent_id,
            to_agent=recipient,
            channel=channel,
            kind=message.kind.value,
            receivers=receivers,
        )
        return message

    async def history(
        self, agent_id: str, limit: int | None = None, *, timeout: float | None = None
    ) -> list[Message]:
        return await self._history.list(agent_id, limit, timeout=timeout)

    async def subscribe(self, agent_id: str, *, timeout: float | None = None) -> Subscription:
        return await self._subscriber.subscribe(channels.resolve(agent_id), timeout=timeout)

    async def subscribe_broadcast(self, *, timeout: float | None = None) -> Subscription:
        return await self._subscriber.subscribe(channels.BROADCAST_CHANNEL, timeout=timeout)
