"""Redis pub/sub adapters: fire-and-forget publishing and cancellable live feeds."""

from __future__ import annotations

import asyncio

import structlog
from pydantic import ValidationError
from redis.asyncio import Redis
from redis.asyncio.client import PubSub
from redis.exceptions import RedisError

from ..errors import PublishFailure, SubscriptionFailure
from ..models import Message

logger = structlog.get_logger(__name__)

DEFAULT_POLL_INTERVAL = 1.0


class Publisher:
    """Publishes serialized messages. Redis gives no delivery acknowledgment."""

    def __init__(self, client: Redis, *, timeout: float | None = None) -> None:
        self._client = client
        self._timeout = timeout

    async def publish(self, channel: str, data: str, *, timeout: float | None = None) -> int:
        """Publish ``data`` and return the number of subscribers Redis handed it to."""

        deadline = timeout if timeout is not None else self._timeout
        try:
            receivers = await asyncio.wait_for(self._client.publish(channel, data), deadline)
        except asyncio.TimeoutError as exc:
            raise PublishFailure(f"publish to '{channel}' timed out") from exc
        except RedisError as exc:
            raise PublishFailure(f"failed to publish to '{channel}': {exc}") from exc
        logger.debug("channel.published", channel=channel, receivers=receivers)
        return receivers


class Subscription:
    """Live feed of messages on one channel.

    Each subscription owns its own pub/sub connection, so every concurrent
    subscriber gets its own copy of each message. Nothing published before
    ``start`` is replayed.
    """

    def __init__(
        self,
        pubsub: PubSub,
        channel: str,
        *,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._pubsub = pubsub
        self._poll_interval = poll_interval
        self._closed = False
        self.channel = channel

    @property
    def closed(self) -> bool:
        return self._closed

    async def start(self, *, timeout: float | None = None) -> None:
        try:
            await asyncio.wait_for(self._pubsub.subscribe(self.channel), timeout)
        except asyncio.TimeoutError as exc:
            await self._pubsub.aclose()
            raise SubscriptionFailure(f"subscribe to '{self.channel}' timed out") from exc
        except RedisError as exc:
            await self._pubsub.aclose()
            raise SubscriptionFailure(f"failed to subscribe to '{self.channel}': {exc}") from exc
        logger.info("channel.subscribed", channel=self.channel)

    async def cancel(self) -> None:
        """Stop this feed. Other subscribers and the channel are unaffected."""

        if self._closed:
            return
        self._closed = True
        try:
            await self._pubsub.unsubscribe(self.channel)
        except RedisError as exc:
            logger.warning("channel.unsubscribe_failed", channel=self.channel, error=str(exc))
        finally:
            await self._pubsub.aclose()
        logger.info("channel.unsubscribed", channel=self.channel)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> Message:
        while not self._closed:
            try:
                frame = await self._pubsub.get_message(
                    ignore_subscribe_messages=True, timeout=self._poll_interval
                )
            except RedisError as exc:
                if self._closed:
                    break
                raise SubscriptionFailure(f"lost subscription to '{self.channel}': {exc}") from exc
            if frame is None or frame.get("type") != "message":
                continue
            try:
                return Message.from_wire(frame["data"])
            except (ValidationError, ValueError) as exc:
                logger.debug("channel.frame_skipped", channel=self.channel, error=str(exc))
        raise StopAsyncIteration

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.cancel()


class Subscriber:
    """Opens subscriptions on the pub/sub connection pool."""

    def __init__(
        self,
        client: Redis,
        *,
        timeout: float | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
    ) -> None:
        self._client = client
        self._timeout = timeout
        self._poll_interval = poll_interval

    async def subscribe(self, channel: str, *, timeout: float | None = None) -> Subscription:
        subscription = Subscription(
            self._client.pubsub(), channel, poll_interval=self._poll_interval
        )
        await subscription.start(timeout=timeout if timeout is not None else self._timeout)
        return subscription
