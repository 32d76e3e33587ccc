"""Shared fixtures and an in-memory stand-in for the Redis client."""

from __future__ import annotations

import asyncio
import json
import time
from collections import defaultdict
from typing import Any

import httpx
import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from commhub.services.broker import MessageBroker
from commhub.services.connections import RedisManager
from commhub.services.history import HistoryStore
from commhub.services.hub import HubService
from commhub.services.memory import MemoryClient
from commhub.services.pubsub import Publisher, Subscriber
from commhub.settings import Settings


class FakeRedis:
    """Covers the subset of redis.asyncio.Redis the hub uses, with decode_responses=True.

    Byte values are decoded on the way out with ``encoding_errors``, as redis-py does.
    """

    def __init__(self, encoding_errors: str = "strict") -> None:
        self.encoding_errors = encoding_errors
        self.lists: dict[str, list[str]] = {}
        self.strings: dict[str, str] = {}
        self.sets: dict[str, set[str]] = {}
        self.expires: dict[str, float] = {}
        self.subscribers: dict[str, list[FakePubSub]] = defaultdict(list)
        self.published: list[tuple[str, str]] = []
        self.failing: set[str] = set()
        self.stalls: dict[str, float] = {}
        self.offset = 0.0
        self.closed = False

    # test controls

    def fail(self, *commands: str) -> None:
        self.failing.update(commands)

    def stall(self, command: str, seconds: float) -> None:
        self.stalls[command] = seconds

    def advance(self, seconds: float) -> None:
        self.offset += seconds

    def _check(self, command: str) -> None:
        if command in self.failing:
            raise RedisConnectionError(f"simulated failure on {command}")

    def _now(self) -> float:
        return time.monotonic() + self.offset

    def _decode(self, value: Any) -> Any:
        if isinstance(value, bytes):
            return value.decode("utf-8", self.encoding_errors)
        return value

    def _purge(self, key: str) -> None:
        deadline = self.expires.get(key)
        if deadline is not None and deadline <= self._now():
            for store in (self.lists, self.strings, self.sets):
                store.pop(key, None)
            self.expires.pop(key, None)

    # connection

    async def ping(self) -> bool:
        self._check("ping")
        return True

    async def aclose(self) -> None:
        self.closed = True

    # lists

    async def lpush(self, key: str, *values: str) -> int:
        self._check("lpush")
        return self._lpush(key, *values)

    def _lpush(self, key: str, *values: str) -> int:
        self._purge(key)
        items = self.lists.setdefault(key, [])
        for value in values:
            items.insert(0, value)
        return len(items)

    async def ltrim(self, key: str, start: int, end: int) -> bool:
        self._check("ltrim")
        return self._ltrim(key, start, end)

    def _ltrim(self, key: str, start: int, end: int) -> bool:
        self._purge(key)
        if key in self.lists:
            self.lists[key] = self.lists[key][start : _stop(end)]
        return True

    async def lrange(self, key: str, start: int, end: int) -> list[str]:
        self._check("lrange")
        self._purge(key)
        return [self._decode(item) for item in self.lists.get(key, [])[start : _stop(end)]]

    async def expire(self, key: str, seconds: int) -> bool:
        self._check("expire")
        return self._expire(key, seconds)

    def _expire(self, key: str, seconds: int) -> bool:
        self._purge(key)
        if key not in self.lists and key not in self.strings and key not in self.sets:
            return False
        self.expires[key] = self._now() + seconds
        return True

    def ttl(self, key: str) -> float | None:
        deadline = self.expires.get(key)
        return None if deadline is None else deadline - self._now()

    def pipeline(self, transaction: bool = True) -> "FakePipeline":
        return FakePipeline(self)

    # strings and sets

    async def get(self, key: str) -> str | None:
        self._check("get")
        self._purge(key)
        return self.strings.get(key)

    async def set(self, key: str, value: Any, ex: int | None = None) -> bool:
        self._check("set")
        self.strings[key] = str(value)
        if ex is not None:
            self.expires[key] = self._now() + ex
        else:
            self.expires.pop(key, None)
        return True

    async def exists(self, *keys: str) -> int:
        self._check("exists")
        count = 0
        for key in keys:
            self._purge(key)
            if key in self.strings or key in self.lists or key in self.sets:
                count += 1
        return count

    async def delete(self, *keys: str) -> int:
        self._check("delete")
        removed = 0
        for key in keys:
            for store in (self.lists, self.strings, self.sets):
                if store.pop(key, None) is not None:
                    removed += 1
            self.expires.pop(key, None)
        return removed

    async def sadd(self, key: str, *members: str) -> int:
        self._check("sadd")
        target = self.sets.setdefault(key, set())
        before = len(target)
        target.update(members)
        return len(target) - before

    async def srem(self, key: str, *members: str) -> int:
        self._check("srem")
        target = self.sets.get(key, set())
        removed = len(target & set(members))
        target.difference_update(members)
        return removed

    async def smembers(self, key: str) -> set[str]:
        self._check("smembers")
        return set(self.sets.get(key, set()))

    # pub/sub

    async def publish(self, channel: str, data: str) -> int:
        self._check("publish")
        self.published.append((channel, data))
        receivers = list(self.subscribers.get(channel, []))
        for pubsub in receivers:
            pubsub.deliver({"type": "message", "channel": channel, "data": self._decode(data)})
        return len(receivers)

    def pubsub(self) -> "FakePubSub":
        return FakePubSub(self)


class FakePipeline:
    def __init__(self, server: FakeRedis) -> None:
        self._server = server
        self._commands: list[tuple[str, tuple[Any, ...]]] = []

    async def __aenter__(self) -> "FakePipeline":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self._commands.clear()

    def lpush(self, key: str, *values: str) -> "FakePipeline":
        self._commands.append(("lpush", (key, *values)))
        return self

    def ltrim(self, key: str, start: int, end: int) -> "FakePipeline":
        self._commands.append(("ltrim", (key, start, end)))
        return self

    def expire(self, key: str, seconds: int) -> "FakePipeline":
        self._commands.append(("expire", (key, seconds)))
        return self

    async def execute(self) -> list[Any]:
        await asyncio.sleep(self._server.stalls.get("execute", 0))
        # All-or-nothing like MULTI/EXEC: validate before applying anything.
        for name, _ in self._commands:
            self._server._check(name)
        self._server._check("execute")
        results = [getattr(self._server, f"_{name}")(*args) for name, args in self._commands]
        self._commands.clear()
        return results


class FakePubSub:
    def __init__(self, server: FakeRedis) -> None:
        self._server = server
        self._queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.channels: set[str] = set()
        self.closed = False

    def deliver(self, frame: dict[str, Any]) -> None:
        self._queue.put_nowait(frame)

    async def subscribe(self, *channels: str) -> None:
        self._server._check("subscribe")
        await asyncio.sleep(self._server.stalls.get("subscribe", 0))
        for channel in channels:
            self._server.subscribers[channel].append(self)
            self.channels.add(channel)
            self.deliver({"type": "subscribe", "channel": channel, "data": 1})

    async def unsubscribe(self, *channels: str) -> None:
        for channel in channels or tuple(self.channels):
            subs = self._server.subscribers.get(channel, [])
            if self in subs:
                subs.remove(self)
            self.channels.discard(channel)

    async def get_message(
        self, ignore_subscribe_messages: bool = False, timeout: float | None = 0.0
    ) -> dict[str, Any] | None:
        if self.closed:
            return None
        try:
            frame = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if ignore_subscribe_messages and frame["type"] != "message":
            return None
        return frame

    async def aclose(self) -> None:
        await self.unsubscribe()
        self.closed = True


def _stop(end: int) -> int | None:
    return None if end == -1 else end + 1


def memory_service_handler(store: dict[str, dict[str, Any]]):
    """Mimic the external memory service's /memory endpoint."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.method == "POST":
            body = json.loads(request.content)
            store[body["key"]] = {
                "key": body["key"],
                "value": body["value"],
                "memory_type": body["memory_type"],
                "stored_at": "2026-01-01T00:00:00Z",
                "ttl": body.get("ttl", 0),
            }
            return httpx.Response(201, json={"key": body["key"]})
        key = request.url.params.get("key")
        if request.method == "GET":
            if key not in store:
                return httpx.Response(404, text="not found")
            return httpx.Response(200, json=store[key])
        if request.method == "DELETE":
            store.pop(key, None)
            return httpx.Response(204)
        return httpx.Response(405)

    return handler


def build_broker(redis: FakeRedis, **history_options: Any) -> MessageBroker:
    return MessageBroker(
        publisher=Publisher(redis),
        subscriber=Subscriber(redis, poll_interval=0.05),
        history=HistoryStore(redis, **history_options),
    )


@pytest.fixture
def fake_redis() -> FakeRedis:
    # Matches the client options in RedisManager.from_settings.
    return FakeRedis(encoding_errors="replace")


@pytest.fixture
def broker(fake_redis: FakeRedis) -> MessageBroker:
    return build_broker(fake_redis)


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None, log_level="warning")


@pytest.fixture
def memory_store() -> dict[str, dict[str, Any]]:
    return {}


@pytest.fixture
def hub(settings: Settings, fake_redis: FakeRedis, memory_store: dict) -> HubService:
    transport = httpx.MockTransport(memory_service_handler(memory_store))
    http_client = httpx.AsyncClient(transport=transport)
    return HubService(
        settings=settings,
        redis=RedisManager(standard=fake_redis, pubsub=fake_redis),
        http_client=http_client,
    )


@pytest.fixture
def memory_client(memory_store: dict) -> MemoryClient:
    transport = httpx.MockTransport(memory_service_handler(memory_store))
    return MemoryClient(httpx.AsyncClient(transport=transport), "http://memory.test/")
