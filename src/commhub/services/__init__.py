"""Service layer exports."""

from .broker import MessageBroker
from .connections import RedisManager
from .history import HistoryStore
from .hub import HubService
from .memory import MemoryClient
from .pubsub import Publisher, Subscriber, Subscription
from .registry import AgentRegistry

__all__ = [
    "AgentRegistry",
    "HistoryStore",
    "HubService",
    "MemoryClient",
    "MessageBroker",
    "Publisher",
    "RedisManager",
    "Subscriber",
    "Subscription",
]
