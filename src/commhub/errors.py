"""Exception hierarchy shared by the hub services."""

from __future__ import annotations


class HubError(RuntimeError):
    """Base class for failures raised by hub services."""


class InvalidRecipient(HubError):
    """Raised when a message recipient is empty or structurally invalid."""


class PublishFailure(HubError):
    """Raised when the pub/sub transport is unreachable or rejects a publish."""


class HistoryWriteFailure(HubError):
    """Raised when a history append cannot be persisted."""


class HistoryReadFailure(HubError):
    """Raised when the history backing store cannot be read."""


class MalformedHistoryEntry(HubError):
    """Raised when a stored history entry cannot be decoded."""


class AgentNotFound(HubError):
    """Raised when an agent id is not present in the registry."""


class RegistryUnavailable(HubError):
    """Raised when the registry backing store fails."""


class MemoryNotFound(HubError):
    """Raised when the memory service has no entry for a key."""


class MemoryServiceError(HubError):
    """Raised on memory service failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class SubscriptionFailure(HubError):
    """Raised when a channel subscription cannot be established or read."""
