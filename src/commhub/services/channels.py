"""Mapping from logical recipients to pub/sub channel names."""

from __future__ import annotations

BROADCAST = "broadcast"
BROADCAST_CHANNEL = "agent:broadcast"
DIRECT_CHANNEL_PREFIX = "agent:message:"


def is_broadcast(recipient: str) -> bool:
    return recipient == BROADCAST


def resolve(recipient: str) -> str:
    """Return the channel a message for ``recipient`` is published on.

    Every agent owns exactly one inbound channel. The prefix never matches the
    broadcast channel, so no agent id can collide with it or with another agent.
    """

    if is_broadcast(recipient):
        return BROADCAST_CHANNEL
    return f"{DIRECT_CHANNEL_PREFIX}{recipient}"
