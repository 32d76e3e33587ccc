"""Utilities for translating hub errors into HTTP responses."""

from __future__ import annotations

from fastapi import HTTPException, status

from ..errors import (
    AgentNotFound,
    HistoryReadFailure,
    InvalidRecipient,
    MemoryNotFound,
    MemoryServiceError,
    PublishFailure,
    RegistryUnavailable,
    SubscriptionFailure,
)

_STATUS_CODES: list[tuple[type[Exception], int, str]] = [
    (InvalidRecipient, status.HTTP_400_BAD_REQUEST, "invalid_recipient"),
    (AgentNotFound, status.HTTP_404_NOT_FOUND, "agent_not_found"),
    (MemoryNotFound, status.HTTP_404_NOT_FOUND, "memory_not_found"),
    (PublishFailure, status.HTTP_503_SERVICE_UNAVAILABLE, "publish_failed"),
    (SubscriptionFailure, status.HTTP_503_SERVICE_UNAVAILABLE, "subscription_failed"),
    (HistoryReadFailure, status.HTTP_503_SERVICE_UNAVAILABLE, "history_unavailable"),
    (RegistryUnavailable, status.HTTP_503_SERVICE_UNAVAILABLE, "registry_unavailable"),
]


def map_exception(exc: Exception, agent_id: str | None = None) -> HTTPException:
    if isinstance(exc, MemoryServiceError):
        return HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "error": {
                    "message": str(exc),
                    "code": "memory_service_error",
                    "agent_id": agent_id,
                    "upstream_status": exc.status_code,
                }
            },
        )

    for exc_type, http_status, code in _STATUS_CODES:
        if isinstance(exc, exc_type):
            return HTTPException(
                status_code=http_status,
                detail={"error": {"message": str(exc), "code": code, "agent_id": agent_id}},
            )

    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail={"error": {"message": str(exc), "code": "internal_error", "agent_id": agent_id}},
    )
