"""
Error taxonomy shared by the relationship graph engine and its HTTP surface.

NotFound and InvalidArgument are permanent; Unavailable and Timeout are
transient and may be retried by the caller with backoff. The engine itself
never retries.
"""

from __future__ import annotations


class GraphEngineError(Exception):
    """Base class for every error raised by the graph engine."""

    code = "internal"
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {
            "error": self.message,
            "code": self.code,
            "retryable": self.retryable,
        }


class EntityNotFoundError(GraphEngineError):
    """Raised when an entity id is unknown to the current snapshot."""

    code = "not_found"

    def __init__(self, entity_id: str, message: str = ""):
        super().__init__(message or f"Entity not found: {entity_id}")
        self.entity_id = entity_id


class InvalidArgumentError(GraphEngineError):
    """Raised for malformed filters, out-of-range depths and oversized node sets."""

    code = "invalid_argument"


class StoreUnavailableError(GraphEngineError):
    """Raised when the entity or relationship store cannot be read."""

    code = "unavailable"
    retryable = True


class ComputationTimeoutError(GraphEngineError):
    """Raised when a walk runs past its request deadline."""

    code = "timeout"
    retryable = True


__all__ = [
    "ComputationTimeoutError",
    "EntityNotFoundError",
    "GraphEngineError",
    "InvalidArgumentError",
    "StoreUnavailableError",
]
