"""Error taxonomy surfaced by the relationship engine."""

from __future__ import annotations

from typing import Any


class GraphError(Exception):
    """Base class for relationship engine failures.

    ``message`` is safe to show to end users; ``context`` carries the ids
    involved for logging.
    """

    code = "GRAPH_ERROR"
    http_status = 400

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def to_response(self) -> dict[str, str]:
        return {"detail": self.message, "code": self.code}


class ValidationError(GraphError):
    code = "VALIDATION_ERROR"
    http_status = 400


class NotFoundError(GraphError):
    code = "NOT_FOUND"
    http_status = 404


class ForbiddenError(GraphError):
    code = "FORBIDDEN"
    http_status = 403


class InvalidStateError(GraphError):
    code = "INVALID_STATE"
    http_status = 409


class DuplicateError(GraphError):
    code = "DUPLICATE"
    http_status = 409


class BlockedError(GraphError):
    code = "BLOCKED"
    http_status = 403


__all__ = [
    "BlockedError",
    "DuplicateError",
    "ForbiddenError",
    "GraphError",
    "InvalidStateError",
    "NotFoundError",
    "ValidationError",
]
