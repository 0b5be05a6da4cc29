"""
Error hierarchy for the floor-plan authoring engine.

Every failure the core reports is an EditorError carrying a short ``kind``
tag and a human-readable message, so the host can present it without
inspecting exception types:

- ValidationError (validation): lives in validation.core, raised by drafts
- PersistenceError (persistence): a persistence call failed
- ConnectionFailedError (connection): node created, follow-up edge failed
- NotFoundError (not_found): the server has no entity with that identifier
- InvalidActionError (invalid_action): the editor was asked to do something
  its current state does not allow
- CanvasResourceError (canvas): duplicate or unknown visual resource
"""

from __future__ import annotations

from typing import Optional


class EditorError(Exception):
    """Base class for all errors raised by the editor core."""

    kind = "editor"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict:
        return {'kind': self.kind, 'message': self.message}


class PersistenceError(EditorError):
    """A persistence call was rejected or could not be completed."""

    kind = "persistence"

    def __init__(self, message: str, status: Optional[int] = None):
        self.status = status
        super().__init__(message)


class NotFoundError(PersistenceError):
    kind = "not_found"


class ConnectionFailedError(PersistenceError):
    """The node exists on the server but the edge to ``target_id`` does not.

    Route node creation is not atomic. The caller owns reconciliation, which
    usually means reloading the floor.
    """

    kind = "connection"

    def __init__(self, node_id: int, target_id: int, cause: Optional[Exception] = None):
        self.node_id = node_id
        self.target_id = target_id
        status = getattr(cause, 'status', None)
        super().__init__(
            f"Node {node_id} was created but connecting it to node {target_id} failed"
            + (f": {cause}" if cause else ""),
            status=status,
        )


class InvalidActionError(EditorError):
    kind = "invalid_action"


class CanvasResourceError(EditorError):
    """Raised when a visual resource is created twice or removed while absent."""

    kind = "canvas"
