# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from typing import Iterable, Optional


class CanvasChatError(Exception):
    """Base class for all canvaschat exceptions."""
    pass

class GraphValidationError(CanvasChatError):
    """Raised when a selection or message sequence breaks graph rules."""
    pass

class MissingAncestorError(CanvasChatError):
    """Raised when a placeholder has no User node feeding into it."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Assistant placeholder '{node_id}' has no incoming User node")

class AmbiguousAncestorError(CanvasChatError):
    """Raised when a placeholder has more than one User node feeding into it."""
    def __init__(self, node_id: str, ancestor_ids: Iterable[str]):
        self.node_id = node_id
        self.ancestor_ids = list(ancestor_ids)
        super().__init__(
            f"Assistant placeholder '{node_id}' has multiple incoming User nodes: {self.ancestor_ids}"
        )

class CycleDetectedError(CanvasChatError):
    """Raised when placeholder resolution re-enters a node it is already resolving."""
    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"Placeholder '{node_id}' is already being resolved (cycle)")

class ContentReadError(CanvasChatError):
    """Raised when a node's content cannot be resolved to text."""
    def __init__(self, node_id: Optional[str], reason: str):
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"Cannot read content of node '{node_id}': {reason}")

class UpstreamError(CanvasChatError):
    """Raised for completion gateway failures (transport, status, bad body)."""
    pass

class AuthError(UpstreamError):
    """Raised when the completion server rejects our credentials (401/403)."""
    pass
