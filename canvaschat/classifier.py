# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import re
from typing import Optional, Tuple

from .config import MarkerTemplates
from .kinds import ROLE_USER, ROLE_ASSISTANT, ROLE_ASSISTANT_PLACEHOLDER, ROLE_CONTEXT

_MARK_OPEN = re.compile(r"<mark[^>]*>")
_MARK_CLOSE = re.compile(r"</mark>")


def strip_markup(raw: str) -> str:
    """Remove highlight wrappers, keeping the text they wrap."""
    return _MARK_CLOSE.sub("", _MARK_OPEN.sub("", raw))


class ContentClassifier:
    """
    Labels raw node content by the role marker it starts with.

    - "User: ..."            -> user
    - "Assistant: <text>"    -> assistant
    - "Assistant:" (bare)    -> assistant placeholder, awaiting generation
    - anything else          -> context
    """

    def __init__(self, markers: Optional[MarkerTemplates] = None):
        self.markers = markers or MarkerTemplates()

    def classify(self, raw: str) -> str:
        clean = strip_markup(raw).strip()
        if clean.startswith(self.markers.user_label):
            return ROLE_USER
        if clean.startswith(self.markers.assistant_label):
            if clean[len(self.markers.assistant_label):].strip():
                return ROLE_ASSISTANT
            return ROLE_ASSISTANT_PLACEHOLDER
        return ROLE_CONTEXT

    def is_user(self, raw: str) -> bool:
        return self.classify(raw) == ROLE_USER

    def strip_marker(self, raw: str) -> str:
        """Markup removed, leading role label removed, whitespace trimmed."""
        clean = strip_markup(raw).strip()
        for label in (self.markers.user_label, self.markers.assistant_label):
            if clean.startswith(label):
                return clean[len(label):].strip()
        return clean

    def ensure_user_marker(self, raw: str) -> Tuple[str, bool]:
        """
        Return (text, changed). Content already starting with the highlighted
        User marker is returned as is; otherwise the marker is prepended, with
        any bare or differently highlighted "User:" label folded into it.
        """
        if raw.startswith(self.markers.user_mark):
            return raw, False
        body = self.strip_marker(raw) if self.is_user(raw) else raw
        return f"{self.markers.user_prefix}{body}", True

    def assistant_text(self, response: str) -> str:
        return f"{self.markers.assistant_prefix}{response}"
