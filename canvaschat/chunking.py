# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from dataclasses import dataclass
from typing import List, Optional

DEFAULT_MAX_CHARS = 500


@dataclass(frozen=True)
class Chunk:
    text: str
    source_node_id: Optional[str] = None


def chunk(text: str, max_chars: int = DEFAULT_MAX_CHARS) -> List[str]:
    """
    Deterministic fixed-size chunker:
    - Consecutive, non-overlapping slices of at most max_chars characters.
    - The last slice may be shorter; empty text gives no chunks.
    - "".join(chunk(t, m)) == t for any t and m > 0.
    """
    if max_chars <= 0:
        raise ValueError(f"max_chars must be positive, got {max_chars}")
    if not text:
        return []

    return [text[start:start + max_chars] for start in range(0, len(text), max_chars)]


def chunk_node(node_id: str, text: str, max_chars: int = DEFAULT_MAX_CHARS) -> List[Chunk]:
    """Same as `chunk`, tagging every piece with the node it came from."""
    return [Chunk(text=piece, source_node_id=node_id) for piece in chunk(text, max_chars)]
