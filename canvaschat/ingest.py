# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Optional, Union

import pypdf

from .errors import ContentReadError
from .graph import Node
from .kinds import NODE_TEXT, NODE_DOCUMENT, NODE_IMAGE

logger = logging.getLogger(__name__)


def _read_plain(path: Union[str, Path]) -> str:
    try:
        with open(path, encoding="utf-8") as f:
            return f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise ContentReadError(None, f"{path}: {e}") from e


def _read_pdf(path: Union[str, Path]) -> str:
    try:
        reader = pypdf.PdfReader(path)
        pages = [page.extract_text() for page in reader.pages]
    except (OSError, pypdf.errors.PyPdfError) as e:
        raise ContentReadError(None, f"{path}: {e}") from e
    return "\n\n".join(p for p in pages if p)


_LOADERS: Dict[str, Callable[[Union[str, Path]], str]] = {
    ".md": _read_plain,
    ".txt": _read_plain,
    ".pdf": _read_pdf,
}


def load_text_from_file(path: Union[str, Path]) -> str:
    """
    Text of a document node's file. Markdown and plain text are decoded as
    UTF-8; PDF pages are extracted with pypdf and joined by blank lines.
    Missing, undecodable or unsupported files raise ContentReadError.
    """
    ext = os.path.splitext(str(path))[1].lower()
    loader = _LOADERS.get(ext)
    if loader is None:
        raise ContentReadError(None, f"Unsupported file extension: {ext}")
    return loader(path)


class NodeReader:
    """
    Resolves a node to the text the assembler works on.

    Text nodes yield their own content, document nodes the extracted text of
    the file they point at, image nodes None (they carry no usable text).
    """

    def __init__(self, base_dir: Optional[Union[str, Path]] = None):
        self.base_dir = Path(base_dir) if base_dir is not None else None

    def __call__(self, node: Node) -> Optional[str]:
        if node.kind == NODE_TEXT:
            return node.content

        if node.kind == NODE_IMAGE:
            logger.debug(f"Node '{node.id}' is an image, no text content")
            return None

        if node.kind == NODE_DOCUMENT:
            path = Path(node.content)
            if self.base_dir is not None and not path.is_absolute():
                path = self.base_dir / path
            try:
                return load_text_from_file(path)
            except ContentReadError as e:
                # re-raise with the node id attached
                raise ContentReadError(node.id, e.reason) from e

        raise ContentReadError(node.id, f"unknown node kind '{node.kind}'")
