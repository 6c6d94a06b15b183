# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import json
import logging
import os
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, Optional, Union

from .errors import GraphValidationError
from .kinds import (
    NODE_TEXT, NODE_DOCUMENT, NODE_IMAGE, NODE_KINDS,
    IMAGE_EXTENSIONS, SIDE_TOP, SIDE_BOTTOM,
)

logger = logging.getLogger(__name__)


@dataclass
class Node:
    id: str
    kind: str = NODE_TEXT
    # text for text nodes, a vault-relative file path for documents/images
    content: str = ""
    x: float = 0
    y: float = 0
    width: float = 250
    height: float = 60
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.kind not in NODE_KINDS:
            raise ValueError(f"Unknown node kind '{self.kind}', must be one of {NODE_KINDS}")


@dataclass
class Edge:
    id: str
    from_node: str
    to_node: str
    from_side: str = SIDE_BOTTOM
    to_side: str = SIDE_TOP
    extra: Dict[str, Any] = field(default_factory=dict)


class Graph:
    """
    Owned snapshot of a canvas: nodes and directed edges keyed by string id.

    All traversal runs on this snapshot, never on live host objects.
    Every edge must reference nodes already present.
    """

    def __init__(self, nodes: Iterable[Node] = (), edges: Iterable[Edge] = ()):
        self.nodes: Dict[str, Node] = {}
        self.edges: Dict[str, Edge] = {}
        for node in nodes:
            self.add_node(node)
        for edge in edges:
            self.add_edge(edge)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def add_node(self, node: Node) -> Node:
        if node.id in self.nodes:
            raise GraphValidationError(f"Duplicate node id '{node.id}'")
        self.nodes[node.id] = node
        return node

    def add_edge(self, edge: Edge) -> Edge:
        missing = [n for n in (edge.from_node, edge.to_node) if n not in self.nodes]
        if missing:
            raise GraphValidationError(f"Edge '{edge.id}' references unknown nodes: {missing}")
        if edge.id in self.edges:
            raise GraphValidationError(f"Duplicate edge id '{edge.id}'")
        self.edges[edge.id] = edge
        return edge

    def node(self, node_id: str) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise GraphValidationError(f"Node '{node_id}' not found in graph") from None

    def set_content(self, node_id: str, text: str) -> None:
        node = self.node(node_id)
        if node.kind != NODE_TEXT:
            raise GraphValidationError(f"Node '{node_id}' is a {node.kind} node; only text nodes can be rewritten")
        node.content = text
        logger.debug(f"Rewrote content of node '{node_id}' ({len(text)} chars)")

    def connect(self, from_id: str, to_id: str, from_side: str = SIDE_BOTTOM, to_side: str = SIDE_TOP) -> Edge:
        """Create an edge with a fresh id between two existing nodes."""
        return self.add_edge(Edge(id=new_id("edge"), from_node=from_id, to_node=to_id,
                                  from_side=from_side, to_side=to_side))


def new_id(prefix: str = "") -> str:
    return f"{prefix}{uuid.uuid4().hex[:16]}"


class GraphStore:
    """Host graph store: hands out a snapshot and persists it back."""

    def load(self) -> Graph:
        raise NotImplementedError

    def save(self, graph: Graph) -> None:
        raise NotImplementedError

    @property
    def base_dir(self) -> Optional[Path]:
        """Directory file nodes are resolved against, if any."""
        return None


class InMemoryGraphStore(GraphStore):
    def __init__(self, graph: Optional[Graph] = None):
        self.graph = graph if graph is not None else Graph()
        self.save_count = 0

    def load(self) -> Graph:
        return self.graph

    def save(self, graph: Graph) -> None:
        self.graph = graph
        self.save_count += 1


def _kind_for_file(path: str) -> str:
    ext = os.path.splitext(path)[1].lower()
    if ext in IMAGE_EXTENSIONS:
        return NODE_IMAGE
    return NODE_DOCUMENT


class CanvasFileStore(GraphStore):
    """
    Reads and writes JSON Canvas files (.canvas):

        {"nodes": [{"id", "type": "text"|"file"|..., "text"|"file", "x", "y", "width", "height"}],
         "edges": [{"id", "fromNode", "fromSide", "toNode", "toSide"}]}

    Unknown node fields and node types are carried through untouched.
    """

    def __init__(self, path: Union[str, Path], vault_dir: Optional[Union[str, Path]] = None):
        self.path = Path(path)
        self._vault_dir = Path(vault_dir) if vault_dir is not None else self.path.parent

    @property
    def base_dir(self) -> Optional[Path]:
        return self._vault_dir

    def load(self) -> Graph:
        with open(self.path, encoding="utf-8") as f:
            data = json.load(f)

        graph = Graph()
        for raw in data.get("nodes", []):
            graph.add_node(self._node_from_json(raw))

        for raw in data.get("edges", []):
            if raw.get("fromNode") not in graph or raw.get("toNode") not in graph:
                logger.warning(f"Skipping edge '{raw.get('id')}' with dangling endpoint")
                continue
            extra = {k: v for k, v in raw.items()
                     if k not in ("id", "fromNode", "fromSide", "toNode", "toSide")}
            graph.add_edge(Edge(
                id=raw["id"],
                from_node=raw["fromNode"],
                to_node=raw["toNode"],
                from_side=raw.get("fromSide", SIDE_BOTTOM),
                to_side=raw.get("toSide", SIDE_TOP),
                extra=extra,
            ))

        logger.info(f"Loaded canvas {self.path}: {len(graph.nodes)} nodes, {len(graph.edges)} edges")
        return graph

    @staticmethod
    def _node_from_json(raw: Dict[str, Any]) -> Node:
        node_type = raw.get("type", "text")
        if node_type == "file":
            kind = _kind_for_file(raw.get("file", ""))
            content = raw.get("file", "")
        else:
            kind = NODE_TEXT
            content = raw.get("text", "")
        return Node(
            id=raw["id"],
            kind=kind,
            content=content,
            x=raw.get("x", 0),
            y=raw.get("y", 0),
            width=raw.get("width", 250),
            height=raw.get("height", 60),
            extra={k: v for k, v in raw.items()
                   if k not in ("id", "text", "file", "x", "y", "width", "height")},
        )

    @staticmethod
    def _node_to_json(node: Node) -> Dict[str, Any]:
        out = {"id": node.id, "x": node.x, "y": node.y, "width": node.width, "height": node.height}
        out.update(node.extra)
        if node.kind == NODE_TEXT:
            out.setdefault("type", "text")
            if out["type"] == "text":
                out["text"] = node.content
        else:
            out["type"] = "file"
            out["file"] = node.content
        return out

    def save(self, graph: Graph) -> None:
        data = {
            "nodes": [self._node_to_json(n) for n in graph.nodes.values()],
            "edges": [
                {"id": e.id, "fromNode": e.from_node, "fromSide": e.from_side,
                 "toNode": e.to_node, "toSide": e.to_side, **e.extra}
                for e in graph.edges.values()
            ],
        }

        # Atomic write: temp file then rename
        temp_path = self.path.with_suffix(".tmp")
        with open(temp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent="\t")
            f.flush()
            os.fsync(f.fileno())
        temp_path.replace(self.path)
        logger.info(f"Saved canvas {self.path}")
