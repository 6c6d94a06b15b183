# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import pytest

from canvaschat.config import ChatConfig
from canvaschat.gateway import CompletionGateway
from canvaschat.graph import Edge, Graph, Node


class FakeGateway(CompletionGateway):
    """Records every request and answers from a fixed list of replies."""

    def __init__(self, replies=None):
        self.calls = []
        self.replies = list(replies or [])

    def complete(self, messages):
        self.calls.append(list(messages))
        if self.replies:
            return self.replies.pop(0)
        return f"reply {len(self.calls)}"


def make_graph(nodes, edges=()):
    """
    nodes: {id: content} or {id: Node}
    edges: [(from, to), ...]
    """
    graph = Graph()
    for node_id, value in nodes.items():
        graph.add_node(value if isinstance(value, Node) else Node(id=node_id, content=value))
    for i, (src, dst) in enumerate(edges):
        graph.add_edge(Edge(id=f"e{i}", from_node=src, to_node=dst))
    return graph


@pytest.fixture
def config():
    return ChatConfig()


@pytest.fixture
def gateway():
    return FakeGateway()


@pytest.fixture
def markers(config):
    return config.markers
