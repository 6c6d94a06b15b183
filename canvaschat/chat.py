# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import logging
from typing import Iterable, List, Optional

from .assembler import ConversationAssembler
from .config import ChatConfig
from .errors import GraphValidationError
from .gateway import CompletionClient, CompletionGateway
from .graph import Graph, GraphStore, Node, new_id
from .ingest import NodeReader
from .kinds import NODE_TEXT, SIDE_BOTTOM, SIDE_TOP
from .traversal import directly_connected

logger = logging.getLogger(__name__)


class CanvasChat:
    """
    Runs a chat pass over the nodes selected on a canvas.

    Every selected node is treated as a question: its conversation is
    assembled, sent to the completion server, and the reply is attached
    below it as a new Assistant node. Targets are handled one after the other
    so writes made for one are visible to the next. Nothing is rolled back
    if a later target fails.
    """

    def __init__(
        self,
        store: GraphStore,
        gateway: Optional[CompletionGateway] = None,
        config: Optional[ChatConfig] = None,
    ):
        self.store = store
        self.config = config or ChatConfig()
        self.gateway = gateway or CompletionClient.from_config(self.config)
        self.assembler = ConversationAssembler(
            self.config, self.gateway, reader=NodeReader(store.base_dir)
        )

    def handle_chat(self, selected: Iterable[str]) -> List[str]:
        """Returns the ids of the Assistant nodes created, one per target."""
        selected = list(dict.fromkeys(selected))
        if not selected:
            raise GraphValidationError("No node selected.")

        graph = self.store.load()
        for node_id in selected:
            graph.node(node_id)
        if directly_connected(graph, selected):
            raise GraphValidationError("Selected nodes are directly connected.")

        created = []
        try:
            for node_id in selected:
                others = [n for n in selected if n != node_id]
                request = self.assembler.assemble(graph, node_id, others)
                response = self.gateway.complete(request)
                created.append(self.append_response(graph, graph.node(node_id), response).id)
        finally:
            # earlier writes stay, even when a later target failed
            self.store.save(graph)
        return created

    def append_response(self, graph: Graph, node: Node, text: str) -> Node:
        """Place a new Assistant node below node and link node -> new node."""
        reply = graph.add_node(Node(
            id=new_id(),
            kind=NODE_TEXT,
            content=self.assembler.classifier.assistant_text(text),
            x=node.x,
            y=node.y + node.height + self.config.response_offset,
            width=node.width,
            height=node.height,
        ))
        graph.connect(node.id, reply.id, from_side=SIDE_BOTTOM, to_side=SIDE_TOP)
        logger.info(f"Appended response node '{reply.id}' below '{node.id}'")
        return reply
