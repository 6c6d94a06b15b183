# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import logging
from dataclasses import dataclass, field
from typing import AbstractSet, Callable, FrozenSet, Iterable, List, Optional, Set

from .chunking import Chunk, chunk_node
from .classifier import ContentClassifier
from .config import ChatConfig
from .errors import (
    AmbiguousAncestorError, ContentReadError, CycleDetectedError,
    GraphValidationError, MissingAncestorError,
)
from .gateway import CompletionGateway
from .graph import Graph, Node
from .ingest import NodeReader
from .kinds import (
    NODE_TEXT, ROLE_USER, ROLE_ASSISTANT, ROLE_ASSISTANT_PLACEHOLDER,
    MESSAGE_SYSTEM, MESSAGE_USER, MESSAGE_ASSISTANT,
)
from .messages import ConversationRequest, Message, is_alternating
from .retrieval import TfIdfRetriever
from .traversal import directly_connected, inbound_bfs, inbound_edges

logger = logging.getLogger(__name__)

ContentReader = Callable[[Node], Optional[str]]

CONTEXT_HEADER = "Here is some context that may be useful:\n"
NOT_ALTERNATING = "Conversation history is not in alternating order of user and assistant messages."


@dataclass
class _Pass:
    """State shared by one top-level assemble call and everything it recurses into."""
    batch: FrozenSet[str]
    resolving: Set[str] = field(default_factory=set)


def build_prompt(question: str, context: List[Chunk]) -> str:
    """The bare question, or the question labelled after a block of retrieved context."""
    if not context:
        return question
    prompt = CONTEXT_HEADER
    for i, c in enumerate(context, start=1):
        prompt += f"Context {i}:\n{c.text}\n\n"
    prompt += f"User Question:\n{question}\n"
    return prompt


class ConversationAssembler:
    """
    Builds the message list for one target node.

    Ancestors are gathered against the arrows, oldest first. User and
    Assistant nodes become chat history, everything else is chunked and
    ranked as background context for the target's question. Bare Assistant
    placeholders met on the way are generated first (see PlaceholderResolver).
    """

    def __init__(
        self,
        config: ChatConfig,
        gateway: CompletionGateway,
        reader: Optional[ContentReader] = None,
        classifier: Optional[ContentClassifier] = None,
        retriever: Optional[TfIdfRetriever] = None,
    ):
        self.config = config
        self.gateway = gateway
        self.reader = reader or NodeReader()
        self.classifier = classifier or ContentClassifier(config.markers)
        self.retriever = retriever or TfIdfRetriever()
        self.resolver = PlaceholderResolver(self)

    def assemble(self, graph: Graph, target_id: str, others: Iterable[str] = ()) -> ConversationRequest:
        """
        Assemble the request for target_id. others are the rest of the batch
        selected alongside it; they are never walked into.
        """
        batch = frozenset(others) - {target_id}
        if directly_connected(graph, batch | {target_id}):
            raise GraphValidationError("Selected nodes are directly connected.")
        # nested assemblies must not walk back into the target either
        return self._assemble(graph, target_id, batch, _Pass(batch=batch | {target_id}))

    def _assemble(self, graph: Graph, target_id: str, exclude: AbstractSet[str], state: _Pass) -> ConversationRequest:
        question = self._ensure_user_marker(graph, target_id)

        ancestors = [n for n in inbound_bfs(graph, target_id, exclude) if n != target_id]
        ancestors.reverse()
        logger.debug(f"Node '{target_id}': {len(ancestors)} ancestors (oldest first): {ancestors}")

        history: List[Message] = []
        pool: List[Chunk] = []
        for node_id in ancestors:
            content = self.reader(graph.node(node_id))
            if content is None:
                logger.debug(f"Skipping node '{node_id}' without text content")
                continue

            role = self.classifier.classify(content)
            if role == ROLE_ASSISTANT_PLACEHOLDER:
                self.resolver.resolve(graph, node_id, state.batch, _state=state)
                content = graph.node(node_id).content
                role = ROLE_ASSISTANT

            if role == ROLE_USER:
                history.append(Message(MESSAGE_USER, self.classifier.strip_marker(content)))
            elif role == ROLE_ASSISTANT:
                history.append(Message(MESSAGE_ASSISTANT, self.classifier.strip_marker(content)))
            else:
                pool.extend(chunk_node(node_id, self.classifier.strip_marker(content), self.config.max_chunk_size))

        if not is_alternating(history):
            raise GraphValidationError(NOT_ALTERNATING)

        context = self.retriever.top_k(question, pool, self.config.k) if pool else []
        prompt = build_prompt(question, context)
        logger.debug(f"Prompt generated for node '{target_id}':\n{prompt}")

        messages = [Message(MESSAGE_SYSTEM, self.config.system_prompt)] + history + [Message(MESSAGE_USER, prompt)]
        if not is_alternating(messages):
            raise GraphValidationError(NOT_ALTERNATING)
        return messages

    def _ensure_user_marker(self, graph: Graph, node_id: str) -> str:
        """Prefix the node with the User marker if needed; return its question text."""
        node = graph.node(node_id)
        content = self.reader(node)
        if content is None:
            raise ContentReadError(node_id, "make sure to select a textual node")
        # file nodes keep their path; their text is the question as is
        if node.kind != NODE_TEXT:
            return self.classifier.strip_marker(content)

        marked, changed = self.classifier.ensure_user_marker(content)
        if changed:
            graph.set_content(node_id, marked)
            logger.info(f"Added User marker to node '{node_id}'")
        return self.classifier.strip_marker(marked)


class PlaceholderResolver:
    """
    Fills an empty "Assistant:" node with a generated reply.

    The placeholder must have exactly one User node pointing at it. That node
    becomes the target of a nested assembly; the reply overwrites the
    placeholder once. Placeholders being resolved cannot be re-entered.
    """

    def __init__(self, assembler: ConversationAssembler):
        self.assembler = assembler

    def user_ancestors(self, graph: Graph, placeholder_id: str) -> List[str]:
        found = []
        for edge in inbound_edges(graph, placeholder_id):
            source = edge.from_node
            if source in found:
                continue
            content = self.assembler.reader(graph.node(source))
            if content is not None and self.assembler.classifier.is_user(content):
                found.append(source)
        return found

    def resolve(self, graph: Graph, placeholder_id: str, exclude: AbstractSet[str] = frozenset(),
                _state: Optional[_Pass] = None) -> None:
        state = _state or _Pass(batch=frozenset(exclude))
        if placeholder_id in state.resolving:
            raise CycleDetectedError(placeholder_id)
        if graph.node(placeholder_id).kind != NODE_TEXT:
            raise ContentReadError(placeholder_id, "only text nodes can hold a generated reply")

        users = self.user_ancestors(graph, placeholder_id)
        if not users:
            raise MissingAncestorError(placeholder_id)
        if len(users) > 1:
            raise AmbiguousAncestorError(placeholder_id, users)

        user_id = users[0]
        state.resolving.add(placeholder_id)
        try:
            logger.info(f"Resolving placeholder '{placeholder_id}' from User node '{user_id}'")
            request = self.assembler._assemble(graph, user_id, set(exclude) | {placeholder_id}, state)
            response = self.assembler.gateway.complete(request)
            graph.set_content(placeholder_id, self.assembler.classifier.assistant_text(response))
        finally:
            state.resolving.discard(placeholder_id)
