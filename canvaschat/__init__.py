# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
from .config import ChatConfig, MarkerTemplates
from .errors import (
    CanvasChatError, GraphValidationError, MissingAncestorError,
    AmbiguousAncestorError, CycleDetectedError, ContentReadError,
    UpstreamError, AuthError,
)
from .graph import Node, Edge, Graph, GraphStore, InMemoryGraphStore, CanvasFileStore
from .messages import Message, is_alternating
from .classifier import ContentClassifier
from .chunking import Chunk, chunk
from .retrieval import TfIdfRetriever, ScoredChunk
from .gateway import CompletionGateway, CompletionClient
from .assembler import ConversationAssembler, PlaceholderResolver
from .chat import CanvasChat

__all__ = [
    "ChatConfig", "MarkerTemplates",
    "CanvasChatError", "GraphValidationError", "MissingAncestorError",
    "AmbiguousAncestorError", "CycleDetectedError", "ContentReadError",
    "UpstreamError", "AuthError",
    "Node", "Edge", "Graph", "GraphStore", "InMemoryGraphStore", "CanvasFileStore",
    "Message", "is_alternating",
    "ContentClassifier",
    "Chunk", "chunk",
    "TfIdfRetriever", "ScoredChunk",
    "CompletionGateway", "CompletionClient",
    "ConversationAssembler", "PlaceholderResolver",
    "CanvasChat",
]
