# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import random

import pytest

from canvaschat.assembler import CONTEXT_HEADER, ConversationAssembler, build_prompt
from canvaschat.chunking import Chunk
from canvaschat.config import ChatConfig
from canvaschat.errors import (
    AmbiguousAncestorError, ContentReadError, CycleDetectedError,
    GraphValidationError, MissingAncestorError, UpstreamError,
)
from canvaschat.graph import Node
from canvaschat.ingest import NodeReader
from canvaschat.kinds import NODE_DOCUMENT, NODE_IMAGE
from canvaschat.messages import is_alternating
from conftest import FakeGateway, make_graph


@pytest.fixture
def assembler(config, gateway):
    return ConversationAssembler(config, gateway)

def roles(messages):
    return [m.role for m in messages]


# --- assemble ---

def test_lone_question(assembler, markers, gateway):
    graph = make_graph({"q": "What is a canvas?"})
    messages = assembler.assemble(graph, "q")

    assert roles(messages) == ["system", "user"]
    assert messages[0].content == "You are a helpful assistant."
    assert messages[1].content == "What is a canvas?"
    # marker written back onto the target
    assert graph.node("q").content == f"{markers.user_prefix}What is a canvas?"
    assert gateway.calls == []

def test_marker_not_written_twice(assembler, markers):
    graph = make_graph({"q": f"{markers.user_prefix}Hello"})
    assembler.assemble(graph, "q")
    assert graph.node("q").content == f"{markers.user_prefix}Hello"

def test_history_in_chronological_order(assembler):
    graph = make_graph(
        {"u1": "User: hi", "a1": "Assistant: hello, how can I help?", "q": "Tell me a joke"},
        [("u1", "a1"), ("a1", "q")],
    )
    messages = assembler.assemble(graph, "q")

    assert roles(messages) == ["system", "user", "assistant", "user"]
    assert messages[1].content == "hi"
    assert messages[2].content == "hello, how can I help?"
    assert messages[3].content == "Tell me a joke"

def test_context_nodes_are_retrieved(assembler):
    graph = make_graph(
        {"notes": "Paris is the capital of France.", "q": "What is the capital of France?"},
        [("notes", "q")],
    )
    messages = assembler.assemble(graph, "q")

    assert roles(messages) == ["system", "user"]
    prompt = messages[1].content
    assert prompt.startswith(CONTEXT_HEADER)
    assert "Context 1:\nParis is the capital of France.\n\n" in prompt
    assert prompt.endswith("User Question:\nWhat is the capital of France?\n")

def test_context_limited_to_k(gateway):
    assembler = ConversationAssembler(ChatConfig(k=2), gateway)
    graph = make_graph(
        {"c1": "apples", "c2": "apples and pears", "c3": "bananas", "q": "apples?"},
        [("c1", "q"), ("c2", "q"), ("c3", "q")],
    )
    prompt = assembler.assemble(graph, "q")[-1].content
    assert "Context 2:" in prompt
    assert "Context 3:" not in prompt
    assert "bananas" not in prompt

def test_long_context_is_chunked(gateway):
    assembler = ConversationAssembler(ChatConfig(k=20, max_chunk_size=10), gateway)
    graph = make_graph({"doc": "a" * 25, "q": "a?"}, [("doc", "q")])
    prompt = assembler.assemble(graph, "q")[-1].content
    assert "Context 3:\naaaaa\n" in prompt
    assert "Context 4:" not in prompt

def test_non_alternating_history(assembler):
    graph = make_graph(
        {"u1": "User: one", "u2": "User: two", "q": "three"},
        [("u1", "u2"), ("u2", "q")],
    )
    with pytest.raises(GraphValidationError, match="alternating"):
        assembler.assemble(graph, "q")

def test_history_must_start_with_user(assembler):
    graph = make_graph({"a": "Assistant: I spoke first", "q": "hm"}, [("a", "q")])
    with pytest.raises(GraphValidationError, match="alternating"):
        assembler.assemble(graph, "q")

def test_trailing_user_breaks_alternation(assembler):
    # history ending on a user turn collides with the synthetic question
    graph = make_graph(
        {"u1": "User: a", "a1": "Assistant: b", "u2": "User: c", "q": "d"},
        [("u1", "a1"), ("a1", "u2"), ("u2", "q")],
    )
    with pytest.raises(GraphValidationError):
        assembler.assemble(graph, "q")

def test_directly_connected_batch_rejected(assembler, gateway):
    graph = make_graph({"a": "first", "b": "second"}, [("a", "b")])
    with pytest.raises(GraphValidationError, match="directly connected"):
        assembler.assemble(graph, "b", others=["a"])
    assert gateway.calls == []
    # rejected before any rewrite
    assert graph.node("b").content == "second"

def test_other_selected_nodes_are_not_walked(assembler):
    # s -> notes -> q, with s selected in the same batch as q
    graph = make_graph(
        {"s": "User: another question", "notes": "cats purr", "q": "Do cats purr?"},
        [("s", "notes"), ("notes", "q")],
    )
    messages = assembler.assemble(graph, "q", others=["s"])
    assert roles(messages) == ["system", "user"]
    assert "another question" not in messages[-1].content

    # walked into, s would become a user turn right before the question
    with pytest.raises(GraphValidationError):
        assembler.assemble(graph, "q")

def test_image_ancestors_are_skipped(assembler):
    graph = make_graph(
        {"img": Node(id="img", kind=NODE_IMAGE, content="photo.png"), "q": "Describe"},
        [("img", "q")],
    )
    messages = assembler.assemble(graph, "q")
    assert messages[-1].content == "Describe"

def test_image_target_cannot_be_read(assembler):
    graph = make_graph({"img": Node(id="img", kind=NODE_IMAGE, content="photo.png")})
    with pytest.raises(ContentReadError):
        assembler.assemble(graph, "img")

def test_document_target_keeps_its_path(config, gateway, tmp_path):
    (tmp_path / "q.md").write_text("What is a canvas?", encoding="utf-8")
    assembler = ConversationAssembler(config, gateway, reader=NodeReader(tmp_path))
    graph = make_graph({"d": Node(id="d", kind=NODE_DOCUMENT, content="q.md")})

    messages = assembler.assemble(graph, "d")
    assert messages[-1].content == "What is a canvas?"
    assert graph.node("d").content == "q.md"

@pytest.mark.parametrize("seed", range(8))
def test_random_chains_alternate(assembler, seed):
    rng = random.Random(seed)
    length = rng.randint(0, 6) * 2
    nodes, edges, previous = {}, [], None
    for i in range(length):
        node_id = f"n{i}"
        nodes[node_id] = f"User: turn {i}" if i % 2 == 0 else f"Assistant: turn {i}"
        if previous:
            edges.append((previous, node_id))
        previous = node_id
    # sprinkle context nodes feeding into the chain
    for j in range(rng.randint(0, 3)):
        nodes[f"c{j}"] = f"background fact {j}"
        edges.append((f"c{j}", previous or "q"))
    nodes["q"] = "final question"
    if previous:
        edges.append((previous, "q"))

    graph = make_graph(nodes, edges)
    messages = assembler.assemble(graph, "q")
    assert roles(messages)[0] == "system"
    assert roles(messages)[1:] == ["user", "assistant"] * (length // 2) + ["user"]
    assert is_alternating(messages)


# --- placeholders ---

def test_resolve_single_user_ancestor(assembler, gateway, markers):
    graph = make_graph({"a": f"{markers.user_prefix}Hi", "b": "Assistant:"}, [("a", "b")])
    assembler.resolver.resolve(graph, "b")

    assert len(gateway.calls) == 1
    request = gateway.calls[0]
    assert roles(request) == ["system", "user"]
    assert request[1].content == "Hi"
    assert graph.node("b").content == f"{markers.assistant_prefix}reply 1"

def test_resolve_without_user_ancestor(assembler, gateway):
    graph = make_graph({"c": "just notes", "b": "Assistant:"}, [("c", "b")])
    with pytest.raises(MissingAncestorError):
        assembler.resolver.resolve(graph, "b")
    assert gateway.calls == []
    assert graph.node("b").content == "Assistant:"

def test_resolve_with_no_edges(assembler):
    graph = make_graph({"b": "Assistant:"})
    with pytest.raises(MissingAncestorError):
        assembler.resolver.resolve(graph, "b")

def test_resolve_with_two_user_ancestors(assembler, gateway):
    graph = make_graph(
        {"u1": "User: one", "u2": "User: two", "b": "Assistant:"},
        [("u1", "b"), ("u2", "b")],
    )
    with pytest.raises(AmbiguousAncestorError) as exc:
        assembler.resolver.resolve(graph, "b")
    assert exc.value.ancestor_ids == ["u1", "u2"]
    assert gateway.calls == []

def test_duplicate_edges_count_once(assembler, gateway):
    graph = make_graph({"u": "User: hi", "b": "Assistant:"}, [("u", "b"), ("u", "b")])
    assembler.resolver.resolve(graph, "b")
    assert len(gateway.calls) == 1

def test_placeholder_ancestor_resolved_during_assembly(assembler, gateway, markers):
    graph = make_graph(
        {"u1": "User: Hi", "p": "Assistant:", "q": "And then?"},
        [("u1", "p"), ("p", "q")],
    )
    messages = assembler.assemble(graph, "q")

    assert len(gateway.calls) == 1
    assert roles(gateway.calls[0]) == ["system", "user"]
    assert graph.node("p").content == f"{markers.assistant_prefix}reply 1"
    assert graph.node("u1").content == f"{markers.user_prefix}Hi"
    assert roles(messages) == ["system", "user", "assistant", "user"]
    assert messages[2].content == "reply 1"

def test_nested_placeholders(assembler, gateway):
    # u1 -> p1 -> u2 -> p2 -> q
    graph = make_graph(
        {"u1": "User: one", "p1": "Assistant:", "u2": "User: two", "p2": "Assistant:", "q": "three"},
        [("u1", "p1"), ("p1", "u2"), ("u2", "p2"), ("p2", "q")],
    )
    messages = assembler.assemble(graph, "q")

    assert len(gateway.calls) == 2
    # p1 answered before p2 was asked, so p2's request carries it
    assert roles(gateway.calls[1]) == ["system", "user", "assistant", "user"]
    assert gateway.calls[1][2].content == "reply 1"
    assert [m.content for m in messages[1:4]] == ["one", "reply 1", "two"]
    assert messages[4].content == "reply 2"

def test_placeholder_cycle_detected(assembler, gateway):
    # p1 <- u1 <- p2 <- u2 <- p1, and p1 -> q
    graph = make_graph(
        {"u1": "User: one", "p1": "Assistant:", "u2": "User: two", "p2": "Assistant:", "q": "go"},
        [("u1", "p1"), ("p2", "u1"), ("u2", "p2"), ("p1", "u2"), ("p1", "q")],
    )
    with pytest.raises(CycleDetectedError):
        assembler.assemble(graph, "q")
    assert gateway.calls == []

def test_history_loop_through_target(assembler, gateway, markers):
    # q -> u -> p -> q: answering p must not walk back into q
    graph = make_graph(
        {"q": "next?", "u": "User: hi", "p": "Assistant:"},
        [("q", "u"), ("u", "p"), ("p", "q")],
    )
    messages = assembler.assemble(graph, "q")

    assert len(gateway.calls) == 1
    assert roles(gateway.calls[0]) == ["system", "user"]
    assert gateway.calls[0][1].content == "hi"
    assert roles(messages) == ["system", "user", "assistant", "user"]
    assert graph.node("p").content == f"{markers.assistant_prefix}reply 1"

def test_document_placeholder_is_not_overwritten(config, gateway, tmp_path):
    (tmp_path / "reply.md").write_text("Assistant:", encoding="utf-8")
    assembler = ConversationAssembler(config, gateway, reader=NodeReader(tmp_path))
    graph = make_graph(
        {"u": "User: hi", "p": Node(id="p", kind=NODE_DOCUMENT, content="reply.md"), "q": "next"},
        [("u", "p"), ("p", "q")],
    )
    with pytest.raises(ContentReadError) as exc:
        assembler.assemble(graph, "q")
    assert exc.value.node_id == "p"
    assert gateway.calls == []
    assert graph.node("p").content == "reply.md"

def test_gateway_failure_propagates(config, markers):
    class Failing(FakeGateway):
        def complete(self, messages):
            raise UpstreamError("server down")

    assembler = ConversationAssembler(config, Failing())
    graph = make_graph({"u": "User: hi", "p": "Assistant:", "q": "next"}, [("u", "p"), ("p", "q")])
    with pytest.raises(UpstreamError, match="server down"):
        assembler.assemble(graph, "q")
    # marker writes made before the failure are kept
    assert graph.node("q").content.startswith(markers.user_prefix)
    assert graph.node("p").content == "Assistant:"


def test_build_prompt_without_context():
    assert build_prompt("Why?", []) == "Why?"

def test_build_prompt_with_context():
    prompt = build_prompt("Why?", [Chunk("first"), Chunk("second")])
    assert prompt == (
        "Here is some context that may be useful:\n"
        "Context 1:\nfirst\n\n"
        "Context 2:\nsecond\n\n"
        "User Question:\nWhy?\n"
    )
