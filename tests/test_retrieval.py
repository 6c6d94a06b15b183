# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import math

import pytest

from canvaschat.chunking import Chunk
from canvaschat.retrieval import TfIdfRetriever, tokenize


@pytest.fixture
def retriever():
    return TfIdfRetriever()

CHUNKS = ["the cat sat", "dogs bark loudly", "cat cat cat"]


def test_tokenize_lowercases_and_drops_stopwords():
    assert tokenize("The Cat, and THE dog!") == ["cat", "dog"]

def test_scores_follow_tf_idf(retriever):
    scored = retriever.score("cat", CHUNKS)
    # N=3, df(cat)=2 -> idf = 1 + ln(3/3) = 1
    assert [s.score for s in scored] == pytest.approx([1.0, 0.0, 3.0])
    assert [s.chunk.text for s in scored] == CHUNKS

def test_rare_terms_weigh_more(retriever):
    scored = retriever.score("dogs cat", CHUNKS)
    idf_dogs = 1 + math.log(3 / 2)
    assert scored[1].score == pytest.approx(idf_dogs)
    assert scored[1].score > scored[0].score

def test_repeated_query_terms_count_twice(retriever):
    once = retriever.score("bark", CHUNKS)[1].score
    twice = retriever.score("bark bark", CHUNKS)[1].score
    assert twice == pytest.approx(2 * once)

def test_top_k_descending(retriever):
    top = retriever.top_k("cat", CHUNKS, 2)
    assert [c.text for c in top] == ["cat cat cat", "the cat sat"]

def test_top_k_ties_keep_original_order(retriever):
    chunks = ["alpha", "beta", "gamma", "delta"]
    top = retriever.top_k("zebra", chunks, 3)
    assert [c.text for c in top] == ["alpha", "beta", "gamma"]

def test_top_k_size_is_capped(retriever):
    assert len(retriever.top_k("cat", CHUNKS, 50)) == 3
    assert len(retriever.top_k("cat", CHUNKS, 0)) == 1
    assert len(retriever.top_k("cat", CHUNKS * 10, 50)) == 20

def test_top_k_empty_pool(retriever):
    assert retriever.top_k("cat", [], 5) == []

def test_chunks_keep_provenance(retriever):
    chunks = [Chunk("solar panels", "n1"), Chunk("wind turbines", "n2")]
    top = retriever.top_k("wind power", chunks, 1)
    assert top == [Chunk("wind turbines", "n2")]

def test_query_with_only_stopwords(retriever):
    scored = retriever.score("the and of", CHUNKS)
    assert all(s.score == 0.0 for s in scored)
