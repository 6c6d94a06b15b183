# Copyright (c) 2025 Varshith Gudur. Licensed under AGPLv3.
import logging
import re
from collections import Counter
from dataclasses import dataclass
from typing import List, Sequence, Union

import numpy as np

from .chunking import Chunk
from .config import clamp_k

logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"[a-z0-9]+")

STOPWORDS = frozenset("""
a an and are as at be but by for from has have i if in into is it its of on or
so that the their then there these they this to was were what when which who
will with you your
""".split())


def tokenize(text: str) -> List[str]:
    return [t for t in _TOKEN.findall(text.lower()) if t not in STOPWORDS]


@dataclass(frozen=True)
class ScoredChunk:
    chunk: Chunk
    score: float


ChunkLike = Union[Chunk, str]


def _as_chunk(item: ChunkLike) -> Chunk:
    return item if isinstance(item, Chunk) else Chunk(text=item)


class TfIdfRetriever:
    """
    Ranks chunks against a query by TF-IDF.

    The chunks passed to a call are the whole corpus (one chunk = one
    document); nothing is indexed between calls. For a query term t:

        weight(t, d) = count(t, d) * (1 + ln(N / (1 + df(t))))

    and a chunk's score is the sum of weights over the query's tokens,
    repeated query tokens counting once per occurrence.
    """

    def score(self, query: str, chunks: Sequence[ChunkLike]) -> List[ScoredChunk]:
        items = [_as_chunk(c) for c in chunks]
        if not items:
            return []

        query_counts = Counter(tokenize(query))
        if not query_counts:
            return [ScoredChunk(chunk=c, score=0.0) for c in items]

        terms = list(query_counts)
        column = {t: i for i, t in enumerate(terms)}

        # term counts: rows are chunks, columns are query terms
        tf = np.zeros((len(items), len(terms)), dtype=np.float64)
        for row, item in enumerate(items):
            for token in tokenize(item.text):
                col = column.get(token)
                if col is not None:
                    tf[row, col] += 1.0

        n_docs = len(items)
        df = (tf > 0).sum(axis=0)
        idf = 1.0 + np.log(n_docs / (1.0 + df))
        weights = idf * np.array([query_counts[t] for t in terms], dtype=np.float64)
        scores = tf @ weights

        return [ScoredChunk(chunk=c, score=float(s)) for c, s in zip(items, scores)]

    def top_k(self, query: str, chunks: Sequence[ChunkLike], k: int) -> List[Chunk]:
        """
        Highest scoring chunks first; equal scores keep their original order.
        k is clamped to [1, 20] and capped at the number of chunks.
        """
        scored = self.score(query, chunks)
        if not scored:
            return []

        k = min(clamp_k(k), len(scored))
        values = np.array([s.score for s in scored], dtype=np.float64)
        order = np.argsort(-values, kind="stable")[:k]

        logger.debug(f"Retrieved {k} of {len(scored)} chunks (best score {values[order[0]]:.3f})")
        return [scored[i].chunk for i in order]
