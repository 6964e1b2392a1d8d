"""In-memory passage store for knowledge chunks.

Handles insert, tier clearing and BM25 search. The default store is built
once per process from the knowledge base and is read-only afterwards.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Optional

from rank_bm25 import BM25Okapi

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 10

_TOKEN_RE = re.compile(r"[a-z0-9]+")

# Words that carry no topical signal in F1 questions
STOPWORDS = frozenset({
    "a", "an", "and", "are", "as", "at", "be", "by", "did", "do", "does",
    "for", "from", "how", "i", "in", "is", "it", "me", "of", "on", "or",
    "tell", "that", "the", "their", "there", "this", "to", "was", "what",
    "when", "where", "which", "who", "why", "with", "about", "many", "much",
})


def tokenize(text: str) -> list[str]:
    """Lower-case alphanumeric tokens with stopwords removed."""
    return [t for t in _TOKEN_RE.findall((text or "").lower()) if t not in STOPWORDS]


class InMemoryStore:
    """Passage store ranked with BM25 (Okapi)."""

    def __init__(self):
        self._chunks: list[dict] = []
        self._corpus: list[list[str]] = []
        self._bm25: Optional[BM25Okapi] = None

    def _rebuild_index(self) -> None:
        # BM25Okapi divides by corpus size and average length
        if any(self._corpus):
            self._bm25 = BM25Okapi(self._corpus)
        else:
            self._bm25 = None

    def insert_chunks(self, chunks: list[dict],
                      source_tier: str = "official", trust_weight: float = 1.0) -> int:
        """Add chunks to the store.

        Args:
            chunks: List of chunk dicts from chunker (content, source_file,
                source_section, metadata).
            source_tier: Tier label used for filtering and clear_tier.
            trust_weight: Multiplier applied to the final retrieval score.

        Returns:
            Number of chunks inserted.
        """
        inserted = 0
        for chunk in chunks:
            content = (chunk.get("content") or "").replace("\x00", "")
            if not content.strip():
                continue
            self._chunks.append({
                "content": content,
                "source_file": chunk.get("source_file"),
                "source_section": chunk.get("source_section"),
                "source_tier": source_tier,
                "trust_weight": trust_weight,
                "chunk_index": len(self._chunks),
                "metadata": dict(chunk.get("metadata", {})),
            })
            self._corpus.append(tokenize(content))
            inserted += 1
        if inserted:
            self._rebuild_index()
        logger.info("Inserted %d chunks (tier=%s)", inserted, source_tier)
        return inserted

    def clear_tier(self, source_tier: str = "official") -> int:
        """Delete all chunks for a given tier. Returns the number removed."""
        keep = [i for i, c in enumerate(self._chunks) if c["source_tier"] != source_tier]
        removed = len(self._chunks) - len(keep)
        self._chunks = [self._chunks[i] for i in keep]
        self._corpus = [self._corpus[i] for i in keep]
        self._rebuild_index()
        logger.info("Cleared %d chunks (tier=%s)", removed, source_tier)
        return removed

    def count(self, source_tier: Optional[str] = None) -> int:
        if source_tier is None:
            return len(self._chunks)
        return sum(1 for c in self._chunks if c["source_tier"] == source_tier)

    def idf(self, term: str) -> float:
        """BM25 inverse document frequency of a term (0.0 if unseen)."""
        if self._bm25 is None:
            return 0.0
        return float(self._bm25.idf.get(term, 0.0))

    def search(self, query: str, top_k: int = DEFAULT_TOP_K,
               source_tier: Optional[str] = None) -> list[dict]:
        """Rank chunks by BM25 score against the query.

        Returns:
            Copies of matching chunk dicts, highest first, each with a
            'similarity' key: the BM25 score divided by the best score among
            the returned hits (so the top hit is 1.0). Chunks scoring zero or
            below are omitted.
        """
        query_terms = list(dict.fromkeys(tokenize(query)))
        if not query_terms or top_k <= 0 or self._bm25 is None:
            return []

        scores = self._bm25.get_scores(query_terms)
        hits = []
        for chunk, score in zip(self._chunks, scores):
            if source_tier and chunk["source_tier"] != source_tier:
                continue
            if score <= 0:
                continue
            hits.append((float(score), chunk))
        if not hits:
            return []

        hits.sort(key=lambda h: h[0], reverse=True)
        best = hits[0][0]
        results = []
        for score, chunk in hits[:top_k]:
            hit = dict(chunk)
            hit["metadata"] = dict(chunk["metadata"])
            hit["similarity"] = round(score / best, 4)
            results.append(hit)
        return results


@lru_cache(maxsize=1)
def get_store() -> InMemoryStore:
    """Get the shared store, populated from the knowledge base on first use."""
    from f1chat.rag.chunker import chunk_knowledge_base
    from f1chat.tools.knowledge_base import get_knowledge_base

    store = InMemoryStore()
    store.insert_chunks(chunk_knowledge_base(get_knowledge_base()))
    return store
