"""Lexical retrieval pipeline: BM25 + topic keyword boost + trust reranking.

Combines the passage store's BM25 ranking with the
KnowledgeBase alias matching to produce a unified ranked result set.

Scoring formula:
    final_score = (lexical_sim * LEXICAL_WEIGHT
                   + keyword_score * KEYWORD_WEIGHT) * trust_weight

Where:
    lexical_sim   = BM25 score relative to the best hit for the query (0.0 – 1.0)
    keyword_score = from KnowledgeBase.match_topics_scored, normalized (0.0 – 1.0)
    trust_weight  = per-tier multiplier set at insert time (1.0 for curated topics)
"""

from __future__ import annotations

import logging
from typing import Optional

logger = logging.getLogger(__name__)

# --- Scoring weights ---
LEXICAL_WEIGHT = 0.70
KEYWORD_WEIGHT = 0.30

# Defaults
DEFAULT_CANDIDATE_K = 30   # Fetch more from the store, then rerank
DEFAULT_FINAL_K = 5        # Return top N after reranking
MIN_SIMILARITY = 0.05      # Floor for lexical results


def retrieve(
    query: str,
    top_k: int = DEFAULT_FINAL_K,
    source_tier: Optional[str] = None,
    include_keyword_boost: bool = True,
    candidate_k: int = DEFAULT_CANDIDATE_K,
    store=None,
) -> list[dict]:
    """Run lexical retrieval: BM25 search → keyword boost → rerank.

    Args:
        query: Natural language question.
        top_k: Number of final results to return.
        source_tier: Optional tier filter (e.g. 'official').
        include_keyword_boost: Whether to blend topic alias scores.
        candidate_k: How many candidates to fetch from the store.
        store: Optional InMemoryStore (defaults to the shared store).

    Returns:
        List of result dicts sorted by final_score descending.
        Each dict has: content, source_file, source_section, source_tier,
        trust_weight, similarity, metadata, final_score, scoring_breakdown.
    """
    if store is None:
        from f1chat.rag.store import get_store
        store = get_store()

    candidates = store.search(query, top_k=candidate_k, source_tier=source_tier)

    if not candidates:
        logger.info("No lexical results for query, falling back to keyword-only")
        return _fallback_keyword_only(query, top_k)

    keyword_scores = {}
    if include_keyword_boost:
        keyword_scores = _get_keyword_scores(query)

    scored = []
    for c in candidates:
        if c["similarity"] < MIN_SIMILARITY:
            continue

        lexical_sim = c["similarity"]
        kw_score = keyword_scores.get(c.get("metadata", {}).get("topic_id"), 0.0)
        trust = c.get("trust_weight", 1.0) or 1.0

        raw_score = lexical_sim * LEXICAL_WEIGHT + kw_score * KEYWORD_WEIGHT
        final_score = raw_score * trust

        c["final_score"] = round(final_score, 4)
        c["scoring_breakdown"] = {
            "lexical_sim": round(lexical_sim, 4),
            "keyword_score": round(kw_score, 4),
            "trust_weight": round(trust, 2),
            "raw_score": round(raw_score, 4),
        }
        scored.append(c)

    # Sort by final score descending; ties keep store order
    scored.sort(key=lambda x: x["final_score"], reverse=True)

    deduped = _deduplicate(scored)

    return deduped[:top_k]


def retrieve_with_context(
    query: str,
    top_k: int = DEFAULT_FINAL_K,
    source_tier: Optional[str] = None,
    store=None,
) -> dict:
    """Retrieve results plus an assembled context string.

    Returns:
        {
            "results": [...],
            "context": "assembled context string",
            "query": original query,
            "result_count": int,
        }
    """
    results = retrieve(query, top_k=top_k, source_tier=source_tier, store=store)

    context_parts = []
    for i, r in enumerate(results, 1):
        topic_id = r.get("metadata", {}).get("topic_id", "unknown")
        section = r.get("source_section", "")
        score = r.get("final_score", 0)

        header = f"[Source {i}: {topic_id}"
        if section:
            header += f" > {section}"
        header += f" | score={score:.3f}]"

        context_parts.append(f"{header}\n{r['content']}")

    return {
        "results": results,
        "context": "\n\n---\n\n".join(context_parts),
        "query": query,
        "result_count": len(results),
    }


# --- Internal helpers ---

def _get_keyword_scores(query: str) -> dict[str, float]:
    """Get topic alias scores from the KnowledgeBase, normalized to 0-1."""
    from f1chat.tools.knowledge_base import get_knowledge_base

    matches = get_knowledge_base().match_topics_scored(query)
    if not matches:
        return {}
    max_score = max(score for _, score in matches)
    if max_score <= 0:
        return {}
    return {tid: min(score / max_score, 1.0) for tid, score in matches}


def _deduplicate(results: list[dict], similarity_threshold: float = 0.85) -> list[dict]:
    """Remove near-duplicate chunks based on content overlap.

    Uses a simple Jaccard-like word set comparison.
    """
    if not results:
        return results

    deduped = [results[0]]
    seen_word_sets = [_word_set(results[0].get("content", ""))]

    for r in results[1:]:
        r_words = _word_set(r.get("content", ""))
        is_dup = False

        for seen in seen_word_sets:
            if not seen or not r_words:
                continue
            intersection = len(seen & r_words)
            union = len(seen | r_words)
            if union > 0 and intersection / union > similarity_threshold:
                is_dup = True
                break

        if not is_dup:
            deduped.append(r)
            seen_word_sets.append(r_words)

    return deduped


def _word_set(text: str) -> set:
    """Extract a set of lowercase words from text for dedup comparison."""
    return set(text.lower().split()) if text else set()


def _fallback_keyword_only(query: str, top_k: int) -> list[dict]:
    """Fallback when no passage shares a term with the query.

    Returns topic-level results from the KnowledgeBase alias index.
    """
    from f1chat.tools.knowledge_base import get_knowledge_base

    kb = get_knowledge_base()
    results = []
    for topic_id, score in kb.match_topics_scored(query)[:top_k]:
        topic = kb.get_topic(topic_id)
        results.append({
            "content": topic.body,
            "source_file": "f1-topics.json",
            "source_section": topic.title,
            "source_tier": "official",
            "trust_weight": 1.0,
            "similarity": 0.0,
            "metadata": {"topic_id": topic_id, "title": topic.title, "type": "keyword_fallback"},
            "final_score": round(score, 4),
            "scoring_breakdown": {
                "lexical_sim": 0.0,
                "keyword_score": round(score, 4),
                "trust_weight": 1.0,
                "raw_score": round(score, 4),
            },
        })
    return results
