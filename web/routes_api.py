"""API routes: chat answers, passage search and topic listing.

Blueprint: api (no url_prefix)
"""

import logging

from flask import Blueprint, jsonify, request

from web.helpers import (
    RATE_LIMIT_MAX_CHAT,
    RATE_LIMIT_MAX_SEARCH,
    _is_rate_limited,
    client_ip,
)

bp = Blueprint("api", __name__)

SEARCH_DEFAULT_K = 5
SEARCH_MAX_K = 20


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------

@bp.route("/api/chat", methods=["POST"])
def api_chat():
    """Answer one chat message from the curated knowledge base.

    POST /api/chat  {"message": "Who won the 2024 championship?"}

    Returns JSON:
      {
        "message": str,          # decorated answer text
        "sources": [str],        # always ["Curated F1 Knowledge Base"]
        "foundResults": 1
      }
    or {"error": ...} with 400 (no message), 429 (rate limited), 500.
    """
    if _is_rate_limited(client_ip(), RATE_LIMIT_MAX_CHAT, scope="chat"):
        return jsonify({"error": "rate limited"}), 429

    data = request.get_json(silent=True)
    message = data.get("message") if isinstance(data, dict) else None
    if not message or not isinstance(message, str):
        return jsonify({"error": "Message is required"}), 400

    try:
        from f1chat.formatters import format_answer
        from f1chat.tools.intent_router import route
        result = route(message)
    except Exception:
        logging.exception("api_chat failed")
        return jsonify({"error": "Failed to process your request"}), 500

    return jsonify({
        "message": format_answer(result.answer_text),
        "sources": list(result.source_labels),
        "foundResults": result.found_results,
    })


# ---------------------------------------------------------------------------
# Passage search
# ---------------------------------------------------------------------------

@bp.route("/api/search")
def api_search():
    """Ranked passage search across all topics.

    GET /api/search?q=<text>&k=<1-20>

    Returns JSON:
      {
        "query": str,
        "results": [{"content", "topic_id", "source_section", "final_score"}],
        "result_count": int
      }
    """
    if _is_rate_limited(client_ip(), RATE_LIMIT_MAX_SEARCH, scope="search"):
        return jsonify({"error": "rate limited"}), 429

    q = (request.args.get("q") or "").strip()
    if not q:
        return jsonify({"error": "q required"}), 400

    try:
        k = int(request.args.get("k", SEARCH_DEFAULT_K))
    except ValueError:
        return jsonify({"error": "k must be an integer"}), 400
    k = max(1, min(k, SEARCH_MAX_K))

    try:
        from f1chat.rag.retrieval import retrieve
        results = retrieve(q, top_k=k)
    except Exception:
        logging.exception("api_search failed for %r", q)
        return jsonify({"error": "internal error"}), 500

    return jsonify({
        "query": q,
        "results": [
            {
                "content": r["content"],
                "topic_id": r.get("metadata", {}).get("topic_id"),
                "source_section": r.get("source_section"),
                "final_score": r.get("final_score", 0.0),
            }
            for r in results
        ],
        "result_count": len(results),
    })


# ---------------------------------------------------------------------------
# Topics
# ---------------------------------------------------------------------------

@bp.route("/api/topics")
def api_topics():
    """List topic ids and titles."""
    from f1chat.tools.knowledge_base import get_knowledge_base
    kb = get_knowledge_base()
    return jsonify({"topics": [{"id": t.id, "title": t.title} for t in kb.topics]})
