"""Response formatters for tool and API outputs.

Format routed answers, topic listings and retrieval hits into
readable markdown.
"""

from __future__ import annotations

# Decorative header the chat transport puts in front of every answer
ANSWER_PREFIX = "🏎️ **Formula 1 Information:**\n\n"

SNIPPET_CHARS = 300


def format_answer(answer_text: str) -> str:
    """Prefix a routed answer with the chat header."""
    return f"{ANSWER_PREFIX}{answer_text}"


def format_topic_list(topics) -> str:
    """Format the available topics as a markdown list."""
    if not topics:
        return "No topics available."
    lines = [f"# F1 Knowledge Topics ({len(topics)})\n"]
    for t in topics:
        lines.append(f"- **{t.id}** — {t.title}")
    return "\n".join(lines)


def format_search_results(query: str, results: list[dict]) -> str:
    """Format retrieval hits with topic, section and score."""
    if not results:
        return f"No passages found for: {query}"

    lines = [f"Found {len(results)} passages for: {query}\n"]
    for i, r in enumerate(results, 1):
        meta = r.get("metadata", {})
        content = r.get("content", "")
        snippet = content[:SNIPPET_CHARS]
        if len(content) > SNIPPET_CHARS:
            snippet += "..."
        lines.append(
            f"{i}. **{meta.get('title') or meta.get('topic_id', 'unknown')}**"
            f" ({r.get('source_section') or 'body'}) — score {r.get('final_score', 0):.3f}\n"
            f"   {snippet.replace(chr(10), chr(10) + '   ')}\n"
        )
    return "\n".join(lines)
