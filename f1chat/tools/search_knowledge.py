"""Tool: search_f1_knowledge — ranked passage search over the curated topics."""

from f1chat.formatters import format_search_results
from f1chat.rag.retrieval import retrieve

MAX_TOP_K = 20


async def search_f1_knowledge(query: str, top_k: int = 5) -> str:
    """Search the F1 knowledge passages by keyword relevance.

    Unlike ask_f1, which returns one whole topic, this ranks individual
    passages across all topics.

    Args:
        query: Search text (e.g., 'points for fastest lap')
        top_k: Number of passages to return (default 5, max 20)

    Returns:
        Ranked passages with topic, section and score.
    """
    if not query or not query.strip():
        return "Please provide a search query."
    top_k = max(1, min(int(top_k), MAX_TOP_K))
    return format_search_results(query, retrieve(query, top_k=top_k))
