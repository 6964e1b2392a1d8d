"""Tool: ask_f1 — answer a Formula 1 question from the curated topics."""

import logging

from f1chat.formatters import format_answer
from f1chat.tools.intent_router import route
from f1chat.tools.knowledge_base import CURATED_SOURCE_KEY, format_sources

logger = logging.getLogger(__name__)


async def ask_f1(question: str) -> str:
    """Answer a Formula 1 question (teams, drivers, champions, scoring, rules, news).

    The question is matched against keyword rules and the best topic's
    curated text is returned verbatim. Off-topic questions get the latest
    F1 news.

    Args:
        question: Free-text question (e.g., 'Who won the 2024 championship?')

    Returns:
        Markdown answer followed by a Sources section.
    """
    if not question or not question.strip():
        return "Please provide a question about Formula 1."

    try:
        result = route(question)
    except Exception as e:
        logger.exception("ask_f1 failed")
        return f"Could not answer the question: {e}"

    return format_answer(result.answer_text) + format_sources([CURATED_SOURCE_KEY])
