"""Tools: list_f1_topics / get_f1_topic — direct access to the topic table."""

from f1chat.formatters import format_topic_list
from f1chat.tools.knowledge_base import TOPIC_IDS, UnknownTopic, get_knowledge_base


async def list_f1_topics() -> str:
    """List the curated Formula 1 topics and their titles.

    Returns:
        Markdown list of topic ids with titles.
    """
    return format_topic_list(get_knowledge_base().topics)


async def get_f1_topic(topic_id: str) -> str:
    """Return the full curated text for one topic.

    Args:
        topic_id: One of teams, drivers, champions, scoring, rules, news.

    Returns:
        Topic title and body as markdown, or a message listing valid ids.
    """
    kb = get_knowledge_base()
    try:
        topic = kb.get_topic((topic_id or "").strip().lower())
    except UnknownTopic:
        return f"Unknown topic '{topic_id}'. Valid topics: {', '.join(TOPIC_IDS)}."
    return f"# {topic.title}\n\n{topic.body}"
