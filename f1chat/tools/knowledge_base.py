"""Shared knowledge base loader for the F1 answer tools.

Loads the curated topic documents once at first access.
The intent router, the MCP tools and the passage store all import from
this module.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

logger = logging.getLogger(__name__)

# Closed set of topic ids, in display order
TOPIC_IDS: tuple[str, ...] = ("teams", "drivers", "champions", "scoring", "rules", "news")

TOPICS_FILE = "f1-topics.json"


class KnowledgeBaseError(Exception):
    """The topic table is missing, malformed, or incomplete."""


class UnknownTopic(KnowledgeBaseError, LookupError):
    """A topic id outside TOPIC_IDS was requested."""

    def __init__(self, topic_id: str):
        self.topic_id = topic_id
        super().__init__(
            f"Unknown topic {topic_id!r} (valid: {', '.join(TOPIC_IDS)})"
        )


@dataclass(frozen=True)
class Topic:
    """One subject area with its canned answer text."""
    id: str
    title: str
    body: str
    aliases: tuple[str, ...] = field(default_factory=tuple)


def _knowledge_dir() -> Path:
    """Resolve the knowledge directory path."""
    # Try relative to this file first (f1chat/tools/knowledge_base.py -> data/knowledge)
    base = Path(__file__).parent.parent.parent / "data" / "knowledge"
    if base.exists():
        return base
    # Fall back to env var
    env_path = os.environ.get("F1CHAT_KNOWLEDGE_DIR")
    if env_path:
        return Path(env_path)
    raise FileNotFoundError(
        "Cannot find data/knowledge/ directory. "
        "Set F1CHAT_KNOWLEDGE_DIR environment variable."
    )


def _load_json(path: Path) -> dict:
    """Load a JSON file, returning empty dict on failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError) as e:
        logger.warning("Could not load %s: %s", path, e)
        return {}


@lru_cache(maxsize=1)
def get_knowledge_base() -> "KnowledgeBase":
    """Get the singleton KnowledgeBase instance."""
    return KnowledgeBase(_knowledge_dir())


class KnowledgeBase:
    """Read-only table of Topic documents keyed by topic id."""

    def __init__(self, data_dir: Path):
        self.data_dir = data_dir
        raw = _load_json(data_dir / TOPICS_FILE)
        self.description = raw.get("description", "")
        self._topics = _parse_topics(raw.get("topics"), data_dir / TOPICS_FILE)

        # Build keyword index from topic aliases
        self._keyword_index = self._build_keyword_index()
        logger.info("Loaded %d topics from %s", len(self._topics), data_dir)

    @property
    def topics(self) -> tuple[Topic, ...]:
        """All topics in TOPIC_IDS order."""
        return tuple(self._topics[tid] for tid in TOPIC_IDS)

    def topic_ids(self) -> tuple[str, ...]:
        return TOPIC_IDS

    def has_topic(self, topic_id: str) -> bool:
        return topic_id in self._topics

    def get_topic(self, topic_id: str) -> Topic:
        """Return the document for a known topic id.

        Raises:
            UnknownTopic: if topic_id is not one of TOPIC_IDS.
        """
        try:
            return self._topics[topic_id]
        except (KeyError, TypeError):
            raise UnknownTopic(topic_id) from None

    def _build_keyword_index(self) -> dict[str, list[str]]:
        """Build a mapping from alias keyword -> list of topic ids."""
        index: dict[str, list[str]] = {}
        for topic in self.topics:
            for alias in topic.aliases:
                key = alias.lower().strip()
                if not key:
                    continue
                index.setdefault(key, [])
                if topic.id not in index[key]:
                    index[key].append(topic.id)
        return index

    def match_topics(self, text: str) -> list[str]:
        """Match text against topic aliases, best match first."""
        return [tid for tid, _score in self.match_topics_scored(text)]

    def match_topics_scored(self, text: str) -> list[tuple[str, float]]:
        """Match text against topic aliases with relevance scoring.

        Returns list of (topic_id, score) tuples sorted by score descending.
        Only the retrieval keyword boost uses this; the answer path routes
        through intent_router instead.

        Scoring factors:
        - Longer alias matches score higher (specificity)
        - Multiple distinct alias matches for the same topic boost its score
        - Aliases that are whole words (not substrings of longer words) get a bonus
        - Multi-word aliases get a flat bonus
        """
        text_lower = text.lower()
        # Track per-topic: list of (alias, is_whole_word)
        topic_hits: dict[str, list[tuple[str, bool]]] = {}

        for keyword, topic_ids in self._keyword_index.items():
            if keyword not in text_lower:
                continue
            pattern = r'(?:^|[\s,;.!?()\-/])' + re.escape(keyword) + r'(?:$|[\s,;.!?()\-/])'
            is_whole_word = bool(re.search(pattern, text_lower))
            for tid in topic_ids:
                topic_hits.setdefault(tid, []).append((keyword, is_whole_word))

        scored: list[tuple[str, float]] = []
        for tid, hits in topic_hits.items():
            specificity = max(len(alias) for alias, _ in hits) / 20.0
            breadth_bonus = min(len(hits) * 0.15, 0.6)
            whole_word_bonus = sum(1 for _, whole in hits if whole) * 0.2
            multiword_bonus = 0.3 if any(" " in alias for alias, _ in hits) else 0.0
            score = specificity + breadth_bonus + whole_word_bonus + multiword_bonus
            scored.append((tid, round(score, 3)))

        # Stable sort keeps TOPIC_IDS order for equal scores
        scored.sort(key=lambda x: x[1], reverse=True)
        return scored


def _parse_topics(raw_topics, path: Path) -> dict[str, Topic]:
    """Validate the raw topics mapping and build Topic records.

    Every id in TOPIC_IDS must be present exactly once with a non-empty body,
    and no other ids may appear.
    """
    if not isinstance(raw_topics, dict) or not raw_topics:
        raise KnowledgeBaseError(f"No topics found in {path}")

    extra = sorted(set(raw_topics) - set(TOPIC_IDS))
    if extra:
        raise KnowledgeBaseError(f"Unexpected topic ids in {path}: {', '.join(extra)}")
    missing = [tid for tid in TOPIC_IDS if tid not in raw_topics]
    if missing:
        raise KnowledgeBaseError(f"Missing topic ids in {path}: {', '.join(missing)}")

    topics: dict[str, Topic] = {}
    for tid in TOPIC_IDS:
        entry = raw_topics[tid]
        if not isinstance(entry, dict):
            raise KnowledgeBaseError(f"Topic {tid!r} in {path} is not an object")
        body = entry.get("body") or ""
        if not body.strip():
            raise KnowledgeBaseError(f"Topic {tid!r} in {path} has an empty body")
        topics[tid] = Topic(
            id=tid,
            title=str(entry.get("title") or tid),
            body=body,
            aliases=tuple(str(a).lower() for a in entry.get("aliases", [])),
        )
    return topics


# --- Source citation system ---

# The answer path cites one fixed source regardless of topic
CURATED_SOURCE_KEY = "curated_kb"

SOURCE_REGISTRY: dict[str, dict[str, str]] = {
    CURATED_SOURCE_KEY: {
        "label": "Curated F1 Knowledge Base",
        "url": "https://www.formula1.com/",
    },
}

CURATED_SOURCE_LABEL = SOURCE_REGISTRY[CURATED_SOURCE_KEY]["label"]


def format_sources(source_keys: list[str]) -> str:
    """Format a Sources section for tool output.

    Args:
        source_keys: List of SOURCE_REGISTRY keys used in generating the output.

    Returns:
        Formatted markdown Sources section with clickable links.
    """
    seen = set()
    lines = ["\n---\n## Sources\n"]
    for key in source_keys:
        if key in seen:
            continue
        seen.add(key)
        info = SOURCE_REGISTRY.get(key)
        if info:
            lines.append(f"- [{info['label']}]({info['url']})")
    if len(lines) == 1:
        return ""  # No valid sources
    lines.append("")  # trailing newline
    return "\n".join(lines)
