"""Intent router — map a free-text F1 question to exactly one topic.

Rule-based classification with priority ordering. No LLM calls, no
retrieval. Used by the /api/chat endpoint and the ask_f1 MCP tool.

Rules (priority order):
  1. championship — (who won | winner | champion)
                    AND (2024 | 2023 | current | championship)
  2. news         — news | latest | recent | update
  3. teams        — team | constructor
  4. drivers      — driver | pilot | racer
  5. scoring      — point | score | scoring
  6. rules        — rule | regulation | technical
  7. fallback     — always true, answers with the news topic

Matching is plain substring containment on the lower-cased query. There is
no word-boundary check, so "steam" matches "team" and "scorer" matches
"score". A bare "champion" with no year or "current" qualifier does not
match rule 1 and ends up on the fallback.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Callable, Sequence

from f1chat.tools.knowledge_base import (
    CURATED_SOURCE_LABEL,
    KnowledgeBase,
    UnknownTopic,
    get_knowledge_base,
)

logger = logging.getLogger(__name__)


class RuleConfigError(Exception):
    """The rule list does not end in exactly one fallback rule."""


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchRule:
    """One entry in the ordered rule list."""
    name: str
    priority: int
    predicate: Callable[[str], bool] = field(compare=False)
    target_topic: str
    is_fallback: bool = False

    def matches(self, text_lower: str) -> bool:
        return self.predicate(text_lower)


@dataclass(frozen=True)
class QueryResult:
    """Result of routing one query."""
    answer_text: str
    source_labels: tuple[str, ...]
    topic_id: str
    rule_name: str

    @property
    def found_results(self) -> int:
        return 1

    def to_dict(self) -> dict:
        return {
            "answer_text": self.answer_text,
            "source_labels": list(self.source_labels),
            "topic_id": self.topic_id,
            "rule_name": self.rule_name,
        }


# ---------------------------------------------------------------------------
# Keyword groups
# ---------------------------------------------------------------------------

# Priority 1: both groups must hit
CHAMPION_KEYWORDS = ["who won", "winner", "champion"]
CHAMPION_QUALIFIERS = ["2024", "2023", "current", "championship"]

# Priority 2
NEWS_KEYWORDS = ["news", "latest", "recent", "update"]

# Priority 3
TEAM_KEYWORDS = ["team", "constructor"]

# Priority 4
DRIVER_KEYWORDS = ["driver", "pilot", "racer"]

# Priority 5
SCORING_KEYWORDS = ["point", "score", "scoring"]

# Priority 6
RULES_KEYWORDS = ["rule", "regulation", "technical"]

FALLBACK_TOPIC = "news"


def contains_any(keywords: Sequence[str]) -> Callable[[str], bool]:
    """Predicate: text contains at least one of the keywords (substring)."""
    words = tuple(k.lower() for k in keywords)

    def _predicate(text_lower: str) -> bool:
        return any(k in text_lower for k in words)

    return _predicate


def all_of(*predicates: Callable[[str], bool]) -> Callable[[str], bool]:
    """Predicate: every sub-predicate is true."""

    def _predicate(text_lower: str) -> bool:
        return all(p(text_lower) for p in predicates)

    return _predicate


def _always(text_lower: str) -> bool:
    return True


DEFAULT_RULES: tuple[MatchRule, ...] = (
    MatchRule(
        name="championship",
        priority=1,
        predicate=all_of(contains_any(CHAMPION_KEYWORDS), contains_any(CHAMPION_QUALIFIERS)),
        target_topic="champions",
    ),
    MatchRule(name="news", priority=2, predicate=contains_any(NEWS_KEYWORDS), target_topic="news"),
    MatchRule(name="teams", priority=3, predicate=contains_any(TEAM_KEYWORDS), target_topic="teams"),
    MatchRule(name="drivers", priority=4, predicate=contains_any(DRIVER_KEYWORDS), target_topic="drivers"),
    MatchRule(name="scoring", priority=5, predicate=contains_any(SCORING_KEYWORDS), target_topic="scoring"),
    MatchRule(name="rules", priority=6, predicate=contains_any(RULES_KEYWORDS), target_topic="rules"),
    MatchRule(
        name="fallback",
        priority=7,
        predicate=_always,
        target_topic=FALLBACK_TOPIC,
        is_fallback=True,
    ),
)


# ---------------------------------------------------------------------------
# Rule evaluation
# ---------------------------------------------------------------------------

def ordered_rules(rules: Sequence[MatchRule]) -> list[MatchRule]:
    """Sort rules by priority; equal priorities keep declaration order."""
    return sorted(rules, key=lambda r: r.priority)


def validate_rules(rules: Sequence[MatchRule], kb: KnowledgeBase) -> None:
    """Check a rule list against the knowledge base.

    Raises:
        RuleConfigError: no fallback, more than one, or fallback not last.
        UnknownTopic: a rule targets a topic the knowledge base lacks.
    """
    ordered = ordered_rules(rules)
    fallbacks = [r for r in ordered if r.is_fallback]
    if len(fallbacks) != 1:
        raise RuleConfigError(f"Expected exactly one fallback rule, found {len(fallbacks)}")
    if ordered[-1] is not fallbacks[0]:
        raise RuleConfigError(
            f"Fallback rule {fallbacks[0].name!r} must be evaluated last"
        )
    for rule in ordered:
        if not kb.has_topic(rule.target_topic):
            raise UnknownTopic(rule.target_topic)


def match_rule(text: str, rules: Sequence[MatchRule] = DEFAULT_RULES) -> MatchRule:
    """Return the first rule (by priority) whose predicate matches text."""
    if not isinstance(text, str):
        raise TypeError(f"query text must be str, not {type(text).__name__}")
    text_lower = text.lower()
    for rule in ordered_rules(rules):
        if rule.matches(text_lower):
            return rule
    # Only reachable with an unvalidated rule list
    raise RuleConfigError("No rule matched; rule list has no fallback")


@lru_cache(maxsize=1)
def _default_router_ready() -> KnowledgeBase:
    """Load the knowledge base and validate DEFAULT_RULES against it once."""
    kb = get_knowledge_base()
    validate_rules(DEFAULT_RULES, kb)
    return kb


def route(
    text: str,
    rules: Sequence[MatchRule] | None = None,
    kb: KnowledgeBase | None = None,
) -> QueryResult:
    """Route a free-text query to one topic and return its answer.

    Args:
        text: Raw user message. Compared case-insensitively, no other
            normalization.
        rules: Optional rule list (defaults to DEFAULT_RULES).
        kb: Optional knowledge base (defaults to the shared instance).

    Returns:
        QueryResult whose answer_text is the matched topic's body, unmodified.
    """
    if rules is None and kb is None:
        rules = DEFAULT_RULES
        kb = _default_router_ready()
    else:
        rules = DEFAULT_RULES if rules is None else rules
        kb = get_knowledge_base() if kb is None else kb
        validate_rules(rules, kb)

    rule = match_rule(text, rules)
    topic = kb.get_topic(rule.target_topic)
    logger.debug("Routed query via rule %s -> topic %s", rule.name, topic.id)
    return QueryResult(
        answer_text=topic.body,
        source_labels=(CURATED_SOURCE_LABEL,),
        topic_id=topic.id,
        rule_name=rule.name,
    )
