"""Root-level test conftest — fixtures shared across all test files.

Prevents cross-file contamination from in-memory state (rate buckets,
cached knowledge base and passage store) that persists between test
files in the same pytest session.
"""
import pytest


# ---------------------------------------------------------------------------
# Function-scoped rate/cache clearing
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _clear_rate_state():
    """Clear rate limiter buckets before and after each test.

    Without this, rate limit counters from one test file bleed into
    the next, causing 429 responses in tests that don't expect them.
    """
    from web.helpers import _rate_buckets
    _rate_buckets.clear()
    yield
    _rate_buckets.clear()


@pytest.fixture
def fresh_caches():
    """Drop the cached knowledge base, router validation and store.

    For tests that point F1CHAT_KNOWLEDGE_DIR or the loader at other data.
    """
    from f1chat.rag.store import get_store
    from f1chat.tools.intent_router import _default_router_ready
    from f1chat.tools.knowledge_base import get_knowledge_base

    def _clear():
        get_knowledge_base.cache_clear()
        _default_router_ready.cache_clear()
        get_store.cache_clear()

    _clear()
    yield
    _clear()


@pytest.fixture
def topics_payload():
    """A minimal, valid topics file body."""
    return {
        "description": "test topics",
        "topics": {
            tid: {
                "title": f"{tid.title()} title",
                "aliases": [tid],
                "body": f"This is the {tid} body with enough words to be chunked into a passage.",
            }
            for tid in ("teams", "drivers", "champions", "scoring", "rules", "news")
        },
    }
