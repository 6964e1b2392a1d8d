"""Chunking of topic bodies into retrievable passages.

Each chunker returns a list of dicts:
    {"content": str, "source_file": str, "source_section": str, "metadata": dict}
"""

from __future__ import annotations

import logging
import re

from f1chat.tools.knowledge_base import TOPICS_FILE, KnowledgeBase, Topic

logger = logging.getLogger(__name__)

# --- Chunk size constants ---
MAX_CHUNK_CHARS = 600
OVERLAP_CHARS = 100
MIN_CHUNK_CHARS = 50

# "**Drivers' World Championship:**" or "🏆 **Championship Battle 2024**"
_HEADER_RE = re.compile(r'^(?:\W{0,3}\s*)?\*\*([^*]{3,80})\*\*:?\s*$')


def chunk_topic(topic: Topic,
                max_chars: int = MAX_CHUNK_CHARS,
                overlap: int = OVERLAP_CHARS) -> list[dict]:
    """Chunk one topic body, tagging every passage with the topic id."""
    chunks = chunk_raw_text(topic.body, TOPICS_FILE, max_chars=max_chars, overlap=overlap)
    for c in chunks:
        c["metadata"].update({"topic_id": topic.id, "title": topic.title})
        if c["source_section"] == "body":
            c["source_section"] = topic.title
    return chunks


def chunk_knowledge_base(kb: KnowledgeBase) -> list[dict]:
    """Chunk every topic in the knowledge base, in TOPIC_IDS order."""
    chunks: list[dict] = []
    for topic in kb.topics:
        topic_chunks = chunk_topic(topic)
        if not topic_chunks:
            logger.warning("Topic %s produced no chunks", topic.id)
        chunks.extend(topic_chunks)
    return chunks


def chunk_raw_text(text: str, source_file: str,
                   max_chars: int = MAX_CHUNK_CHARS,
                   overlap: int = OVERLAP_CHARS) -> list[dict]:
    """Chunk raw text with paragraph-boundary snapping.

    Strategy: Sliding window with preference for splitting at paragraph
    boundaries. Bold markdown lines are picked up as section names.
    """
    if not text or len(text.strip()) < MIN_CHUNK_CHARS:
        return []

    paragraphs = re.split(r'\n\s*\n', text)
    chunks = []
    current = ""
    section = "body"
    current_section = section

    for para in paragraphs:
        para = para.strip()
        if not para:
            continue

        # Oversized paragraphs are split before windowing
        pieces = _split_text(para, max_chars, overlap) if len(para) > max_chars else [para]

        for piece in pieces:
            header = _HEADER_RE.match(piece.splitlines()[0])
            if header:
                section = header.group(1).strip()[:60]

            if len(current) + len(piece) + 2 <= max_chars:
                if not current:
                    current_section = section
                current = f"{current}\n\n{piece}" if current else piece
                continue

            if current and len(current) >= MIN_CHUNK_CHARS:
                chunks.append(_make_chunk(current, source_file, current_section))
            # Start new chunk with overlap from end of previous
            if current and overlap > 0:
                current = f"{current[-overlap:]}\n\n{piece}"
            else:
                current = piece
            current_section = section

    # Don't forget the last chunk
    if current and len(current.strip()) >= MIN_CHUNK_CHARS:
        chunks.append(_make_chunk(current, source_file, current_section))

    return chunks


# --- Helpers ---

def _make_chunk(content: str, source_file: str, section: str) -> dict:
    return {
        "content": content.strip(),
        "source_file": source_file,
        "source_section": section,
        "metadata": {"type": "topic_passage"},
    }


def _split_text(text: str, max_chars: int, overlap: int) -> list[str]:
    """Split text into chunks with overlap, preferring sentence boundaries."""
    chunks = []
    start = 0
    while start < len(text):
        end = start + max_chars
        if end >= len(text):
            chunks.append(text[start:])
            break
        # Try to break at sentence boundary
        for boundary in [". ", ".\n", "\n", " "]:
            pos = text.rfind(boundary, start + max_chars // 2, end)
            if pos > start:
                end = pos + len(boundary)
                break
        chunks.append(text[start:end].strip())
        start = max(end - overlap, start + 1)
    return [c for c in chunks if len(c) >= MIN_CHUNK_CHARS]
