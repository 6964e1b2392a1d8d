#!/usr/bin/env python3
"""Search the curated F1 passages from the command line.

Usage:
    python scripts/f1_search.py "points for fastest lap"
    python scripts/f1_search.py --top-k 3 "Who are the current drivers?" "halo"
    python scripts/f1_search.py --context "engine rules"

With no questions, runs a short demo set.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys

# Ensure project root is importable
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))

from f1chat.rag.retrieval import retrieve, retrieve_with_context

DEMO_QUESTIONS = [
    "What are the latest Formula 1 news?",
    "Who are the current F1 drivers?",
    "What are the F1 rules and regulations?",
]

PREVIEW_CHARS = 200


def search_question(question: str, top_k: int = 3) -> list[dict]:
    """Return the top passages for one question."""
    return retrieve(question, top_k=top_k)


def print_results(question: str, results: list[dict]) -> None:
    print(f"\nQuestion: {question}")
    print("=" * 50)
    if not results:
        print("No relevant information found.")
        return
    print(f"Found {len(results)} relevant passages:\n")
    for i, r in enumerate(results, 1):
        meta = r.get("metadata", {})
        print(f"{i}. {r['content'][:PREVIEW_CHARS]}...")
        print(f"   Topic: {meta.get('topic_id', 'unknown')} > {r.get('source_section', '')}")
        print(f"   Score: {r.get('final_score', 0):.4f}\n")


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Search the curated F1 knowledge passages")
    parser.add_argument("questions", nargs="*", help="Questions to search (default: demo set)")
    parser.add_argument("--top-k", type=int, default=3, help="Passages per question (default: 3)")
    parser.add_argument("--context", action="store_true",
                        help="Print the assembled context block instead of a result list")
    parser.add_argument("--json", action="store_true", help="Emit raw results as JSON")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    questions = args.questions or DEMO_QUESTIONS
    for question in questions:
        if args.context:
            print(retrieve_with_context(question, top_k=args.top_k)["context"])
            continue
        results = search_question(question, top_k=args.top_k)
        if args.json:
            print(json.dumps({"question": question, "results": results}, ensure_ascii=False, indent=2))
        else:
            print_results(question, results)
    return 0


if __name__ == "__main__":
    sys.exit(main())
