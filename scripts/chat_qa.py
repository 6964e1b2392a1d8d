#!/usr/bin/env python3
"""QA check for a running F1 chat server.

Posts a fixed question set to /api/chat and checks each answer for any of
its expected keywords. An HTTP or transport error is FAILED; an answer
that contains none of the keywords is WARNING (counted as FAILED with
--strict).

Usage:
    python scripts/chat_qa.py --url http://localhost:5000
    python scripts/chat_qa.py --url http://localhost:5000 --strict --output qa.json
"""

from __future__ import annotations

import argparse
import json
import sys
import time
from collections import defaultdict
from dataclasses import asdict, dataclass, field
from typing import Optional

import httpx


@dataclass
class QACase:
    category: str
    question: str
    expected_keywords: list[str]


QA_CASES: list[QACase] = [
    QACase("Drivers", "Who are the current F1 drivers?", ["Max Verstappen", "Lewis Hamilton", "drivers"]),
    QACase("Drivers", "Tell me about the best racer", ["Verstappen", "Hamilton"]),
    QACase("Teams", "Tell me about the F1 teams", ["Red Bull", "Mercedes", "Ferrari", "McLaren"]),
    QACase("Teams", "Which constructor has the most titles?", ["constructor", "team"]),
    QACase("Scoring", "How does F1 scoring work?", ["points", "25", "18", "15"]),
    QACase("Scoring", "How many points for first place?", ["25", "points"]),
    QACase("Champions", "Who won the 2024 championship?", ["Max Verstappen", "2024 World Champion"]),
    QACase("Rules", "What are the F1 technical regulations?", ["regulations", "rules", "technical"]),
    QACase("News", "What's the latest F1 news?", ["latest", "season", "2024"]),
    QACase("Edge Cases", "Hello", ["Formula", "F1"]),
    QACase("Edge Cases", "Tell me about basketball", ["Formula", "F1", "racing"]),
]

MIN_ANSWER_CHARS = 50


@dataclass
class QAResult:
    category: str
    question: str
    status: str                     # PASSED | WARNING | FAILED
    found: list[str] = field(default_factory=list)
    missing: list[str] = field(default_factory=list)
    answer_chars: int = 0
    error: Optional[str] = None


def check_keywords(text: str, keywords: list[str]) -> tuple[list[str], list[str]]:
    """Case-insensitive containment check. Returns (found, missing)."""
    lower = text.lower()
    found = [k for k in keywords if k.lower() in lower]
    missing = [k for k in keywords if k not in found]
    return found, missing


def ask(client: httpx.Client, base_url: str, question: str) -> dict:
    """POST one question; raises httpx errors on transport or HTTP failure."""
    response = client.post(f"{base_url.rstrip('/')}/api/chat", json={"message": question})
    response.raise_for_status()
    return response.json()


def run_case(client: httpx.Client, base_url: str, case: QACase) -> QAResult:
    try:
        data = ask(client, base_url, case.question)
    except httpx.HTTPStatusError as exc:
        return QAResult(case.category, case.question, "FAILED",
                        error=f"HTTP {exc.response.status_code}")
    except httpx.HTTPError as exc:
        return QAResult(case.category, case.question, "FAILED", error=str(exc))

    answer = data.get("message") or ""
    found, missing = check_keywords(answer, case.expected_keywords)
    status = "PASSED" if found else "WARNING"
    if len(answer) < MIN_ANSWER_CHARS:
        status = "WARNING"
    return QAResult(case.category, case.question, status,
                    found=found, missing=missing, answer_chars=len(answer))


def run_qa(base_url: str, cases: list[QACase] = QA_CASES,
           delay: float = 0.0, timeout: float = 10.0) -> list[QAResult]:
    results = []
    with httpx.Client(timeout=timeout) as client:
        for i, case in enumerate(cases):
            if i and delay:
                time.sleep(delay)
            results.append(run_case(client, base_url, case))
    return results


def summarize(results: list[QAResult]) -> dict:
    by_category: dict[str, dict[str, int]] = defaultdict(lambda: {"total": 0, "ok": 0})
    for r in results:
        by_category[r.category]["total"] += 1
        if r.status != "FAILED":
            by_category[r.category]["ok"] += 1
    counts = {s: sum(1 for r in results if r.status == s) for s in ("PASSED", "WARNING", "FAILED")}
    return {
        "total": len(results),
        **{k.lower(): v for k, v in counts.items()},
        "by_category": dict(by_category),
    }


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="QA check the F1 chat endpoint")
    parser.add_argument("--url", default="http://localhost:5000", help="Base URL of the chat server")
    parser.add_argument("--delay", type=float, default=0.5, help="Seconds between requests (default: 0.5)")
    parser.add_argument("--timeout", type=float, default=10.0, help="Per-request timeout in seconds")
    parser.add_argument("--strict", action="store_true", help="Treat WARNING as failure")
    parser.add_argument("--output", help="Optional path for the JSON report")
    args = parser.parse_args(argv)

    results = run_qa(args.url, delay=args.delay, timeout=args.timeout)
    for r in results:
        detail = r.error or (f"found: {', '.join(r.found)}" if r.found else f"missing: {', '.join(r.missing)}")
        print(f"[{r.status:7}] {r.category:<11} {r.question!r} — {detail}", file=sys.stderr)

    report = {"summary": summarize(results), "results": [asdict(r) for r in results]}
    if args.output:
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
    print(json.dumps(report["summary"], indent=2))

    failed = report["summary"]["failed"] + (report["summary"]["warning"] if args.strict else 0)
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
