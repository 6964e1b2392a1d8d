"""F1 chat — JSON web API over the curated Formula 1 knowledge base.

A small Flask app exposing:
  - POST /api/chat    keyword-routed answer for a chat message
  - GET  /api/search  ranked passage search
  - GET  /api/topics  topic listing
  - GET  /health      knowledge base and rule table status

Run locally:
    python -m web.app
"""

import json
import logging
import os
import sys

from flask import Flask, Response

# Configure logging so gunicorn captures warnings from tools
logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

# Ensure project root is importable
sys.path.insert(0, os.path.join(os.path.dirname(os.path.abspath(__file__)), ".."))

from f1chat.tools.intent_router import DEFAULT_RULES, validate_rules
from f1chat.tools.knowledge_base import get_knowledge_base
from web.helpers import _rate_buckets  # noqa: F401 (re-exported for tests)
from web.routes_api import bp as api_bp

app = Flask(__name__)
app.json.ensure_ascii = False
app.register_blueprint(api_bp)


# ---------------------------------------------------------------------------
# Startup validation (run once per process)
# ---------------------------------------------------------------------------
def _validate_knowledge_on_startup():
    """Check the rule table against the knowledge base. Non-fatal; /health reports it."""
    try:
        kb = get_knowledge_base()
        validate_rules(DEFAULT_RULES, kb)
        logging.getLogger(__name__).info(
            "Knowledge base ready: %d topics, %d rules", len(kb.topics), len(DEFAULT_RULES),
        )
    except Exception as e:
        logging.getLogger(__name__).warning("Knowledge base validation failed (non-fatal): %s", e)


_validate_knowledge_on_startup()


@app.route("/health")
def health():
    """Health check endpoint — reports topic and rule counts."""
    info = {"status": "ok"}
    try:
        kb = get_knowledge_base()
        validate_rules(DEFAULT_RULES, kb)
        info["topics"] = len(kb.topics)
        info["rules"] = len(DEFAULT_RULES)
    except Exception as e:
        info["status"] = "degraded"
        info["error"] = str(e)

    return Response(json.dumps(info, indent=2), mimetype="application/json")


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=int(os.environ.get("PORT", 5000)))
