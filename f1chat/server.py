"""F1 Knowledge MCP Server — FastMCP entry point.

Exposes the curated Formula 1 knowledge base via MCP tools:
keyword-routed answers, ranked passage search, and direct topic access.
"""

from fastmcp import FastMCP

from f1chat.tools.ask_f1 import ask_f1
from f1chat.tools.search_knowledge import search_f1_knowledge
from f1chat.tools.topic_lookup import get_f1_topic, list_f1_topics

# Create MCP server
mcp = FastMCP(
    "F1 Knowledge",
    instructions=(
        "F1 Knowledge MCP server — answers Formula 1 questions from a small "
        "curated knowledge base (teams, drivers, champions, scoring, rules, news). "
        "ask_f1 routes a question to one topic by keyword rules and returns its "
        "text verbatim. search_f1_knowledge ranks passages across all topics. "
        "list_f1_topics and get_f1_topic give direct access to the topic table."
    ),
)

mcp.tool()(ask_f1)
mcp.tool()(search_f1_knowledge)
mcp.tool()(list_f1_topics)
mcp.tool()(get_f1_topic)


if __name__ == "__main__":
    mcp.run()
