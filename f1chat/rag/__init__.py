"""Passage retrieval over the curated F1 topics.

Topic bodies are split into passages, held in an in-memory store and
ranked by idf-weighted term overlap plus a topic-alias boost. This path
backs the search API and the search_f1_knowledge tool; the chat answer
path routes through the intent router and never reads from here.
"""
