"""
Intake Service - Legal Intake Conversation Pipeline
===================================================

A small, standalone service for:
1. Running each intake turn through an ordered middleware pipeline
2. Keeping per-session conversation context in a TTL key-value store
3. Validating and answering agent tool calls (contact info, documents, review)

No database and no auth. The LLM agent itself lives outside this package.
"""

__version__ = "1.0.0"
