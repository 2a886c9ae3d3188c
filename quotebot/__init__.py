"""Container Quote Bot — a Messenger webhook that quotes container delivery prices.

Architecture Overview
=====================

Each inbound message runs through a small **LangGraph** tool-calling loop:

1. **model** — the chat model (Gemini on Vertex AI, or Claude) answers
   directly or asks for the ``get_container_quote`` tool.

2. **tools** — validates the ZIP code and calls the UsedConex quoting API.
   The result becomes a templated reply, or goes back to the model for a
   natural-language summary.

Routing: model → (tool calls?) → tools → (reply or model again) → END,
bounded to three model calls per message.  If the model fails, a regex
ZIP-code extractor quotes the price directly.

Key Design Decisions
--------------------
- **Prompt acknowledgement**: ``POST /webhook`` returns ``200`` immediately
  and answers in a background task, so platform retries never pile up.
- **No memory**: every message starts a fresh conversation.
- **Fail fast**: missing configuration stops the server at start-up.

Package Structure
-----------------
- ``quotebot/agent.py`` — LangGraph StateGraph and per-event handler
- ``quotebot/config.py`` — Settings loaded from environment variables
- ``quotebot/errors.py`` — error taxonomy
- ``quotebot/intent.py`` — ZIP code extraction
- ``quotebot/prompts.py`` — system prompt and reply templates
- ``quotebot/server.py`` — FastAPI application
- ``quotebot/main.py`` — CLI chat interface
- ``quotebot/services/`` — quoting API, Send API and chat model clients
- ``quotebot/tools/`` — LangChain quote tool
- ``quotebot/api/`` — webhook routes, schemas and signature checks
"""
