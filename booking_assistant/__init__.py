"""Course Booking Assistant — a multilingual chat agent for booking language lessons.

Architecture Overview
=====================

The assistant is a **LangGraph** state machine.  Each user message first
goes to the FAQ resolver (OpenAI embeddings + nearest-neighbour lookup in
pgvector or an in-memory store); only when no FAQ entry matches does Claude
drive the booking flow through a fixed catalog of tools:

    listTeachers → getTeacherDetails → listCourses → createReservation
    → authorizePayment → verifyPayment → displayReservationConfirmation

Key Design Decisions
--------------------
- **Language**: detected once per conversation from character classes
  (Traditional Chinese, English, Japanese, Korean); every generated teacher,
  course and FAQ answer is produced in that language.
- **Explicit flow phases**: the booking step is a tagged value on the
  conversation state, so a confirmation can only follow a verified payment.
- **Typed tools**: every tool call is validated against a pydantic model
  before it runs; malformed calls come back to the LLM as errors.
- **Output shape**: lists are shown without prose, the name prompt is a
  fixed localized sentence, and at most one flow step renders per turn.
- **Failures stay local**: translation, embedding and generation calls
  return ``Result`` values or neutral fallbacks instead of raising.

Package Structure
-----------------
- ``booking_assistant/agent.py`` — LangGraph StateGraph definition
- ``booking_assistant/config.py`` — Centralized configuration from environment variables
- ``booking_assistant/prompts.py`` — System prompt for the booking LLM
- ``booking_assistant/language.py`` — Language detection
- ``booking_assistant/localized.py`` — The few fixed strings the flow emits, per language
- ``booking_assistant/models.py`` — Teacher, course and reservation records
- ``booking_assistant/conversation/`` — Conversation state, flow phases and their store
- ``booking_assistant/services/`` — Embeddings, FAQ store, translation, generation, metrics
- ``booking_assistant/tools/`` — Tool catalog and executor
- ``booking_assistant/runtime.py`` — Wiring of the long-lived collaborators
- ``booking_assistant/server.py`` — FastAPI application
- ``booking_assistant/main.py`` — CLI chat interface
- ``booking_assistant/api/`` — FastAPI routes and Pydantic schemas
"""
