"""FastAPI route definitions for the booking assistant API.

The caller's identity arrives in the ``X-User-ID`` header, set by the
gateway in front of this service.  Chatting works without it; reserving,
paying and deleting a chat do not.
"""

from __future__ import annotations

import asyncio
import logging

from fastapi import APIRouter, Header, HTTPException, Request
from fastapi.responses import JSONResponse
from langchain_core.messages import HumanMessage

from booking_assistant.api.schemas import (
    ChatRequest,
    ChatResponse,
    DeleteChatResponse,
    FAQCreateRequest,
    FAQCreateResponse,
    FAQQueryRequest,
    HealthResponse,
    PaymentResponse,
)
from booking_assistant.conversation import FlowPhase
from booking_assistant.runtime import AssistantRuntime
from booking_assistant.services.reservations import NotFoundError, PermissionDeniedError

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_runtime(request: Request) -> AssistantRuntime:
    """Retrieve the runtime built by the FastAPI lifespan (see ``server.py``)."""
    runtime = getattr(request.app.state, "runtime", None)
    if runtime is None:
        raise HTTPException(
            status_code=503,
            detail="The assistant is still starting up. Please try again in a moment.",
        )
    return runtime


def _require_user(user_id: str | None) -> str:
    if not user_id:
        raise HTTPException(status_code=401, detail="Not logged in.")
    return user_id


# ── Endpoints ────────────────────────────────────────────────────────


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint."""
    return HealthResponse()


@router.post("/chat", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    http_request: Request,
    x_user_id: str | None = Header(default=None),
):
    """Send a message to the assistant and get its reply for this turn.

    ``agent.invoke()`` blocks on the Anthropic and OpenAI APIs, so it runs
    in a worker thread via ``asyncio.to_thread``.
    """
    runtime = _get_runtime(http_request)
    request_id = getattr(http_request.state, "request_id", "?")

    try:
        result = await asyncio.to_thread(
            runtime.agent.invoke,
            {"messages": [HumanMessage(content=request.message)]},
            config={"configurable": {"thread_id": request.session_id, "user_id": x_user_id}},
        )
    except Exception as e:
        logger.exception("[%s] Error processing chat request", request_id)
        raise HTTPException(
            status_code=500,
            detail="An internal error occurred. Please try again.",
        ) from e

    if x_user_id:
        runtime.chats.save(request.session_id, x_user_id)

    conversation = runtime.conversations.get(request.session_id)
    return ChatResponse(
        reply=result.get("reply", ""),
        session_id=request.session_id,
        language=conversation.language if conversation else None,
        phase=(conversation.phase.kind if conversation else FlowPhase.START).value,
        events=result.get("events") or [],
    )


@router.delete("/chat/{session_id}", response_model=DeleteChatResponse)
async def delete_chat(
    session_id: str,
    http_request: Request,
    x_user_id: str | None = Header(default=None),
):
    """Delete a chat owned by the caller, including its booking state.

    Another user's chat answers 401, not 404, so its existence is not
    confirmed to them.
    """
    runtime = _get_runtime(http_request)
    user_id = _require_user(x_user_id)
    try:
        runtime.delete_chat(session_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Chat not found.") from e
    except PermissionDeniedError as e:
        raise HTTPException(status_code=401, detail="Not allowed to delete this chat.") from e
    return DeleteChatResponse(session_id=session_id)


@router.post("/faq", response_model=FAQCreateResponse, status_code=201)
async def create_faq(request: FAQCreateRequest, http_request: Request):
    """Embed and store a canonical question/answer pair."""
    runtime = _get_runtime(http_request)
    request_id = getattr(http_request.state, "request_id", "?")
    try:
        await asyncio.to_thread(runtime.faq_resolver.ingest, request.message, request.response)
    except Exception as e:
        logger.exception("[%s] FAQ ingestion failed", request_id)
        raise HTTPException(status_code=500, detail="Failed to store the FAQ entry.") from e
    return FAQCreateResponse(message=request.message, response=request.response)


@router.post("/faq/query")
async def query_faq(request: FAQQueryRequest, http_request: Request):
    """Answer a question from the FAQ, translated into the question's language."""
    runtime = _get_runtime(http_request)
    answer = await asyncio.to_thread(runtime.faq_resolver.resolve, request.message)
    if answer is None:
        return JSONResponse(status_code=404, content={"response": None})
    return answer.dump()


@router.post("/reservations/{reservation_id}/payment", response_model=PaymentResponse)
async def complete_payment(
    reservation_id: str,
    http_request: Request,
    x_user_id: str | None = Header(default=None),
):
    """Mark a reservation as paid (stands in for the payment gateway callback)."""
    runtime = _get_runtime(http_request)
    user_id = _require_user(x_user_id)
    try:
        runtime.reservations.mark_paid(reservation_id, user_id)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail="Reservation not found.") from e
    except PermissionDeniedError as e:
        raise HTTPException(status_code=401, detail="Not allowed to pay for this reservation.") from e
    return PaymentResponse(reservationId=reservation_id, hasCompletedPayment=True)
