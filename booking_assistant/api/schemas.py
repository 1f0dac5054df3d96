"""Pydantic schemas for the FastAPI endpoints."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ChatRequest(BaseModel):
    """Incoming chat message from the frontend."""

    message: str = Field(..., min_length=1, max_length=2000, description="The user's message")
    session_id: str = Field(
        ...,
        min_length=1,
        max_length=100,
        description="Conversation id; one chat thread per id",
    )


class ChatResponse(BaseModel):
    """Response from the agent."""

    reply: str = Field(..., description="Text shown to the user; empty when a list is shown on its own")
    session_id: str = Field(..., description="The conversation id")
    language: str | None = Field(None, description="Language detected for this conversation")
    phase: str = Field(..., description="Booking step the conversation is at")
    events: list[dict[str, Any]] = Field(
        default_factory=list,
        description="Tool results for the UI to render, with their follow-up actions",
    )


class DeleteChatResponse(BaseModel):
    status: str = "deleted"
    session_id: str


class FAQCreateRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000, description="Canonical question")
    response: str = Field(..., min_length=1, max_length=8000, description="Canonical answer")


class FAQCreateResponse(BaseModel):
    message: str
    response: str


class FAQQueryRequest(BaseModel):
    message: str = Field(..., min_length=1, max_length=2000, description="The user's question")


class PaymentResponse(BaseModel):
    reservationId: str
    hasCompletedPayment: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    service: str = "booking-assistant"
