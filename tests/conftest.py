"""Shared test fixtures for the booking assistant test suite."""

from __future__ import annotations

import os
from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest


def pytest_configure(config):
    """Set test environment variables BEFORE collection starts.

    This runs before any imports, so config.py won't fail on module load.
    """
    os.environ.setdefault("ANTHROPIC_API_KEY", "test-anthropic-key-123")
    os.environ.setdefault("OPENAI_API_KEY", "test-openai-key-456")
    os.environ["METRICS_ENABLED"] = "false"


DIMENSIONS = 8


class FakeEmbedder:
    """Deterministic embedder.

    Texts registered in ``vectors`` get that vector; any other text gets a
    one-hot vector picked from its characters.
    """

    def __init__(self, vectors: dict[str, list[float]] | None = None, *, fail: bool = False):
        self.vectors = dict(vectors or {})
        self.fail = fail
        self.dimensions = DIMENSIONS
        self.calls: list[str] = []

    def embed(self, text: str) -> list[float]:
        from booking_assistant.services.embeddings import EmbeddingError

        self.calls.append(text)
        if self.fail:
            raise EmbeddingError("embedding service unavailable")
        if text in self.vectors:
            return list(self.vectors[text])
        vector = [0.0] * DIMENSIONS
        vector[sum(map(ord, text)) % DIMENSIONS] = 1.0
        return vector


class ManualClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def one_hot(index: int) -> list[float]:
    vector = [0.0] * DIMENSIONS
    vector[index] = 1.0
    return vector


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def mock_translation_llm():
    """LLM stub for the Translator; replies with a fixed translation."""
    from langchain_core.messages import AIMessage

    llm = MagicMock()
    llm.invoke.return_value = AIMessage(content="請造訪我們的網站。")
    return llm


@pytest.fixture
def generated_teachers():
    """Factory for raw generated teachers as the LLM would return them."""
    from booking_assistant.services.generator import GeneratedTeacher

    def _make(*specialties: str, rating: float = 4.5, price: float = 1200):
        return [
            GeneratedTeacher(
                name=f"Teacher {i}",
                specialty=specialty,
                experience="10 years",
                rating=rating,
                price_per_hour=price,
                available_time="Mon-Fri 9AM-6PM",
                location="Da'an District",
                description="Friendly and patient.",
            )
            for i, specialty in enumerate(specialties, start=1)
        ]

    return _make


@pytest.fixture
def generated_course():
    """Factory for one raw generated course."""
    from booking_assistant.services.generator import GeneratedCourse

    def _make(
        name: str = "Conversational English",
        *,
        start: datetime | None = None,
        hours: float = 2,
        price: float = 1200,
        max_students: int = 10,
        current_students: int = 3,
        level: str = "beginner",
    ):
        start = start or datetime(2026, 11, 2, 10, 0, tzinfo=UTC)
        return GeneratedCourse(
            name=name,
            level=level,
            start_time=start.isoformat(),
            end_time=(start + timedelta(hours=hours)).isoformat(),
            location="Xinyi District",
            price=price,
            max_students=max_students,
            current_students=current_students,
            description="Small-group class.",
        )

    return _make
