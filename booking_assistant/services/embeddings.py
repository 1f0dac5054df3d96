"""OpenAI embedding client used for FAQ ingestion and lookup."""

from __future__ import annotations

import logging

from openai import OpenAI

from booking_assistant.config import (
    EMBEDDING_DIMENSIONS,
    EMBEDDING_MODEL,
    GENERATION_TIMEOUT_SECONDS,
    OPENAI_API_KEY,
)
from booking_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)


class EmbeddingError(Exception):
    """Raised when an embedding cannot be produced or has the wrong shape."""


class EmbeddingClient:
    """Turns text into a fixed-dimension vector.

    Every vector is checked against ``dimensions``; a mismatch is an error
    rather than something to pad or truncate, because the FAQ table column
    has a fixed size.
    """

    def __init__(
        self,
        *,
        client: OpenAI | None = None,
        model: str = EMBEDDING_MODEL,
        dimensions: int = EMBEDDING_DIMENSIONS,
        timeout: float = GENERATION_TIMEOUT_SECONDS,
    ) -> None:
        self._client = client or OpenAI(api_key=OPENAI_API_KEY, timeout=timeout, max_retries=1)
        self._model = model
        self.dimensions = dimensions

    def embed(self, text: str) -> list[float]:
        if not text or not text.strip():
            raise EmbeddingError("Cannot embed empty text")
        try:
            with metrics.timed("openai", "embeddings.create"):
                response = self._client.embeddings.create(model=self._model, input=text)
        except Exception as exc:
            logger.warning("Embedding request failed: %s", exc)
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        vector = list(response.data[0].embedding)
        if len(vector) != self.dimensions:
            raise EmbeddingError(
                f"Embedding has {len(vector)} dimensions, expected {self.dimensions}"
            )
        return vector
