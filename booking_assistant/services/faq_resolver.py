"""FAQ lookup: embed the question, find the nearest stored entry, translate the answer."""

from __future__ import annotations

import logging

from booking_assistant.config import DEFAULT_LANGUAGE, NO_SIGNAL_LANGUAGE
from booking_assistant.language import detect_language
from booking_assistant.models import FAQAnswer
from booking_assistant.services.embeddings import EmbeddingClient, EmbeddingError
from booking_assistant.services.faq_store import FAQStore, FAQStoreError
from booking_assistant.services.translator import Translator

logger = logging.getLogger(__name__)


class FAQResolver:
    """Answer a question from the FAQ store, or report no match.

    ``max_distance`` is the largest cosine distance accepted as a match.
    With ``None`` the nearest entry is always returned however unrelated it
    is, which is how the lookup behaved before the cutoff existed.
    """

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: FAQStore,
        translator: Translator,
        *,
        max_distance: float | None = None,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._translator = translator
        self._max_distance = max_distance

    def resolve(self, query: str, target_language: str | None = None) -> FAQAnswer | None:
        """Return the translated answer, or ``None`` on no match or any failure."""
        if not query or not query.strip():
            return None

        try:
            embedding = self._embedder.embed(query)
            match = self._store.nearest(embedding)
        except (EmbeddingError, FAQStoreError) as exc:
            logger.warning("FAQ lookup failed, treating as no match: %s", exc)
            return None
        except Exception:
            logger.exception("Unexpected FAQ lookup failure, treating as no match")
            return None

        if match is None:
            return None
        if self._max_distance is not None and match.distance > self._max_distance:
            logger.debug(
                "Nearest FAQ %r too far (%.3f > %.3f)",
                match.message, match.distance, self._max_distance,
            )
            return None

        language = target_language or detect_language(
            query,
            default_language=DEFAULT_LANGUAGE,
            no_signal_language=NO_SIGNAL_LANGUAGE,
        ).language
        translated = self._translator.translate(match.response, language)
        if not translated.ok:
            logger.info("Serving untranslated FAQ answer: %s", translated.error)

        return FAQAnswer(
            original_message=match.message,
            translated_response=translated.unwrap_or(match.response),
        )

    def ingest(self, message: str, response: str) -> None:
        """Embed *message* and store the pair.

        Raises ``EmbeddingError`` or ``FAQStoreError``; the store writes the
        text pair and the vector atomically.
        """
        embedding = self._embedder.embed(message)
        self._store.add(message, response, embedding)
        logger.info("Ingested FAQ entry %r", message[:80])
