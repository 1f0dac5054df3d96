"""Storage for FAQ entries and their embeddings.

Two implementations share the same small interface:

* :class:`InMemoryFAQStore` — numpy cosine search, used when no
  ``DATABASE_URL`` is configured and in tests.
* :class:`PostgresFAQStore` — two tables (``faq_entries`` for the text pair,
  ``faq_embeddings`` for the pgvector column) queried with the ``<=>``
  cosine-distance operator.

Both return the single nearest entry with its cosine distance; deciding
whether that entry is close enough is the resolver's job.
"""

from __future__ import annotations

import logging
import threading
from typing import Protocol

import numpy as np
from psycopg_pool import ConnectionPool

from booking_assistant.models import FAQMatch
from booking_assistant.services.metrics import metrics

logger = logging.getLogger(__name__)


class FAQStoreError(Exception):
    """Raised when the FAQ store cannot be read or written."""


class FAQStore(Protocol):
    def add(self, message: str, response: str, embedding: list[float]) -> None: ...

    def nearest(self, embedding: list[float]) -> FAQMatch | None: ...

    def count(self) -> int: ...


# ── In-memory ────────────────────────────────────────────────────────


class InMemoryFAQStore:
    """Entries kept in a list; vectors kept pre-normalised in one matrix."""

    def __init__(self, dimensions: int) -> None:
        self._dimensions = dimensions
        self._entries: list[tuple[str, str]] = []
        self._matrix = np.empty((0, dimensions), dtype=np.float32)
        self._lock = threading.Lock()

    def add(self, message: str, response: str, embedding: list[float]) -> None:
        vector = np.asarray(embedding, dtype=np.float32)
        if vector.shape != (self._dimensions,):
            raise FAQStoreError(
                f"Embedding shape {vector.shape} does not match ({self._dimensions},)"
            )
        norm = np.linalg.norm(vector)
        if norm == 0:
            raise FAQStoreError("Cannot store a zero vector")
        with self._lock:
            self._matrix = np.vstack([self._matrix, vector / norm])
            self._entries.append((message, response))

    def nearest(self, embedding: list[float]) -> FAQMatch | None:
        with self._lock:
            if not self._entries:
                return None
            matrix = self._matrix
            entries = list(self._entries)

        query = np.asarray(embedding, dtype=np.float32)
        norm = np.linalg.norm(query) + 1e-10
        similarities = matrix @ (query / norm)
        best = int(np.argmax(similarities))
        message, response = entries[best]
        return FAQMatch(
            message=message,
            response=response,
            distance=float(1.0 - similarities[best]),
        )

    def count(self) -> int:
        return len(self._entries)


# ── Postgres / pgvector ─────────────────────────────────────────────

_SCHEMA_SQL = """
CREATE EXTENSION IF NOT EXISTS vector;
CREATE TABLE IF NOT EXISTS faq_entries (
    id SERIAL PRIMARY KEY,
    message TEXT NOT NULL,
    response TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS faq_embeddings (
    id SERIAL PRIMARY KEY,
    faq_id INTEGER NOT NULL REFERENCES faq_entries(id) ON DELETE CASCADE,
    embedding vector({dimensions}) NOT NULL
);
"""

_NEAREST_SQL = (
    "SELECT e.message, e.response, (v.embedding <=> %s::vector) AS distance "
    "FROM faq_embeddings v "
    "JOIN faq_entries e ON v.faq_id = e.id "
    "ORDER BY distance LIMIT 1"
)


def _vector_literal(embedding: list[float]) -> str:
    """pgvector text format: ``[0.1,0.2,...]``."""
    return "[" + ",".join(repr(float(x)) for x in embedding) + "]"


class PostgresFAQStore:
    def __init__(self, pool: ConnectionPool, dimensions: int) -> None:
        self._pool = pool
        self._dimensions = dimensions

    @classmethod
    def connect(cls, dsn: str, dimensions: int, max_size: int = 5) -> PostgresFAQStore:
        pool = ConnectionPool(dsn, min_size=1, max_size=max_size, open=True)
        return cls(pool, dimensions)

    def create_schema(self) -> None:
        try:
            with self._pool.connection() as conn:
                conn.execute(_SCHEMA_SQL.format(dimensions=int(self._dimensions)))
        except Exception as exc:
            raise FAQStoreError(f"Failed to create FAQ schema: {exc}") from exc

    def add(self, message: str, response: str, embedding: list[float]) -> None:
        """Insert the text pair and its vector in one transaction."""
        if len(embedding) != self._dimensions:
            raise FAQStoreError(
                f"Embedding has {len(embedding)} dimensions, expected {self._dimensions}"
            )
        try:
            with metrics.timed("postgres", "faq_insert"), self._pool.connection() as conn:
                with conn.transaction():
                    row = conn.execute(
                        "INSERT INTO faq_entries (message, response) VALUES (%s, %s) RETURNING id",
                        (message, response),
                    ).fetchone()
                    conn.execute(
                        "INSERT INTO faq_embeddings (faq_id, embedding) VALUES (%s, %s::vector)",
                        (row[0], _vector_literal(embedding)),
                    )
        except Exception as exc:
            logger.error("FAQ insert rolled back: %s", exc)
            raise FAQStoreError(f"Failed to store FAQ entry: {exc}") from exc

    def nearest(self, embedding: list[float]) -> FAQMatch | None:
        try:
            with metrics.timed("postgres", "faq_nearest"), self._pool.connection() as conn:
                row = conn.execute(_NEAREST_SQL, (_vector_literal(embedding),)).fetchone()
        except Exception as exc:
            raise FAQStoreError(f"FAQ lookup failed: {exc}") from exc
        if row is None:
            return None
        return FAQMatch(message=row[0], response=row[1], distance=float(row[2]))

    def count(self) -> int:
        try:
            with self._pool.connection() as conn:
                return conn.execute("SELECT count(*) FROM faq_entries").fetchone()[0]
        except Exception as exc:
            raise FAQStoreError(f"FAQ count failed: {exc}") from exc

    def close(self) -> None:
        self._pool.close()
