"""In-memory reservation and chat-ownership stores.

These stand in for the application database the chat UI shares.  Only the
operations the booking flow and the HTTP API need are modelled: insert and
read a reservation, flip its payment flag, and remember which user owns a
chat so deletion can be authorised.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass

from booking_assistant.models import Reservation

logger = logging.getLogger(__name__)


class NotFoundError(Exception):
    """Raised when a reservation or chat id is unknown."""


class PermissionDeniedError(Exception):
    """Raised when the caller does not own the record."""


@dataclass
class _ReservationRecord:
    reservation: Reservation
    has_completed_payment: bool = False


class ReservationStore:
    def __init__(self) -> None:
        self._records: dict[str, _ReservationRecord] = {}
        self._lock = threading.Lock()

    def create(self, reservation: Reservation) -> Reservation:
        """Insert a new reservation; ids are never overwritten."""
        with self._lock:
            if reservation.id in self._records:
                raise ValueError(f"Reservation {reservation.id} already exists")
            self._records[reservation.id] = _ReservationRecord(reservation)
        logger.info("Reservation %s created for user %s", reservation.id, reservation.user_id)
        return reservation

    def get(self, reservation_id: str) -> Reservation:
        record = self._records.get(reservation_id)
        if record is None:
            raise NotFoundError(f"Reservation {reservation_id} not found")
        return record.reservation

    def has_completed_payment(self, reservation_id: str) -> bool:
        """Payment flag of a reservation; unknown ids read as unpaid."""
        record = self._records.get(reservation_id)
        return bool(record and record.has_completed_payment)

    def mark_paid(self, reservation_id: str, user_id: str) -> Reservation:
        with self._lock:
            record = self._records.get(reservation_id)
            if record is None:
                raise NotFoundError(f"Reservation {reservation_id} not found")
            if record.reservation.user_id != user_id:
                raise PermissionDeniedError(f"Reservation {reservation_id} belongs to another user")
            record.has_completed_payment = True
        logger.info("Reservation %s marked as paid", reservation_id)
        return record.reservation

    def count(self) -> int:
        return len(self._records)


class ChatStore:
    """Remembers the owner of every chat that completed a turn."""

    def __init__(self) -> None:
        self._owners: dict[str, str] = {}
        self._lock = threading.Lock()

    def save(self, chat_id: str, user_id: str) -> None:
        with self._lock:
            self._owners.setdefault(chat_id, user_id)

    def owner(self, chat_id: str) -> str:
        owner = self._owners.get(chat_id)
        if owner is None:
            raise NotFoundError(f"Chat {chat_id} not found")
        return owner

    def delete(self, chat_id: str, user_id: str) -> None:
        """Delete a chat owned by *user_id*.

        Raises ``NotFoundError`` for an unknown id and
        ``PermissionDeniedError`` when another user owns it.
        """
        with self._lock:
            owner = self._owners.get(chat_id)
            if owner is None:
                raise NotFoundError(f"Chat {chat_id} not found")
            if owner != user_id:
                raise PermissionDeniedError(f"Chat {chat_id} belongs to another user")
            del self._owners[chat_id]
