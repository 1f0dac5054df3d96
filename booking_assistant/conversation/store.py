"""Keyed store of conversation states with time-boxed lifetime.

Eviction policies
─────────────────
• ``fixed`` — the deadline is set when the state is created and later
  turns do not move it, so state disappears one TTL after creation even if
  the user is still chatting.  The next turn then starts from a fresh
  state (language is detected again).
• ``sliding`` — every completed turn pushes the deadline out by one TTL.

Expired entries are dropped lazily on access and by ``evict_expired``; the
optional ``on_evict`` callback is told each evicted id so companion data
(the checkpointed message history) can go with it.
Explicit ``delete`` takes effect immediately, whatever the deadline.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from enum import Enum

from booking_assistant.conversation.state import ConversationState

logger = logging.getLogger(__name__)

DEFAULT_TTL_SECONDS = 3600.0


class EvictionPolicy(str, Enum):
    FIXED = "fixed"
    SLIDING = "sliding"


class ConversationStore:
    def __init__(
        self,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        policy: EvictionPolicy = EvictionPolicy.FIXED,
        clock: Callable[[], float] = time.monotonic,
        on_evict: Callable[[str], None] | None = None,
    ) -> None:
        self._ttl = ttl_seconds
        self._policy = policy
        self._clock = clock
        self._on_evict = on_evict
        self._states: dict[str, ConversationState] = {}
        self._deadlines: dict[str, float] = {}
        self._lock = threading.Lock()

    def _expired(self, conversation_id: str, now: float) -> bool:
        deadline = self._deadlines.get(conversation_id)
        return deadline is not None and now >= deadline

    def _drop(self, conversation_id: str) -> bool:
        self._deadlines.pop(conversation_id, None)
        return self._states.pop(conversation_id, None) is not None

    def _notify(self, evicted: list[str]) -> None:
        if self._on_evict is None:
            return
        for conversation_id in evicted:
            try:
                self._on_evict(conversation_id)
            except Exception:
                logger.exception("Eviction callback failed for %s", conversation_id)

    def get(self, conversation_id: str) -> ConversationState | None:
        with self._lock:
            expired = self._expired(conversation_id, self._clock())
            if expired:
                self._drop(conversation_id)
            state = None if expired else self._states.get(conversation_id)
        if expired:
            logger.debug("Conversation %s expired", conversation_id)
            self._notify([conversation_id])
        return state

    def get_or_create(self, conversation_id: str) -> ConversationState:
        with self._lock:
            now = self._clock()
            # An expired id is reused straight away, so its companions stay
            if self._expired(conversation_id, now):
                self._drop(conversation_id)
            state = self._states.get(conversation_id)
            if state is None:
                state = ConversationState(id=conversation_id, created_at=now)
                self._states[conversation_id] = state
                self._deadlines[conversation_id] = now + self._ttl
                logger.info("Created conversation state %s", conversation_id)
            return state

    def put(self, state: ConversationState) -> None:
        with self._lock:
            self._states[state.id] = state
            self._deadlines.setdefault(state.id, self._clock() + self._ttl)

    def delete(self, conversation_id: str) -> bool:
        """Remove a conversation now.  Returns ``True`` if it existed."""
        with self._lock:
            existed = self._drop(conversation_id)
        if existed:
            logger.info("Deleted conversation state %s", conversation_id)
        return existed

    def schedule_eviction(self, conversation_id: str) -> float | None:
        """Refresh the deadline after a completed turn; returns the deadline in force."""
        with self._lock:
            if conversation_id not in self._states:
                return None
            deadline = self._clock() + self._ttl
            if self._policy is EvictionPolicy.FIXED:
                deadline = self._deadlines.setdefault(conversation_id, deadline)
            else:
                self._deadlines[conversation_id] = deadline
            return deadline

    def evict_expired(self) -> int:
        with self._lock:
            now = self._clock()
            expired = [cid for cid in self._deadlines if now >= self._deadlines[cid]]
            for cid in expired:
                self._drop(cid)
        if expired:
            logger.info("Evicted %d expired conversation(s)", len(expired))
            self._notify(expired)
        return len(expired)

    def __len__(self) -> int:
        return len(self._states)

    def __contains__(self, conversation_id: str) -> bool:
        return self.get(conversation_id) is not None
