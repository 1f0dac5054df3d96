"""Wiring of the assistant's long-lived collaborators.

``build_runtime`` is called once by the FastAPI lifespan and by the CLI;
tests construct :class:`AssistantRuntime` directly with fakes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from langgraph.checkpoint.memory import MemorySaver

from booking_assistant.agent import create_booking_agent
from booking_assistant.config import (
    CONVERSATION_TTL_SECONDS,
    DATABASE_POOL_SIZE,
    DATABASE_URL,
    EMBEDDING_DIMENSIONS,
    EVICTION_POLICY,
    FAQ_MAX_DISTANCE,
)
from booking_assistant.conversation import ConversationStore, EvictionPolicy
from booking_assistant.services.embeddings import EmbeddingClient
from booking_assistant.services.faq_resolver import FAQResolver
from booking_assistant.services.faq_store import FAQStore, InMemoryFAQStore, PostgresFAQStore
from booking_assistant.services.generator import CatalogGenerator
from booking_assistant.services.reservations import ChatStore, ReservationStore
from booking_assistant.services.translator import Translator
from booking_assistant.tools import BookingTools

logger = logging.getLogger(__name__)


@dataclass
class AssistantRuntime:
    agent: Any
    checkpointer: MemorySaver
    conversations: ConversationStore
    chats: ChatStore
    reservations: ReservationStore
    faq_resolver: FAQResolver
    faq_store: FAQStore

    def delete_chat(self, chat_id: str, user_id: str) -> None:
        """Delete a chat and everything remembered about it.

        Raises ``NotFoundError`` / ``PermissionDeniedError`` from the chat
        store before anything is removed.
        """
        self.chats.delete(chat_id, user_id)
        self.conversations.delete(chat_id)
        self.checkpointer.delete_thread(chat_id)

    def close(self) -> None:
        close = getattr(self.faq_store, "close", None)
        if close is not None:
            close()


def _build_faq_store() -> FAQStore:
    if DATABASE_URL:
        logger.info("Using Postgres FAQ store")
        store = PostgresFAQStore.connect(DATABASE_URL, EMBEDDING_DIMENSIONS, max_size=DATABASE_POOL_SIZE)
        store.create_schema()
        return store
    logger.info("DATABASE_URL not set; using in-memory FAQ store")
    return InMemoryFAQStore(EMBEDDING_DIMENSIONS)


def build_runtime() -> AssistantRuntime:
    faq_store = _build_faq_store()
    faq_resolver = FAQResolver(
        EmbeddingClient(),
        faq_store,
        Translator(),
        max_distance=FAQ_MAX_DISTANCE,
    )
    checkpointer = MemorySaver()
    # Message history goes with the booking state when it expires
    conversations = ConversationStore(
        ttl_seconds=CONVERSATION_TTL_SECONDS,
        policy=EvictionPolicy(EVICTION_POLICY),
        on_evict=checkpointer.delete_thread,
    )
    reservations = ReservationStore()
    tools = BookingTools(
        generator=CatalogGenerator(),
        reservations=reservations,
        faq_resolver=faq_resolver,
    )
    agent = create_booking_agent(
        conversations=conversations,
        tools=tools,
        faq_resolver=faq_resolver,
        checkpointer=checkpointer,
    )
    return AssistantRuntime(
        agent=agent,
        checkpointer=checkpointer,
        conversations=conversations,
        chats=ChatStore(),
        reservations=reservations,
        faq_resolver=faq_resolver,
        faq_store=faq_store,
    )
