from booking_assistant.conversation.state import (
    CachePolicy,
    ConversationState,
    FlowPhase,
)
from booking_assistant.conversation.store import ConversationStore, EvictionPolicy

__all__ = [
    "CachePolicy",
    "ConversationState",
    "ConversationStore",
    "EvictionPolicy",
    "FlowPhase",
]
