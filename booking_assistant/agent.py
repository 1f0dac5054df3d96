"""LangGraph agent for the course-booking assistant.

Architecture:
  The agent is a LangGraph StateGraph with five nodes:

    1. **prepare**   — loads the conversation state, detects the language on
                       the first turn and notices when the user picks a
                       course from the list on screen
    2. **faq**       — offers every message to the FAQ resolver first
    3. **chatbot**   — Claude with the booking tools bound
    4. **tools**     — parses, guards and runs the requested tool calls
    5. **finalize**  — applies the output-shape rules, schedules eviction
                       and sweeps expired conversations

  Routing:
    prepare → faq → (answered?)     → finalize → END
                  → (no answer?)    → chatbot → (tool calls?)    → tools → chatbot (loop)
                                              → (no tool calls?) → finalize → END

  Memory:
    Message history lives in the MemorySaver checkpoint, one thread per
    conversation id.  Booking data (language, teacher/course caches, flow
    phase) lives in the ConversationStore so it can expire on its own
    schedule and be deleted with the chat.
"""

from __future__ import annotations

import json
import logging
from typing import Annotated, Any

from langchain_anthropic import ChatAnthropic
from langchain_core.messages import AIMessage, AnyMessage, HumanMessage, SystemMessage, ToolMessage
from langchain_core.runnables import RunnableConfig
from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph
from langgraph.graph.message import add_messages
from typing_extensions import TypedDict

from booking_assistant.config import (
    ANTHROPIC_API_KEY,
    DEFAULT_LANGUAGE,
    GENERATION_TIMEOUT_SECONDS,
    MODEL_NAME,
    NO_SIGNAL_LANGUAGE,
)
from booking_assistant.conversation import ConversationState, ConversationStore
from booking_assistant.conversation.state import CourseSelected, NamePending
from booking_assistant.language import detect_language
from booking_assistant.localized import name_prompt
from booking_assistant.prompts import get_system_prompt
from booking_assistant.services.faq_resolver import FAQResolver
from booking_assistant.services.metrics import metrics
from booking_assistant.tools import LIST_TOOLS, BookingTools, llm_tools

logger = logging.getLogger(__name__)

_LIST_TOOL_NAMES = frozenset(tool.value for tool in LIST_TOOLS)


# ── State schema ─────────────────────────────────────────────────────


class AgentState(TypedDict):
    """The state that flows through the graph for one turn.

    ``messages`` uses the ``add_messages`` reducer so nodes append to the
    history (or replace a message by reusing its id).  The other keys are
    per-turn plumbing and are reset by ``prepare``:

    * ``events``        — UI events produced by tools this turn
    * ``rendered_tool`` — the flow-step tool already shown this turn
    * ``faq_answered``  — the FAQ node produced the reply
    * ``reply``         — the text the user sees, set by ``finalize``
    """

    messages: Annotated[list[AnyMessage], add_messages]
    events: list[dict[str, Any]]
    rendered_tool: str | None
    faq_answered: bool
    reply: str


# ── Helpers ──────────────────────────────────────────────────────────


def _thread_id(config: RunnableConfig) -> str:
    return config["configurable"]["thread_id"]


def _user_id(config: RunnableConfig) -> str | None:
    return config["configurable"].get("user_id")


def _last_human_text(messages: list[AnyMessage]) -> str:
    for msg in reversed(messages):
        if isinstance(msg, HumanMessage):
            return message_text(msg)
    return ""


def message_text(message: AnyMessage) -> str:
    """Plain text of a message whose content may be a list of blocks."""
    content = message.content
    if isinstance(content, str):
        return content
    return "".join(
        block.get("text", "") if isinstance(block, dict) else str(block)
        for block in content
        if not isinstance(block, dict) or block.get("type") == "text"
    )


# ── LLM builder ──────────────────────────────────────────────────────


def _build_llm() -> ChatAnthropic:
    """Build the chat LLM with the booking tools bound."""
    llm = ChatAnthropic(
        model=MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.1,
        max_tokens=1024,
        timeout=GENERATION_TIMEOUT_SECONDS * 4,
    )
    return llm.bind_tools(llm_tools())


# ── Graph assembly ───────────────────────────────────────────────────


def create_booking_agent(
    *,
    conversations: ConversationStore,
    tools: BookingTools,
    faq_resolver: FAQResolver,
    checkpointer: MemorySaver | None = None,
    llm=None,
):
    """Build and compile the booking agent.

    Returns a compiled graph that can be invoked with:
        graph.invoke(
            {"messages": [HumanMessage(content="...")]},
            config={"configurable": {"thread_id": "chat-123", "user_id": "u-1"}},
        )
    ``user_id`` is optional; without it the user can chat and browse but
    not reserve.
    """
    llm_with_tools = llm or _build_llm()

    def _conversation(config: RunnableConfig) -> ConversationState:
        return conversations.get_or_create(_thread_id(config))

    # ── Node: prepare ────────────────────────────────────────────────

    def prepare_node(state: AgentState, config: RunnableConfig) -> dict:
        conversation = _conversation(config)
        text = _last_human_text(state["messages"])

        if conversation.language is None:
            detected = detect_language(
                text,
                default_language=DEFAULT_LANGUAGE,
                no_signal_language=NO_SIGNAL_LANGUAGE,
            )
            conversation.set_language(detected.language)
            logger.info(
                "Conversation %s language: %s (confidence %.2f)",
                conversation.id, detected.language, detected.confidence,
            )

        course = conversation.match_listed_course(text)
        if course is not None:
            conversation.advance(CourseSelected(course=course))

        return {"events": [], "rendered_tool": None, "faq_answered": False, "reply": ""}

    # ── Node: faq ────────────────────────────────────────────────────

    def faq_node(state: AgentState, config: RunnableConfig) -> dict:
        conversation = _conversation(config)
        answer = faq_resolver.resolve(_last_human_text(state["messages"]), conversation.language)
        if answer is None:
            return {"faq_answered": False}
        logger.debug("FAQ answered conversation %s: %r", conversation.id, answer.original_message)
        return {
            "messages": [AIMessage(content=answer.translated_response)],
            "faq_answered": True,
        }

    # ── Node: chatbot ────────────────────────────────────────────────

    def chatbot_node(state: AgentState, config: RunnableConfig) -> dict:
        conversation = _conversation(config)
        system = SystemMessage(content=get_system_prompt(conversation))
        with metrics.timed("anthropic", "llm_invoke"):
            response = llm_with_tools.invoke([system] + state["messages"])
        return {"messages": [response]}

    # ── Node: tools ──────────────────────────────────────────────────

    def tools_node(state: AgentState, config: RunnableConfig) -> dict:
        conversation = _conversation(config)
        last_message = state["messages"][-1]
        outcomes, rendered_tool = tools.dispatch(
            last_message.tool_calls,
            conversation,
            user_id=_user_id(config),
            rendered_tool=state.get("rendered_tool"),
        )
        tool_messages = [
            ToolMessage(
                content=json.dumps(outcome.payload, ensure_ascii=False),
                tool_call_id=outcome.call_id,
                name=outcome.name,
                status="success" if outcome.ok else "error",
            )
            for outcome in outcomes
        ]
        events = list(state.get("events") or [])
        events.extend(outcome.ui_event() for outcome in outcomes if outcome.ok)
        return {"messages": tool_messages, "events": events, "rendered_tool": rendered_tool}

    # ── Node: finalize ───────────────────────────────────────────────

    def finalize_node(state: AgentState, config: RunnableConfig) -> dict:
        conversation = _conversation(config)
        last_message = state["messages"][-1]
        reply = message_text(last_message)
        updates: dict[str, Any] = {}

        if not state.get("faq_answered"):
            phase = conversation.phase
            if state.get("rendered_tool") in _LIST_TOOL_NAMES:
                # A teacher or course list is shown on its own
                reply = ""
            elif isinstance(phase, CourseSelected) and not getattr(last_message, "tool_calls", None):
                reply = name_prompt(conversation.language or DEFAULT_LANGUAGE)
                updates["messages"] = [AIMessage(content=reply, id=last_message.id)]
                conversation.advance(NamePending(course=phase.course))

        conversations.schedule_eviction(conversation.id)
        conversations.evict_expired()
        updates["reply"] = reply
        return updates

    # ── Conditional edges ────────────────────────────────────────────

    def route_after_faq(state: AgentState) -> str:
        return "finalize" if state.get("faq_answered") else "chatbot"

    def should_use_tools(state: AgentState) -> str:
        last_message = state["messages"][-1]
        if getattr(last_message, "tool_calls", None):
            return "tools"
        return "finalize"

    graph = StateGraph(AgentState)

    graph.add_node("prepare", prepare_node)
    graph.add_node("faq", faq_node)
    graph.add_node("chatbot", chatbot_node)
    graph.add_node("tools", tools_node)
    graph.add_node("finalize", finalize_node)

    graph.set_entry_point("prepare")
    graph.add_edge("prepare", "faq")
    graph.add_conditional_edges(
        "faq", route_after_faq, {"finalize": "finalize", "chatbot": "chatbot"},
    )
    graph.add_conditional_edges(
        "chatbot", should_use_tools, {"tools": "tools", "finalize": "finalize"},
    )
    graph.add_edge("tools", "chatbot")
    graph.add_edge("finalize", END)

    compiled = graph.compile(checkpointer=checkpointer or MemorySaver())
    logger.debug("Booking agent compiled — model: %s", MODEL_NAME)
    return compiled
