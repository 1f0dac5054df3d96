"""Booking-flow tools: the fixed catalog and its executor."""

from booking_assistant.tools.booking import BookingTools, ToolOutcome
from booking_assistant.tools.registry import LIST_TOOLS, PHASE_TOOLS, ToolName, llm_tools

__all__ = ["BookingTools", "LIST_TOOLS", "PHASE_TOOLS", "ToolName", "ToolOutcome", "llm_tools"]
