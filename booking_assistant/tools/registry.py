"""The fixed catalog of tools the assistant may call.

Each tool is a :class:`ToolName` member paired with a pydantic parameter
model.  Raw tool calls from the LLM are parsed into a :class:`ToolCommand`
before anything runs; a call with an unknown name or malformed arguments
becomes a :class:`ToolRejection` and is never coerced into a valid call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, ValidationError

from booking_assistant.models import CourseDetails


class ToolName(str, Enum):
    GET_FAQ_ANSWER = "getFAQAnswer"
    LIST_TEACHERS = "listTeachers"
    GET_TEACHER_DETAILS = "getTeacherDetails"
    LIST_COURSES = "listCourses"
    CREATE_RESERVATION = "createReservation"
    AUTHORIZE_PAYMENT = "authorizePayment"
    VERIFY_PAYMENT = "verifyPayment"
    DISPLAY_RESERVATION_CONFIRMATION = "displayReservationConfirmation"


# Tools that render a flow step in the UI; at most one of these per turn.
PHASE_TOOLS = frozenset({
    ToolName.LIST_TEACHERS,
    ToolName.GET_TEACHER_DETAILS,
    ToolName.LIST_COURSES,
    ToolName.CREATE_RESERVATION,
    ToolName.AUTHORIZE_PAYMENT,
    ToolName.DISPLAY_RESERVATION_CONFIRMATION,
})

# Tools whose output is shown as a bare list, with no accompanying prose.
LIST_TOOLS = frozenset({ToolName.LIST_TEACHERS, ToolName.LIST_COURSES})


class GetFAQAnswerArgs(BaseModel):
    query: str = Field(min_length=1, description="The user's question")


class ListTeachersArgs(BaseModel):
    subject: str | None = Field(default=None, description="Language the user wants to learn")
    targetLanguage: str | None = Field(default=None, description="Language tag for generated content")


class GetTeacherDetailsArgs(BaseModel):
    teacherId: str = Field(min_length=1, description="Teacher ID, e.g. teacher_001")
    targetLanguage: str | None = Field(default=None, description="Language tag for generated content")


class ListCoursesArgs(BaseModel):
    teacherId: str = Field(min_length=1, description="Teacher ID")
    teacherSpecialty: str = Field(min_length=1, description="The teacher's specialty")
    targetLanguage: str | None = Field(default=None, description="Language tag for generated content")


class CreateReservationArgs(BaseModel):
    courseId: str = Field(min_length=1, description="Course ID")
    teacherId: str = Field(min_length=1, description="Teacher ID")
    studentName: str = Field(min_length=1, description="Student name exactly as the user typed it")
    courseDetails: CourseDetails


class ReservationIdArgs(BaseModel):
    reservationId: str = Field(min_length=1, description="Reservation ID")


class DisplayConfirmationArgs(BaseModel):
    reservationId: str = Field(min_length=1, description="Reservation ID")
    studentName: str = Field(min_length=1, description="Student name")
    courseDetails: CourseDetails


@dataclass(frozen=True)
class ToolSpec:
    name: ToolName
    description: str
    args_model: type[BaseModel]

    def as_llm_tool(self) -> dict[str, Any]:
        """Anthropic tool definition for ``bind_tools``."""
        return {
            "name": self.name.value,
            "description": self.description,
            "input_schema": self.args_model.model_json_schema(by_alias=True),
        }


TOOL_SPECS: dict[ToolName, ToolSpec] = {
    spec.name: spec
    for spec in (
        ToolSpec(
            ToolName.GET_FAQ_ANSWER,
            "Look up the user's question in the FAQ database. Returns the answer or null.",
            GetFAQAnswerArgs,
        ),
        ToolSpec(
            ToolName.LIST_TEACHERS,
            "List available teachers for the language the user wants to learn.",
            ListTeachersArgs,
        ),
        ToolSpec(
            ToolName.GET_TEACHER_DETAILS,
            "Show the profile of one teacher from the list.",
            GetTeacherDetailsArgs,
        ),
        ToolSpec(
            ToolName.LIST_COURSES,
            "List the bookable courses of a teacher, for that teacher's specialty only.",
            ListCoursesArgs,
        ),
        ToolSpec(
            ToolName.CREATE_RESERVATION,
            "Create a reservation for the selected course once the student's name is known.",
            CreateReservationArgs,
        ),
        ToolSpec(
            ToolName.AUTHORIZE_PAYMENT,
            "Show the payment form for a reservation.",
            ReservationIdArgs,
        ),
        ToolSpec(
            ToolName.VERIFY_PAYMENT,
            "Check whether a reservation has been paid.",
            ReservationIdArgs,
        ),
        ToolSpec(
            ToolName.DISPLAY_RESERVATION_CONFIRMATION,
            "Show the reservation confirmation. Only after verifyPayment reported payment.",
            DisplayConfirmationArgs,
        ),
    )
}


@dataclass(frozen=True)
class ToolCommand:
    name: ToolName
    args: BaseModel
    call_id: str


@dataclass(frozen=True)
class ToolRejection:
    name: str
    call_id: str
    error: str

    def payload(self) -> dict[str, str]:
        return {"error": self.error}


def llm_tools() -> list[dict[str, Any]]:
    return [spec.as_llm_tool() for spec in TOOL_SPECS.values()]


def parse_tool_call(call: dict[str, Any]) -> ToolCommand | ToolRejection:
    """Turn a raw ``{"name", "args", "id"}`` tool call into a typed command."""
    raw_name = call.get("name", "")
    call_id = call.get("id") or ""
    try:
        name = ToolName(raw_name)
    except ValueError:
        return ToolRejection(raw_name, call_id, f"Unknown tool: {raw_name}")

    try:
        args = TOOL_SPECS[name].args_model.model_validate(call.get("args") or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'args'}: {err['msg']}"
            for err in exc.errors()
        )
        return ToolRejection(raw_name, call_id, f"Invalid parameters for {raw_name}: {problems}")

    return ToolCommand(name=name, args=args, call_id=call_id)
