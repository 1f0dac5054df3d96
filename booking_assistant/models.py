"""Domain records exchanged between the tools, the stores and the chat UI.

Field names serialise in camelCase (``pricePerHour``, ``teacherId``) because
that is the shape the UI cards consume; Python code uses snake_case.
"""

from __future__ import annotations

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TEACHER_ID_RE = re.compile(r"^teacher_(\d{3,})$")

RATING_MIN = 1.0
RATING_MAX = 5.0


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def dump(self) -> dict:
        """JSON-ready dict in the camelCase wire shape."""
        return self.model_dump(mode="json", by_alias=True)


class Teacher(CamelModel):
    id: str
    name: str
    specialty: str
    experience: str
    rating: float = Field(ge=RATING_MIN, le=RATING_MAX)
    price_per_hour: int = Field(gt=0)
    available_time: str
    location: str
    description: str


class TeacherDetails(Teacher):
    """A teacher plus the fields derived from its specialty on every request."""

    education: str
    achievements: list[str]
    teaching_style: str


class Course(CamelModel):
    id: str
    teacher_id: str
    name: str
    level: str
    start_time: datetime
    end_time: datetime
    location: str
    price: int
    max_students: int = Field(ge=1)
    current_students: int = Field(ge=0)
    description: str = ""

    @model_validator(mode="after")
    def _check_invariants(self) -> Course:
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        if self.current_students > self.max_students:
            raise ValueError("current_students cannot exceed max_students")
        return self

    @property
    def is_available(self) -> bool:
        return self.current_students < self.max_students


class CourseDetails(CamelModel):
    """Snapshot of the selected course carried by a reservation."""

    course_name: str = Field(min_length=1)
    teacher_name: str = Field(min_length=1)
    start_time: str = Field(min_length=1)
    end_time: str = Field(min_length=1)
    location: str
    price: float = Field(ge=0)


class Pricing(CamelModel):
    base_price: int
    material_fee: int
    discount_applied: bool = False
    discount_amount: int = 0

    @property
    def total_price(self) -> int:
        return self.base_price + self.material_fee - self.discount_amount


class Reservation(CamelModel):
    id: str
    course_id: str
    teacher_id: str
    student_name: str
    course_details: CourseDetails
    base_price: int
    material_fee: int
    discount_amount: int = 0
    total_price: int
    user_id: str
    created_at: datetime


class FAQAnswer(CamelModel):
    original_message: str
    translated_response: str


class FAQMatch(BaseModel):
    """Nearest stored FAQ entry and its distance to the query."""

    message: str
    response: str
    distance: float
