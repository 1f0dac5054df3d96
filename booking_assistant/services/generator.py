"""Structured LLM generation of teacher and course listings.

The generator only produces raw candidates.  Id assignment, specialty
filtering and the course invariants are enforced by the booking tools, so
nothing the model returns reaches the UI unchecked.
"""

from __future__ import annotations

import logging

from langchain_anthropic import ChatAnthropic
from pydantic import BaseModel, Field

from booking_assistant.config import (
    ANTHROPIC_API_KEY,
    COURSE_PRICE_MAX,
    COURSE_PRICE_MIN,
    FAST_MODEL_NAME,
    GENERATION_TIMEOUT_SECONDS,
)
from booking_assistant.services.metrics import metrics
from booking_assistant.services.result import Result

logger = logging.getLogger(__name__)

_LANGUAGE_NAMES = {
    "zh-TW": "Traditional Chinese (Taiwan)",
    "en": "English",
    "ja": "Japanese",
    "ko": "Korean",
}


class GeneratedTeacher(BaseModel):
    name: str = Field(description="Realistic full name, unique within the list")
    specialty: str = Field(description="Subject taught: English, Japanese or Korean")
    experience: str = Field(description="Teaching experience summary")
    rating: float = Field(description="Rating between 1 and 5")
    price_per_hour: float = Field(description="Hourly price in NT$")
    available_time: str = Field(description="Teaching hours, e.g. Mon-Fri 9AM-8PM")
    location: str = Field(description="Teaching location, a Taipei district")
    description: str = Field(description="Short teacher introduction")


class TeacherBatch(BaseModel):
    teachers: list[GeneratedTeacher]


class GeneratedCourse(BaseModel):
    name: str = Field(description="Course name matching the specialty")
    level: str = Field(description="beginner, intermediate or advanced")
    start_time: str = Field(description="ISO 8601 start time")
    end_time: str = Field(description="ISO 8601 end time, after start_time")
    location: str = Field(description="Classroom location, a Taipei district")
    price: float = Field(description="Course price in NT$")
    max_students: int = Field(description="Maximum number of students")
    current_students: int = Field(description="Students already enrolled")
    description: str = Field(description="Short course description")


class CourseBatch(BaseModel):
    courses: list[GeneratedCourse]


TEACHERS_PROMPT = """Generate {count} language teachers{subject_clause}.
- Teachers teach English, Japanese or Korean{only_clause}.
- Locations are Taipei districts.
- Prices are NT$ {price_min}-{price_max} per hour.
- Names are realistic and unique.
- Write every text field in {language}."""

COURSES_PROMPT = """Generate 3 to 5 upcoming {specialty} courses for teacher {teacher_id}.
- Only {specialty} courses.
- Mix beginner, intermediate and advanced levels and different time slots after {today}.
- Each course ends after it starts; sessions last 1-3 hours.
- Prices are NT$ {price_min}-{price_max}.
- Locations are Taipei districts.
- Enrolment never exceeds capacity.
- Write names, locations and descriptions in {language}."""


def _build_generation_llm() -> ChatAnthropic:
    return ChatAnthropic(
        model=FAST_MODEL_NAME,
        api_key=ANTHROPIC_API_KEY,
        temperature=0.7,
        max_tokens=4096,
        timeout=GENERATION_TIMEOUT_SECONDS,
    )


class CatalogGenerator:
    def __init__(self, llm=None) -> None:
        llm = llm or _build_generation_llm()
        self._teacher_llm = llm.with_structured_output(TeacherBatch)
        self._course_llm = llm.with_structured_output(CourseBatch)

    def generate_teachers(
        self,
        *,
        language: str,
        subject: str | None = None,
        count: int = 4,
    ) -> Result[list[GeneratedTeacher]]:
        prompt = TEACHERS_PROMPT.format(
            count=count,
            subject_clause=f" specializing in {subject}" if subject else "",
            only_clause=f"; every teacher teaches {subject} only" if subject else "",
            price_min=COURSE_PRICE_MIN,
            price_max=COURSE_PRICE_MAX,
            language=_LANGUAGE_NAMES.get(language, language),
        )
        try:
            with metrics.timed("anthropic", "generate_teachers"):
                batch = self._teacher_llm.invoke(prompt)
        except Exception as exc:
            logger.warning("Teacher generation failed: %s", exc)
            return Result.failure(f"teacher generation failed: {type(exc).__name__}")
        return Result.success(list(batch.teachers))

    def generate_courses(
        self,
        *,
        teacher_id: str,
        specialty: str,
        language: str,
        today: str,
    ) -> Result[list[GeneratedCourse]]:
        prompt = COURSES_PROMPT.format(
            specialty=specialty,
            teacher_id=teacher_id,
            today=today,
            price_min=COURSE_PRICE_MIN,
            price_max=COURSE_PRICE_MAX,
            language=_LANGUAGE_NAMES.get(language, language),
        )
        try:
            with metrics.timed("anthropic", "generate_courses"):
                batch = self._course_llm.invoke(prompt)
        except Exception as exc:
            logger.warning("Course generation failed for %s: %s", teacher_id, exc)
            return Result.failure(f"course generation failed: {type(exc).__name__}")
        return Result.success(list(batch.courses))
