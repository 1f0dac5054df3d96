"""Per-conversation booking state.

The booking flow is tracked as an explicit phase value rather than inferred
from which data happens to be cached.  Each phase is a small frozen
dataclass carrying exactly the data that phase needs, so a confirmation can
only be built from a ``PaymentVerified`` phase that names the reservation
it verified.
"""

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Union

from booking_assistant.localized import Specialty, parse_ordinal
from booking_assistant.models import TEACHER_ID_RE, Course, Teacher

logger = logging.getLogger(__name__)


class FlowPhase(str, Enum):
    START = "start"
    LANGUAGE_PENDING = "language_pending"
    BROWSING = "browsing"
    TEACHER_SELECTED = "teacher_selected"
    COURSE_LISTED = "course_listed"
    COURSE_SELECTED = "course_selected"
    NAME_PENDING = "name_pending"
    RESERVATION_CREATED = "reservation_created"
    PAYMENT_AUTHORIZED = "payment_authorized"
    PAYMENT_VERIFIED = "payment_verified"
    CONFIRMED = "confirmed"


class CachePolicy(str, Enum):
    """What ``listTeachers`` does with previously cached teachers."""

    MERGE = "merge"
    REPLACE = "replace"


@dataclass(frozen=True)
class Start:
    kind: ClassVar[FlowPhase] = FlowPhase.START


@dataclass(frozen=True)
class LanguagePending:
    kind: ClassVar[FlowPhase] = FlowPhase.LANGUAGE_PENDING


@dataclass(frozen=True)
class Browsing:
    kind: ClassVar[FlowPhase] = FlowPhase.BROWSING
    specialty: Specialty | None = None


@dataclass(frozen=True)
class TeacherSelected:
    kind: ClassVar[FlowPhase] = FlowPhase.TEACHER_SELECTED
    teacher_id: str


@dataclass(frozen=True)
class CourseListed:
    kind: ClassVar[FlowPhase] = FlowPhase.COURSE_LISTED
    teacher_id: str
    course_ids: tuple[str, ...]


@dataclass(frozen=True)
class CourseSelected:
    kind: ClassVar[FlowPhase] = FlowPhase.COURSE_SELECTED
    course: Course


@dataclass(frozen=True)
class NamePending:
    kind: ClassVar[FlowPhase] = FlowPhase.NAME_PENDING
    course: Course


@dataclass(frozen=True)
class ReservationCreated:
    kind: ClassVar[FlowPhase] = FlowPhase.RESERVATION_CREATED
    reservation_id: str


@dataclass(frozen=True)
class PaymentAuthorized:
    kind: ClassVar[FlowPhase] = FlowPhase.PAYMENT_AUTHORIZED
    reservation_id: str


@dataclass(frozen=True)
class PaymentVerified:
    kind: ClassVar[FlowPhase] = FlowPhase.PAYMENT_VERIFIED
    reservation_id: str


@dataclass(frozen=True)
class Confirmed:
    kind: ClassVar[FlowPhase] = FlowPhase.CONFIRMED
    reservation_id: str


Phase = Union[
    Start,
    LanguagePending,
    Browsing,
    TeacherSelected,
    CourseListed,
    CourseSelected,
    NamePending,
    ReservationCreated,
    PaymentAuthorized,
    PaymentVerified,
    Confirmed,
]


def _normalize(text: str) -> str:
    return re.sub(r"\s+", "", text).lower()


@dataclass
class ConversationState:
    """Everything the assistant remembers about one conversation.

    Mutations go through methods that hold the state lock, so two turns
    racing on the same conversation never leave a half-updated cache.
    """

    id: str
    language: str | None = None
    teacher_cache: dict[str, Teacher] = field(default_factory=dict)
    course_cache: dict[str, Course] = field(default_factory=dict)
    phase: Phase = field(default_factory=Start)
    created_at: float = field(default_factory=time.monotonic)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    # ── Language ─────────────────────────────────────────────────────

    def set_language(self, language: str) -> bool:
        """Record the language once; later calls are ignored."""
        with self._lock:
            if self.language is not None:
                return False
            self.language = language
            # The learning language is still unknown until teachers are listed
            if isinstance(self.phase, Start):
                self.phase = LanguagePending()
            return True

    # ── Caches ───────────────────────────────────────────────────────

    def next_teacher_number(self) -> int:
        with self._lock:
            numbers = [
                int(m.group(1))
                for m in (TEACHER_ID_RE.match(tid) for tid in self.teacher_cache)
                if m
            ]
            return max(numbers, default=0) + 1

    def cache_teachers(self, teachers: list[Teacher], policy: CachePolicy) -> None:
        incoming = {teacher.id: teacher for teacher in teachers}
        with self._lock:
            if policy is CachePolicy.REPLACE:
                self.teacher_cache = incoming
            else:
                self.teacher_cache = {**self.teacher_cache, **incoming}

    def cached_teacher(self, teacher_id: str) -> Teacher | None:
        return self.teacher_cache.get(teacher_id)

    def cache_courses(self, courses: list[Course]) -> None:
        incoming = {course.id: course for course in courses}
        with self._lock:
            self.course_cache = {**self.course_cache, **incoming}

    def cached_course(self, course_id: str) -> Course | None:
        return self.course_cache.get(course_id)

    def match_listed_course(self, text: str) -> Course | None:
        """Course from the current listing that *text* names by id, name or position."""
        phase = self.phase
        if not isinstance(phase, CourseListed):
            return None
        listed = [self.course_cache[cid] for cid in phase.course_ids if cid in self.course_cache]
        normalized = _normalize(text)
        # Longest names first so "Business English II" beats "Business English"
        for course in sorted(listed, key=lambda c: len(c.name), reverse=True):
            if course.id.lower() in text.lower() or _normalize(course.name) in normalized:
                return course
        index = parse_ordinal(text)
        if index is not None and -len(listed) <= index < len(listed):
            return listed[index]
        return None

    # ── Phase ────────────────────────────────────────────────────────

    def advance(self, phase: Phase) -> None:
        with self._lock:
            previous = self.phase
            self.phase = phase
        if previous.kind != phase.kind:
            logger.debug(
                "Conversation %s: %s -> %s", self.id, previous.kind.value, phase.kind.value,
            )
