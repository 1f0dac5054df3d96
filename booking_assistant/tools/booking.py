"""Execution of the booking-flow tools against a conversation's state.

Every tool resolves to a :class:`ToolOutcome`: either a result payload the
UI renders, or an ``{"error": ...}`` payload the LLM reads and recovers
from.  Nothing in here raises into the agent graph.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from booking_assistant.config import (
    COURSE_PRICE_MAX,
    COURSE_PRICE_MIN,
    DEFAULT_LANGUAGE,
    TEACHER_CACHE_POLICY,
)
from booking_assistant.conversation.state import (
    Browsing,
    CachePolicy,
    Confirmed,
    ConversationState,
    CourseListed,
    PaymentAuthorized,
    PaymentVerified,
    ReservationCreated,
    TeacherSelected,
)
from booking_assistant.language import normalize_language
from booking_assistant.localized import (
    Specialty,
    achievements_for,
    default_teacher_fields,
    education_for,
    follow_up,
    level_label,
    parse_level,
    parse_specialty,
    specialty_label,
    teaching_style_for,
)
from booking_assistant.models import (
    RATING_MAX,
    RATING_MIN,
    TEACHER_ID_RE,
    Course,
    CourseDetails,
    Reservation,
    Teacher,
    TeacherDetails,
)
from booking_assistant.services.faq_resolver import FAQResolver
from booking_assistant.services.generator import CatalogGenerator, GeneratedCourse, GeneratedTeacher
from booking_assistant.services.metrics import metrics
from booking_assistant.services.pricing import PricingPolicy
from booking_assistant.services.reservations import NotFoundError, ReservationStore
from booking_assistant.tools.registry import (
    PHASE_TOOLS,
    CreateReservationArgs,
    DisplayConfirmationArgs,
    GetFAQAnswerArgs,
    GetTeacherDetailsArgs,
    ListCoursesArgs,
    ListTeachersArgs,
    ReservationIdArgs,
    ToolCommand,
    ToolName,
    ToolRejection,
    parse_tool_call,
)

logger = logging.getLogger(__name__)

# Placeholder values for a teacher id that was never listed
DEFAULT_RATING = 4.8
DEFAULT_PRICE_PER_HOUR = 1000


@dataclass
class ToolOutcome:
    name: str
    call_id: str
    payload: dict[str, Any] | None
    ok: bool = True
    actions: list[str] = field(default_factory=list)

    def ui_event(self) -> dict[str, Any]:
        return {"tool": self.name, "result": self.payload, "actions": self.actions}


def _error(name: str, call_id: str, message: str) -> ToolOutcome:
    return ToolOutcome(name, call_id, {"error": message}, ok=False)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(value, high))


def _parse_timestamp(value: str) -> datetime | None:
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


class BookingTools:
    """Runs parsed tool commands for one conversation at a time."""

    def __init__(
        self,
        *,
        generator: CatalogGenerator,
        reservations: ReservationStore,
        faq_resolver: FAQResolver,
        pricing: PricingPolicy | None = None,
        cache_policy: CachePolicy = CachePolicy(TEACHER_CACHE_POLICY),
    ) -> None:
        self._generator = generator
        self._reservations = reservations
        self._faq = faq_resolver
        self._pricing = pricing or PricingPolicy()
        self._cache_policy = cache_policy

    # ── Dispatch ─────────────────────────────────────────────────────

    def dispatch(
        self,
        tool_calls: list[dict[str, Any]],
        state: ConversationState,
        *,
        user_id: str | None,
        rendered_tool: str | None = None,
    ) -> tuple[list[ToolOutcome], str | None]:
        """Run the tool calls of one assistant message.

        ``rendered_tool`` is the flow-step tool already shown this turn, if
        any; a second flow step in the same turn is refused.  Returns the
        outcomes in call order and the updated ``rendered_tool``.
        """
        outcomes: list[ToolOutcome] = []
        for call in tool_calls:
            parsed = parse_tool_call(call)
            if isinstance(parsed, ToolRejection):
                logger.warning("Rejected tool call %s: %s", parsed.name, parsed.error)
                metrics.record_tool(parsed.name or "unknown", "rejected")
                outcomes.append(_error(parsed.name, parsed.call_id, parsed.error))
                continue

            if parsed.name in PHASE_TOOLS and rendered_tool is not None:
                message = (
                    f"{rendered_tool} was already shown this turn. "
                    "Show one step per turn and wait for the user's reply."
                )
                metrics.record_tool(parsed.name.value, "rejected")
                outcomes.append(_error(parsed.name.value, parsed.call_id, message))
                continue

            outcome = self.run(parsed, state, user_id=user_id)
            metrics.record_tool(parsed.name.value, "ok" if outcome.ok else "error")
            if outcome.ok and parsed.name in PHASE_TOOLS:
                rendered_tool = parsed.name.value
            outcomes.append(outcome)
        return outcomes, rendered_tool

    def run(self, command: ToolCommand, state: ConversationState, *, user_id: str | None) -> ToolOutcome:
        handlers = {
            ToolName.GET_FAQ_ANSWER: self.get_faq_answer,
            ToolName.LIST_TEACHERS: self.list_teachers,
            ToolName.GET_TEACHER_DETAILS: self.get_teacher_details,
            ToolName.LIST_COURSES: self.list_courses,
            ToolName.CREATE_RESERVATION: self.create_reservation,
            ToolName.AUTHORIZE_PAYMENT: self.authorize_payment,
            ToolName.VERIFY_PAYMENT: self.verify_payment,
            ToolName.DISPLAY_RESERVATION_CONFIRMATION: self.display_confirmation,
        }
        handler = handlers[command.name]
        try:
            return handler(command.args, state, user_id=user_id, call_id=command.call_id)
        except Exception:
            logger.exception("Tool %s failed", command.name.value)
            return _error(command.name.value, command.call_id, "The tool failed. Please try again.")

    def _language(self, requested: str | None, state: ConversationState) -> str:
        return normalize_language(requested or state.language, fallback=DEFAULT_LANGUAGE)

    # ── FAQ ──────────────────────────────────────────────────────────

    def get_faq_answer(self, args: GetFAQAnswerArgs, state, *, user_id, call_id) -> ToolOutcome:
        answer = self._faq.resolve(args.query, state.language)
        return ToolOutcome(
            ToolName.GET_FAQ_ANSWER.value, call_id, answer.dump() if answer else None,
        )

    # ── Teachers ─────────────────────────────────────────────────────

    def _to_teacher(
        self,
        generated: GeneratedTeacher,
        teacher_id: str,
        specialty: Specialty | None,
        language: str,
    ) -> Teacher:
        label = specialty_label(specialty, language) if specialty else generated.specialty
        return Teacher(
            id=teacher_id,
            name=generated.name.strip(),
            specialty=label,
            experience=generated.experience,
            rating=round(_clamp(generated.rating, RATING_MIN, RATING_MAX), 1),
            price_per_hour=round(_clamp(generated.price_per_hour, COURSE_PRICE_MIN, COURSE_PRICE_MAX)),
            available_time=generated.available_time,
            location=generated.location,
            description=generated.description,
        )

    def list_teachers(self, args: ListTeachersArgs, state, *, user_id, call_id) -> ToolOutcome:
        name = ToolName.LIST_TEACHERS.value
        language = self._language(args.targetLanguage, state)
        wanted = parse_specialty(args.subject)

        result = self._generator.generate_teachers(
            language=language,
            subject=wanted.value if wanted else args.subject,
        )
        if not result.ok:
            return _error(name, call_id, "Teachers are unavailable right now. Please try again.")

        if self._cache_policy is CachePolicy.REPLACE:
            number = 1
        else:
            number = state.next_teacher_number()

        teachers: list[Teacher] = []
        seen_names: set[str] = set()
        for generated in result.value:
            specialty = parse_specialty(generated.specialty)
            if wanted is not None and specialty is not wanted:
                continue
            if generated.name in seen_names:
                continue
            seen_names.add(generated.name)
            teachers.append(self._to_teacher(generated, f"teacher_{number:03d}", specialty, language))
            number += 1

        state.cache_teachers(teachers, self._cache_policy)
        state.advance(Browsing(specialty=wanted))
        logger.info("Listed %d teacher(s) for conversation %s", len(teachers), state.id)
        return ToolOutcome(
            name,
            call_id,
            {"teachers": [t.dump() for t in teachers]},
            actions=[follow_up("view_teacher", language, teacher_name=t.name) for t in teachers],
        )

    def _default_teacher(self, teacher_id: str, language: str) -> Teacher:
        match = TEACHER_ID_RE.match(teacher_id)
        number = match.group(1) if match else teacher_id[-3:]
        fields = default_teacher_fields(number, language)
        return Teacher(
            id=teacher_id,
            specialty=specialty_label(Specialty.ENGLISH, language),
            rating=DEFAULT_RATING,
            price_per_hour=DEFAULT_PRICE_PER_HOUR,
            **fields,
        )

    def get_teacher_details(self, args: GetTeacherDetailsArgs, state, *, user_id, call_id) -> ToolOutcome:
        language = self._language(args.targetLanguage, state)
        teacher = state.cached_teacher(args.teacherId)
        if teacher is None:
            logger.info("Teacher %s not cached for %s; using placeholder", args.teacherId, state.id)
            teacher = self._default_teacher(args.teacherId, language)

        specialty = parse_specialty(teacher.specialty)
        details = TeacherDetails(
            **teacher.model_dump(),
            education=education_for(specialty, language),
            achievements=achievements_for(specialty, language),
            teaching_style=teaching_style_for(specialty, language, teacher.specialty),
        )
        state.advance(TeacherSelected(teacher_id=teacher.id))
        return ToolOutcome(
            ToolName.GET_TEACHER_DETAILS.value,
            call_id,
            {"teacher": details.dump()},
            actions=[follow_up("view_schedule", language)],
        )

    # ── Courses ──────────────────────────────────────────────────────

    def _to_course(
        self,
        generated: GeneratedCourse,
        teacher_id: str,
        specialty: Specialty,
        language: str,
    ) -> Course | None:
        mentioned = parse_specialty(generated.name)
        if mentioned is not None and mentioned is not specialty:
            return None
        start = _parse_timestamp(generated.start_time)
        end = _parse_timestamp(generated.end_time)
        if start is None or end is None or end <= start:
            return None

        level = parse_level(generated.level)
        max_students = max(1, generated.max_students)
        return Course(
            id=f"course_{uuid.uuid4().hex[:8]}",
            teacher_id=teacher_id,
            name=generated.name.strip(),
            level=level_label(level, language) if level else generated.level,
            start_time=start,
            end_time=end,
            location=generated.location,
            price=round(_clamp(generated.price, COURSE_PRICE_MIN, COURSE_PRICE_MAX)),
            max_students=max_students,
            current_students=int(_clamp(generated.current_students, 0, max_students)),
            description=generated.description,
        )

    def list_courses(self, args: ListCoursesArgs, state, *, user_id, call_id) -> ToolOutcome:
        name = ToolName.LIST_COURSES.value
        specialty = parse_specialty(args.teacherSpecialty)
        if specialty is None:
            return _error(name, call_id, f"Unknown teacher specialty: {args.teacherSpecialty}")
        language = self._language(args.targetLanguage, state)

        result = self._generator.generate_courses(
            teacher_id=args.teacherId,
            specialty=specialty.value,
            language=language,
            today=datetime.now(UTC).date().isoformat(),
        )
        if not result.ok:
            return _error(name, call_id, "Courses are unavailable right now. Please try again.")

        courses = [
            course
            for course in (self._to_course(g, args.teacherId, specialty, language) for g in result.value)
            if course is not None
        ]
        dropped = len(result.value) - len(courses)
        if dropped:
            logger.info("Dropped %d invalid generated course(s) for %s", dropped, args.teacherId)

        state.cache_courses(courses)
        state.advance(CourseListed(teacher_id=args.teacherId, course_ids=tuple(c.id for c in courses)))
        return ToolOutcome(
            name,
            call_id,
            {"courses": [c.dump() | {"isAvailable": c.is_available} for c in courses]},
            actions=[
                follow_up("book_course", language, course_name=c.name, price=c.price)
                for c in courses
                if c.is_available
            ],
        )

    # ── Reservation & payment ────────────────────────────────────────

    def _course_snapshot(
        self, args: CreateReservationArgs, state: ConversationState,
    ) -> tuple[str, CourseDetails]:
        """Teacher id and course snapshot for a reservation.

        A course listed in this conversation is authoritative for price,
        name, times and location.  For any other course id the details
        come from the call, with the price held to the course price range.
        """
        course = state.cached_course(args.courseId)
        if course is None:
            logger.info("Course %s not listed in %s; using supplied details", args.courseId, state.id)
            price = _clamp(args.courseDetails.price, COURSE_PRICE_MIN, COURSE_PRICE_MAX)
            return args.teacherId, args.courseDetails.model_copy(update={"price": price})

        teacher = state.cached_teacher(course.teacher_id)
        listed = course.dump()
        details = CourseDetails(
            course_name=course.name,
            teacher_name=teacher.name if teacher else args.courseDetails.teacher_name,
            start_time=listed["startTime"],
            end_time=listed["endTime"],
            location=course.location,
            price=course.price,
        )
        return course.teacher_id, details

    def create_reservation(self, args: CreateReservationArgs, state, *, user_id, call_id) -> ToolOutcome:
        name = ToolName.CREATE_RESERVATION.value
        if not user_id:
            logger.info("Refused reservation for anonymous caller in %s", state.id)
            return _error(name, call_id, "User not logged in")

        teacher_id, details = self._course_snapshot(args, state)
        quote = self._pricing.quote(details.price)
        reservation = Reservation(
            id=str(uuid.uuid4()),
            course_id=args.courseId,
            teacher_id=teacher_id,
            student_name=args.studentName.strip(),
            course_details=details,
            base_price=quote.base_price,
            material_fee=quote.material_fee,
            discount_amount=quote.discount_amount,
            total_price=quote.total_price,
            user_id=user_id,
            created_at=datetime.now(UTC),
        )
        self._reservations.create(reservation)
        state.advance(ReservationCreated(reservation_id=reservation.id))

        language = self._language(None, state)
        payload = reservation.dump()
        payload.pop("userId", None)
        return ToolOutcome(
            name,
            call_id,
            payload,
            actions=[
                follow_up("confirm_reservation", language, reservation_id=reservation.id),
                follow_up("modify_reservation", language, reservation_id=reservation.id),
            ],
        )

    def authorize_payment(self, args: ReservationIdArgs, state, *, user_id, call_id) -> ToolOutcome:
        name = ToolName.AUTHORIZE_PAYMENT.value
        try:
            self._reservations.get(args.reservationId)
        except NotFoundError:
            return _error(name, call_id, f"Reservation {args.reservationId} not found")

        state.advance(PaymentAuthorized(reservation_id=args.reservationId))
        language = self._language(None, state)
        return ToolOutcome(
            name,
            call_id,
            {"reservationId": args.reservationId},
            actions=[follow_up("confirm_payment", language, reservation_id=args.reservationId)],
        )

    def verify_payment(self, args: ReservationIdArgs, state, *, user_id, call_id) -> ToolOutcome:
        paid = self._reservations.has_completed_payment(args.reservationId)
        phase = state.phase
        if paid:
            state.advance(PaymentVerified(reservation_id=args.reservationId))
        elif isinstance(phase, PaymentVerified) and phase.reservation_id == args.reservationId:
            state.advance(PaymentAuthorized(reservation_id=args.reservationId))

        language = self._language(None, state)
        kind = "view_reservation" if paid else "retry_payment"
        return ToolOutcome(
            ToolName.VERIFY_PAYMENT.value,
            call_id,
            {"hasCompletedPayment": paid},
            actions=[follow_up(kind, language)],
        )

    def display_confirmation(self, args: DisplayConfirmationArgs, state, *, user_id, call_id) -> ToolOutcome:
        name = ToolName.DISPLAY_RESERVATION_CONFIRMATION.value
        phase = state.phase
        if not (isinstance(phase, PaymentVerified) and phase.reservation_id == args.reservationId):
            return _error(
                name,
                call_id,
                "Payment has not been verified for this reservation. Call verifyPayment first.",
            )
        state.advance(Confirmed(reservation_id=args.reservationId))
        return ToolOutcome(
            name,
            call_id,
            {
                "reservationId": args.reservationId,
                "studentName": args.studentName,
                "courseDetails": args.courseDetails.dump(),
            },
        )
