"""Tests for the booking-flow tool executor."""

from __future__ import annotations

import random
from unittest.mock import MagicMock

import pytest

from booking_assistant.conversation import CachePolicy, ConversationState, FlowPhase
from booking_assistant.conversation.state import PaymentAuthorized, PaymentVerified, TeacherSelected
from booking_assistant.localized import Specialty, achievements_for, education_for
from booking_assistant.models import FAQAnswer
from booking_assistant.services.pricing import PricingPolicy
from booking_assistant.services.reservations import ReservationStore
from booking_assistant.services.result import Result
from booking_assistant.tools import BookingTools

COURSE_DETAILS = {
    "courseName": "Conversational English",
    "teacherName": "Amy Lin",
    "startTime": "2026-11-02T10:00:00+00:00",
    "endTime": "2026-11-02T12:00:00+00:00",
    "location": "Xinyi District",
    "price": 1200,
}


@pytest.fixture
def generator():
    return MagicMock()


@pytest.fixture
def reservations():
    return ReservationStore()


@pytest.fixture
def faq_resolver():
    resolver = MagicMock()
    resolver.resolve.return_value = None
    return resolver


@pytest.fixture
def tools(generator, reservations, faq_resolver):
    return BookingTools(
        generator=generator,
        reservations=reservations,
        faq_resolver=faq_resolver,
        pricing=PricingPolicy(rng=random.Random(7)),
        cache_policy=CachePolicy.MERGE,
    )


@pytest.fixture
def state():
    conversation = ConversationState(id="chat-1")
    conversation.set_language("en")
    return conversation


def call(name: str, call_id: str = "call-1", **args) -> dict:
    return {"name": name, "args": args, "id": call_id}


def run(tools, state, name, *, user_id=None, **args):
    outcomes, _ = tools.dispatch([call(name, **args)], state, user_id=user_id)
    return outcomes[0]


def reserve(tools, state, user_id="user-1"):
    return run(
        tools, state, "createReservation", user_id=user_id,
        courseId="course_1", teacherId="teacher_001", studentName="Ann Lee",
        courseDetails=COURSE_DETAILS,
    )


# ── Teachers ─────────────────────────────────────────────────────────


class TestListTeachers:
    def test_filters_to_requested_specialty_and_assigns_ids(self, tools, state, generator, generated_teachers):
        generator.generate_teachers.return_value = Result.success(
            generated_teachers("Japanese", "English", "Japanese")
        )

        outcome = run(tools, state, "listTeachers", subject="Japanese")

        teachers = outcome.payload["teachers"]
        assert [t["id"] for t in teachers] == ["teacher_001", "teacher_002"]
        assert {t["specialty"] for t in teachers} == {"Japanese"}
        assert set(state.teacher_cache) == {"teacher_001", "teacher_002"}
        assert state.phase.kind is FlowPhase.BROWSING
        assert state.phase.specialty is Specialty.JAPANESE

    def test_specialty_labels_follow_conversation_language(self, tools, generator, generated_teachers):
        conversation = ConversationState(id="chat-zh")
        conversation.set_language("zh-TW")
        generator.generate_teachers.return_value = Result.success(generated_teachers("English"))

        outcome = run(tools, conversation, "listTeachers", subject="英文")

        assert outcome.payload["teachers"][0]["specialty"] == "美語"
        assert outcome.actions == ["我想了解 Teacher 1 老師的課程！"]

    def test_korean_written_with_traditional_characters_is_kept(self, tools, generator, generated_teachers):
        conversation = ConversationState(id="chat-zh")
        conversation.set_language("zh-TW")
        generator.generate_teachers.return_value = Result.success(generated_teachers("韓國語", "韓國語"))

        outcome = run(tools, conversation, "listTeachers", subject="韓文")

        teachers = outcome.payload["teachers"]
        assert [t["id"] for t in teachers] == ["teacher_001", "teacher_002"]
        assert {t["specialty"] for t in teachers} == {"韓語"}
        assert conversation.phase.specialty is Specialty.KOREAN

    def test_rating_and_price_are_clamped(self, tools, state, generator, generated_teachers):
        generator.generate_teachers.return_value = Result.success(
            generated_teachers("Korean", rating=9.0, price=99999)
        )

        teacher = run(tools, state, "listTeachers", subject="Korean").payload["teachers"][0]

        assert teacher["rating"] == 5.0
        assert teacher["pricePerHour"] == 2000

    def test_merge_policy_keeps_earlier_teachers(self, tools, state, generator, generated_teachers):
        generator.generate_teachers.return_value = Result.success(generated_teachers("English"))
        run(tools, state, "listTeachers", subject="English")
        run(tools, state, "listTeachers", subject="English")

        assert set(state.teacher_cache) == {"teacher_001", "teacher_002"}

    def test_replace_policy_restarts_ids(self, generator, reservations, faq_resolver, state, generated_teachers):
        tools = BookingTools(
            generator=generator,
            reservations=reservations,
            faq_resolver=faq_resolver,
            cache_policy=CachePolicy.REPLACE,
        )
        generator.generate_teachers.return_value = Result.success(generated_teachers("English"))
        run(tools, state, "listTeachers", subject="English")
        run(tools, state, "listTeachers", subject="English")

        assert set(state.teacher_cache) == {"teacher_001"}

    def test_generation_failure_is_an_error_payload(self, tools, state, generator):
        generator.generate_teachers.return_value = Result.failure("timeout")

        outcome = run(tools, state, "listTeachers", subject="English")

        assert not outcome.ok
        assert "error" in outcome.payload
        assert state.teacher_cache == {}


class TestGetTeacherDetails:
    def test_unknown_id_gets_well_formed_default_teacher(self, tools, state):
        outcome = run(tools, state, "getTeacherDetails", teacherId="teacher_042")

        teacher = outcome.payload["teacher"]
        assert outcome.ok
        assert teacher["id"] == "teacher_042"
        assert teacher["specialty"] == "English"
        assert teacher["rating"] == 4.8
        assert teacher["education"] == education_for(Specialty.ENGLISH, "en")
        assert teacher["achievements"] == achievements_for(Specialty.ENGLISH, "en")
        assert teacher["teachingStyle"]
        assert state.phase == TeacherSelected(teacher_id="teacher_042")

    def test_default_teacher_uses_conversation_language(self, tools):
        conversation = ConversationState(id="chat-ja")
        conversation.set_language("ja")

        teacher = run(tools, conversation, "getTeacherDetails", teacherId="teacher_001").payload["teacher"]

        assert teacher["specialty"] == "英語"
        assert teacher["education"] == education_for(Specialty.ENGLISH, "ja")

    def test_cached_teacher_gets_specialty_appropriate_details(self, tools, state, generator, generated_teachers):
        generator.generate_teachers.return_value = Result.success(generated_teachers("Korean"))
        run(tools, state, "listTeachers", subject="Korean")

        teacher = run(tools, state, "getTeacherDetails", teacherId="teacher_001").payload["teacher"]

        assert teacher["name"] == "Teacher 1"
        assert teacher["education"] == education_for(Specialty.KOREAN, "en")


# ── Courses ──────────────────────────────────────────────────────────


class TestListCourses:
    def test_every_listed_course_holds_the_invariants(self, tools, state, generator, generated_course):
        generator.generate_courses.return_value = Result.success([
            generated_course("Conversational English"),
            generated_course("Business English", price=9000, current_students=15, max_students=10),
            generated_course("English Grammar", price=10),
            generated_course("Broken English", hours=0),
            generated_course("Japanese Conversation"),
        ])

        outcome = run(
            tools, state, "listCourses", teacherId="teacher_003", teacherSpecialty="English",
        )

        courses = outcome.payload["courses"]
        assert [c["name"] for c in courses] == [
            "Conversational English", "Business English", "English Grammar",
        ]
        for course in courses:
            assert course["endTime"] > course["startTime"]
            assert 500 <= course["price"] <= 2000
            assert 0 <= course["currentStudents"] <= course["maxStudents"]
            assert course["teacherId"] == "teacher_003"
        assert courses[1]["isAvailable"] is False

    def test_listing_enables_course_selection(self, tools, state, generator, generated_course):
        generator.generate_courses.return_value = Result.success([generated_course("Business English")])

        run(tools, state, "listCourses", teacherId="teacher_001", teacherSpecialty="English")

        assert state.phase.kind is FlowPhase.COURSE_LISTED
        assert state.match_listed_course("Business English please").name == "Business English"

    def test_levels_are_localized(self, tools, generator, generated_course):
        conversation = ConversationState(id="chat-ko")
        conversation.set_language("ko")
        generator.generate_courses.return_value = Result.success(
            [generated_course("영어 회화", level="intermediate")]
        )

        outcome = run(tools, conversation, "listCourses", teacherId="teacher_001", teacherSpecialty="영어")

        assert outcome.payload["courses"][0]["level"] == "중급"

    def test_unknown_specialty_is_rejected(self, tools, state, generator):
        outcome = run(tools, state, "listCourses", teacherId="teacher_001", teacherSpecialty="Klingon")

        assert not outcome.ok
        generator.generate_courses.assert_not_called()


# ── Reservation & payment ────────────────────────────────────────────


class TestCreateReservation:
    def test_anonymous_caller_gets_error_and_nothing_is_written(self, tools, state, reservations):
        outcome = reserve(tools, state, user_id=None)

        assert outcome.payload == {"error": "User not logged in"}
        assert not outcome.ok
        assert reservations.count() == 0
        assert state.phase.kind is FlowPhase.LANGUAGE_PENDING

    def test_reservation_prices_and_persists(self, tools, state, reservations):
        outcome = reserve(tools, state)

        payload = outcome.payload
        assert payload["basePrice"] == 1200
        assert 300 <= payload["materialFee"] <= 1000
        assert payload["materialFee"] % 10 == 0
        assert payload["totalPrice"] == payload["basePrice"] + payload["materialFee"] - payload["discountAmount"]
        assert "userId" not in payload
        assert reservations.get(payload["id"]).user_id == "user-1"
        assert state.phase.kind is FlowPhase.RESERVATION_CREATED

    def test_listed_course_sets_price_and_snapshot(self, tools, state, generator, generated_course):
        generator.generate_courses.return_value = Result.success(
            [generated_course("Business English", price=1200)]
        )
        listed = run(
            tools, state, "listCourses", teacherId="teacher_004", teacherSpecialty="English",
        ).payload["courses"][0]

        outcome = run(
            tools, state, "createReservation", user_id="user-1",
            courseId=listed["id"], teacherId="teacher_999", studentName="Ann Lee",
            courseDetails=COURSE_DETAILS | {"courseName": "Something Else", "price": 99999},
        )

        payload = outcome.payload
        assert payload["basePrice"] == 1200
        assert payload["teacherId"] == "teacher_004"
        assert payload["courseDetails"]["courseName"] == "Business English"
        assert payload["courseDetails"]["startTime"] == listed["startTime"]
        assert payload["courseDetails"]["price"] == 1200

    def test_unlisted_course_price_is_held_to_range(self, tools, state):
        outcome = run(
            tools, state, "createReservation", user_id="user-1",
            courseId="course_unknown", teacherId="teacher_001", studentName="Ann Lee",
            courseDetails=COURSE_DETAILS | {"price": 99999},
        )

        assert outcome.payload["basePrice"] == 2000

    def test_discount_is_subtracted(self, generator, reservations, faq_resolver, state):
        tools = BookingTools(
            generator=generator,
            reservations=reservations,
            faq_resolver=faq_resolver,
            pricing=PricingPolicy(material_fee_min=500, material_fee_max=500, discount_rate=0.1),
        )
        payload = reserve(tools, state).payload
        assert payload["discountAmount"] == 120
        assert payload["totalPrice"] == 1200 + 500 - 120


class TestPayment:
    def test_verify_before_authorization_is_false(self, tools, state):
        reservation_id = reserve(tools, state).payload["id"]

        outcome = run(tools, state, "verifyPayment", reservationId=reservation_id)

        assert outcome.payload == {"hasCompletedPayment": False}
        assert state.phase.kind is FlowPhase.RESERVATION_CREATED

    def test_verify_unknown_reservation_is_false(self, tools, state):
        outcome = run(tools, state, "verifyPayment", reservationId="nope")
        assert outcome.payload == {"hasCompletedPayment": False}

    def test_authorize_unknown_reservation_is_an_error(self, tools, state):
        assert not run(tools, state, "authorizePayment", reservationId="nope").ok

    def test_authorize_returns_reservation_id(self, tools, state):
        reservation_id = reserve(tools, state).payload["id"]

        outcome = run(tools, state, "authorizePayment", reservationId=reservation_id)

        assert outcome.payload == {"reservationId": reservation_id}
        assert state.phase == PaymentAuthorized(reservation_id=reservation_id)

    def test_confirmation_refused_until_payment_verified(self, tools, state, reservations):
        reservation_id = reserve(tools, state).payload["id"]
        run(tools, state, "authorizePayment", reservationId=reservation_id)
        run(tools, state, "verifyPayment", reservationId=reservation_id)

        refused = run(
            tools, state, "displayReservationConfirmation",
            reservationId=reservation_id, studentName="Ann Lee", courseDetails=COURSE_DETAILS,
        )
        assert not refused.ok
        assert state.phase.kind is FlowPhase.PAYMENT_AUTHORIZED

        reservations.mark_paid(reservation_id, "user-1")
        assert run(tools, state, "verifyPayment", reservationId=reservation_id).payload == {
            "hasCompletedPayment": True,
        }
        confirmed = run(
            tools, state, "displayReservationConfirmation",
            reservationId=reservation_id, studentName="Ann Lee", courseDetails=COURSE_DETAILS,
        )
        assert confirmed.ok
        assert confirmed.payload["courseDetails"]["courseName"] == "Conversational English"
        assert state.phase.kind is FlowPhase.CONFIRMED

    def test_confirmation_requires_the_verified_reservation(self, tools, state):
        state.advance(PaymentVerified(reservation_id="r-1"))
        outcome = run(
            tools, state, "displayReservationConfirmation",
            reservationId="r-2", studentName="Ann Lee", courseDetails=COURSE_DETAILS,
        )
        assert not outcome.ok


# ── Dispatch rules ───────────────────────────────────────────────────


class TestDispatch:
    def test_second_flow_step_in_one_turn_is_refused(self, tools, state, generator, generated_course):
        generator.generate_courses.return_value = Result.success([generated_course()])

        outcomes, rendered = tools.dispatch(
            [
                call("getTeacherDetails", "c1", teacherId="teacher_001"),
                call("listCourses", "c2", teacherId="teacher_001", teacherSpecialty="English"),
            ],
            state,
            user_id=None,
        )

        assert [o.ok for o in outcomes] == [True, False]
        assert rendered == "getTeacherDetails"
        generator.generate_courses.assert_not_called()

    def test_flow_step_already_rendered_this_turn_blocks_the_next(self, tools, state):
        outcomes, rendered = tools.dispatch(
            [call("getTeacherDetails", teacherId="teacher_001")],
            state,
            user_id=None,
            rendered_tool="listTeachers",
        )
        assert not outcomes[0].ok
        assert rendered == "listTeachers"

    def test_read_only_tools_do_not_count_as_flow_steps(self, tools, state, faq_resolver):
        faq_resolver.resolve.return_value = FAQAnswer(
            original_message="How do I sign up?", translated_response="Visit our site.",
        )
        outcomes, rendered = tools.dispatch(
            [
                call("getFAQAnswer", "c1", query="How do I sign up?"),
                call("verifyPayment", "c2", reservationId="r-1"),
                call("getTeacherDetails", "c3", teacherId="teacher_001"),
            ],
            state,
            user_id=None,
        )
        assert all(o.ok for o in outcomes)
        assert outcomes[0].payload == {
            "originalMessage": "How do I sign up?",
            "translatedResponse": "Visit our site.",
        }
        assert rendered == "getTeacherDetails"

    def test_malformed_call_is_rejected_with_call_id(self, tools, state):
        outcomes, rendered = tools.dispatch(
            [call("listCourses", "bad-1", teacherId="teacher_001")], state, user_id=None,
        )
        assert outcomes[0].call_id == "bad-1"
        assert "teacherSpecialty" in outcomes[0].payload["error"]
        assert rendered is None

    def test_unexpected_failure_becomes_error_payload(self, tools, state, generator):
        generator.generate_teachers.side_effect = RuntimeError("boom")

        outcome = run(tools, state, "listTeachers", subject="English")

        assert outcome.payload == {"error": "The tool failed. Please try again."}
