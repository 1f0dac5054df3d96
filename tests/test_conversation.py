"""Tests for conversation state, flow phases and the eviction store."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from booking_assistant.conversation import (
    CachePolicy,
    ConversationState,
    ConversationStore,
    EvictionPolicy,
    FlowPhase,
)
from booking_assistant.conversation.state import (
    Browsing,
    CourseListed,
    LanguagePending,
    PaymentVerified,
    TeacherSelected,
)
from booking_assistant.models import Course, Teacher


def _teacher(teacher_id: str, name: str = "Amy") -> Teacher:
    return Teacher(
        id=teacher_id,
        name=name,
        specialty="English",
        experience="5 years",
        rating=4.5,
        price_per_hour=1000,
        available_time="Mon-Fri",
        location="Taipei",
        description="",
    )


def _course(course_id: str, name: str) -> Course:
    start = datetime(2026, 11, 2, 10, tzinfo=UTC)
    return Course(
        id=course_id,
        teacher_id="teacher_001",
        name=name,
        level="Beginner",
        start_time=start,
        end_time=start + timedelta(hours=2),
        location="Taipei",
        price=1200,
        max_students=10,
        current_students=2,
    )


# ── ConversationState ────────────────────────────────────────────────


class TestLanguage:
    def test_language_is_recorded_once(self):
        state = ConversationState(id="c1")
        assert state.set_language("ja") is True
        assert state.set_language("en") is False
        assert state.language == "ja"

    def test_recording_language_waits_for_learning_language(self):
        state = ConversationState(id="c1")
        assert state.phase.kind is FlowPhase.START
        state.set_language("en")
        assert state.phase == LanguagePending()

    def test_language_does_not_rewind_a_later_phase(self):
        state = ConversationState(id="c1")
        state.advance(Browsing())
        state.set_language("ko")
        assert state.phase == Browsing()


class TestTeacherCache:
    def test_merge_keeps_earlier_listings(self):
        state = ConversationState(id="c1")
        state.cache_teachers([_teacher("teacher_001")], CachePolicy.MERGE)
        state.cache_teachers([_teacher("teacher_002")], CachePolicy.MERGE)
        assert set(state.teacher_cache) == {"teacher_001", "teacher_002"}

    def test_replace_drops_earlier_listings(self):
        state = ConversationState(id="c1")
        state.cache_teachers([_teacher("teacher_001")], CachePolicy.REPLACE)
        state.cache_teachers([_teacher("teacher_002")], CachePolicy.REPLACE)
        assert set(state.teacher_cache) == {"teacher_002"}

    def test_next_teacher_number_continues_after_highest(self):
        state = ConversationState(id="c1")
        assert state.next_teacher_number() == 1
        state.cache_teachers([_teacher("teacher_001"), _teacher("teacher_007")], CachePolicy.MERGE)
        assert state.next_teacher_number() == 8


class TestCourseSelection:
    def _listed_state(self) -> ConversationState:
        state = ConversationState(id="c1")
        courses = [
            _course("course_a", "Business English"),
            _course("course_b", "Business English II"),
        ]
        state.cache_courses(courses)
        state.advance(CourseListed(teacher_id="teacher_001", course_ids=("course_a", "course_b")))
        return state

    def test_matches_course_by_name(self):
        state = self._listed_state()
        course = state.match_listed_course("I'd like Business English please")
        assert course.id == "course_a"

    def test_longest_name_wins(self):
        state = self._listed_state()
        course = state.match_listed_course("Book Business  English II for me")
        assert course.id == "course_b"

    def test_matches_course_by_id(self):
        state = self._listed_state()
        assert state.match_listed_course("select course_b").id == "course_b"

    @pytest.mark.parametrize(
        ("text", "expected"),
        [
            ("I'll take the second one", "course_b"),
            ("我要第一堂", "course_a"),
            ("2つ目でお願いします", "course_b"),
            ("첫 번째 수업으로 할게요", "course_a"),
            ("the last one please", "course_b"),
        ],
    )
    def test_matches_course_by_position(self, text, expected):
        state = self._listed_state()
        assert state.match_listed_course(text).id == expected

    def test_position_past_the_listing_matches_nothing(self):
        state = self._listed_state()
        assert state.match_listed_course("the fifth one") is None

    def test_no_match_outside_course_listing(self):
        state = self._listed_state()
        state.advance(TeacherSelected(teacher_id="teacher_001"))
        assert state.match_listed_course("Business English") is None


class TestPhases:
    def test_phase_carries_its_data(self):
        state = ConversationState(id="c1")
        state.advance(PaymentVerified(reservation_id="r-1"))
        assert state.phase.kind is FlowPhase.PAYMENT_VERIFIED
        assert state.phase.reservation_id == "r-1"

    def test_phases_are_immutable(self):
        phase = PaymentVerified(reservation_id="r-1")
        with pytest.raises(AttributeError):
            phase.reservation_id = "r-2"


# ── ConversationStore ────────────────────────────────────────────────


class TestConversationStore:
    def test_get_or_create_returns_same_state(self, clock):
        store = ConversationStore(clock=clock)
        assert store.get_or_create("c1") is store.get_or_create("c1")
        assert len(store) == 1

    def test_state_unreachable_after_ttl(self, clock):
        store = ConversationStore(ttl_seconds=60, clock=clock)
        first = store.get_or_create("c1")
        store.schedule_eviction("c1")

        clock.advance(59)
        assert store.get_or_create("c1") is first

        clock.advance(1)
        assert store.get("c1") is None
        assert store.get_or_create("c1") is not first

    def test_delete_is_immediate(self, clock):
        store = ConversationStore(ttl_seconds=60, clock=clock)
        store.get_or_create("c1")
        store.schedule_eviction("c1")
        assert store.delete("c1") is True
        assert "c1" not in store
        assert store.delete("c1") is False

    def test_fixed_policy_does_not_extend_deadline(self, clock):
        store = ConversationStore(ttl_seconds=60, policy=EvictionPolicy.FIXED, clock=clock)
        store.get_or_create("c1")
        first_deadline = store.schedule_eviction("c1")
        clock.advance(30)
        assert store.schedule_eviction("c1") == first_deadline
        clock.advance(30)
        assert store.get("c1") is None

    def test_sliding_policy_extends_deadline(self, clock):
        store = ConversationStore(ttl_seconds=60, policy=EvictionPolicy.SLIDING, clock=clock)
        store.get_or_create("c1")
        store.schedule_eviction("c1")
        clock.advance(30)
        store.schedule_eviction("c1")
        clock.advance(45)
        assert store.get("c1") is not None

    def test_idle_state_expires_one_ttl_after_creation(self, clock):
        store = ConversationStore(ttl_seconds=60, clock=clock)
        store.get_or_create("c1")
        clock.advance(60)
        assert store.get("c1") is None

    def test_schedule_eviction_for_unknown_id(self, clock):
        store = ConversationStore(clock=clock)
        assert store.schedule_eviction("missing") is None

    def test_evict_expired_sweeps_only_expired(self, clock):
        store = ConversationStore(ttl_seconds=60, clock=clock)
        store.get_or_create("old")
        store.schedule_eviction("old")
        clock.advance(50)
        store.get_or_create("new")
        store.schedule_eviction("new")
        clock.advance(10)
        assert store.evict_expired() == 1
        assert "old" not in store
        assert "new" in store

    def test_eviction_notifies_callback(self, clock):
        evicted = []
        store = ConversationStore(ttl_seconds=60, clock=clock, on_evict=evicted.append)
        store.get_or_create("swept")
        store.get_or_create("looked-up")
        clock.advance(60)

        assert store.get("looked-up") is None
        assert store.evict_expired() == 1
        assert evicted == ["looked-up", "swept"]

    def test_reused_id_and_explicit_delete_do_not_notify(self, clock):
        evicted = []
        store = ConversationStore(ttl_seconds=60, clock=clock, on_evict=evicted.append)
        store.get_or_create("c1")
        clock.advance(60)
        store.get_or_create("c1")
        store.delete("c1")
        assert evicted == []

    def test_failing_callback_does_not_stop_the_sweep(self, clock):
        store = ConversationStore(ttl_seconds=60, clock=clock, on_evict=MagicMock(side_effect=RuntimeError))
        store.get_or_create("a")
        store.get_or_create("b")
        clock.advance(60)
        assert store.evict_expired() == 2
        assert len(store) == 0
