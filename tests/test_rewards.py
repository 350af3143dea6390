"""Tests for src.core.rewards — pure completion and reward logic."""

from datetime import date, datetime, time, timezone

from src.core.rewards import (
    apply_delta,
    complete_goal,
    complete_session,
    complete_task,
    due_instant,
    record_activity,
)
from src.data.models import FocusSession, Goal, GoalType, Priority, Task, User

DAY = date(2026, 3, 2)


def _task(**overrides) -> Task:
    fields = dict(
        id=7,
        user_id=1,
        title="Write report",
        category="work",
        priority=Priority.MEDIUM,
        date=DAY,
        xp_reward=30,
        gem_reward=2,
        due_time=time(18, 0),
    )
    fields.update(overrides)
    return Task(**fields)


class TestDueInstant:
    def test_combines_date_and_time(self):
        assert due_instant(_task()) == datetime(2026, 3, 2, 18, 0)

    def test_none_without_due_time(self):
        assert due_instant(_task(due_time=None)) is None

    def test_carries_timezone(self):
        due = due_instant(_task(), timezone.utc)
        assert due == datetime(2026, 3, 2, 18, 0, tzinfo=timezone.utc)


class TestCompleteTask:
    def test_on_time_awards_xp_and_gems(self):
        now = datetime(2026, 3, 2, 17, 0)
        result = complete_task(_task(), now)
        assert result.xp_delta == 30
        assert result.gem_delta == 2
        assert result.task.completed is True
        assert result.task.completed_at == now
        assert result.task.completed_on_time is True

    def test_late_withholds_gems_but_awards_xp(self):
        result = complete_task(_task(), datetime(2026, 3, 2, 19, 0))
        assert result.xp_delta == 30
        assert result.gem_delta == 0
        assert result.task.completed is True
        assert result.task.completed_on_time is False

    def test_exactly_at_due_time_is_on_time(self):
        result = complete_task(_task(), datetime(2026, 3, 2, 18, 0))
        assert result.task.completed_on_time is True
        assert result.gem_delta == 2

    def test_next_day_is_late(self):
        result = complete_task(_task(), datetime(2026, 3, 3, 8, 0))
        assert result.task.completed_on_time is False

    def test_no_due_time_is_always_on_time(self):
        result = complete_task(_task(due_time=None), datetime(2026, 3, 9, 23, 0))
        assert result.task.completed_on_time is True
        assert result.gem_delta == 2

    def test_timezone_aware_now(self):
        now = datetime(2026, 3, 2, 17, 59, tzinfo=timezone.utc)
        result = complete_task(_task(), now)
        assert result.task.completed_on_time is True

    def test_input_not_mutated(self):
        task = _task()
        complete_task(task, datetime(2026, 3, 2, 17, 0))
        assert task.completed is False
        assert task.completed_at is None

    def test_recompletion_is_a_noop(self):
        first = complete_task(_task(), datetime(2026, 3, 2, 17, 0))
        second = complete_task(first.task, datetime(2026, 3, 2, 20, 0))
        assert second.xp_delta == 0
        assert second.gem_delta == 0
        assert second.task == first.task


class TestCompleteSession:
    def _session(self, duration: int) -> FocusSession:
        return FocusSession(
            id=3, user_id=1, duration=duration, started_at=datetime(2026, 3, 2, 9, 0),
        )

    def test_pomodoro_awards_five_xp(self):
        now = datetime(2026, 3, 2, 9, 25)
        result = complete_session(self._session(25), now)
        assert result.xp_delta == 5
        assert result.session.completed is True
        assert result.session.completed_at == now

    def test_rounds_down(self):
        result = complete_session(self._session(44), datetime(2026, 3, 2, 10, 0))
        assert result.xp_delta == 8

    def test_short_session_awards_nothing(self):
        result = complete_session(self._session(4), datetime(2026, 3, 2, 9, 4))
        assert result.xp_delta == 0
        assert result.session.completed is True

    def test_recompletion_is_a_noop(self):
        first = complete_session(self._session(25), datetime(2026, 3, 2, 9, 25))
        second = complete_session(first.session, datetime(2026, 3, 2, 9, 30))
        assert second.xp_delta == 0
        assert second.session == first.session


class TestApplyDelta:
    def test_levels_up(self):
        user = User(id=1, display_name="Ana", xp=80, gems=4)
        updated = apply_delta(user, 30, 2)
        assert updated.xp == 110
        assert updated.level == 2
        assert updated.gems == 6

    def test_original_unchanged(self):
        user = User(id=1, display_name="Ana", xp=80)
        apply_delta(user, 30)
        assert user.xp == 80
        assert user.level == 1

    def test_zero_delta(self):
        user = User(id=1, display_name="Ana", xp=250, gems=3)
        assert apply_delta(user, 0, 0) == user


class TestCompleteGoal:
    def _goal(self) -> Goal:
        return Goal(
            id=1, user_id=1, title="Marathon",
            goal_type=GoalType.LONG_TERM, deadline=date(2026, 6, 1),
        )

    def test_marks_completed(self):
        now = datetime(2026, 5, 30, 12, 0)
        done = complete_goal(self._goal(), now)
        assert done.completed is True
        assert done.completed_at == now

    def test_already_completed_unchanged(self):
        done = complete_goal(self._goal(), datetime(2026, 5, 30, 12, 0))
        again = complete_goal(done, datetime(2026, 5, 31, 12, 0))
        assert again.completed_at == datetime(2026, 5, 30, 12, 0)


class TestRecordActivity:
    def test_first_activity_starts_streak(self):
        user = record_activity(User(id=1, display_name="Ana"), DAY)
        assert user.streak == 1
        assert user.last_active_date == DAY

    def test_consecutive_day_extends(self):
        user = User(id=1, display_name="Ana", streak=4, last_active_date=date(2026, 3, 1))
        assert record_activity(user, DAY).streak == 5

    def test_same_day_unchanged(self):
        user = User(id=1, display_name="Ana", streak=4, last_active_date=DAY)
        assert record_activity(user, DAY) == user

    def test_gap_resets(self):
        user = User(id=1, display_name="Ana", streak=9, last_active_date=date(2026, 2, 27))
        updated = record_activity(user, DAY)
        assert updated.streak == 1
        assert updated.last_active_date == DAY
