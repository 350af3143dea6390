"""Contract tests run against every StorePort implementation."""

from datetime import date, datetime, time

import pytest

from src.data.models import GoalType, MilestoneTaskSpec, Priority
from src.data.schemas import TaskCreate
from src.ports.store_port import NotFoundError

DAY = date(2026, 3, 2)


def _spec(day: date = DAY, title: str = "Milestone 1") -> MilestoneTaskSpec:
    return MilestoneTaskSpec(
        title=title, priority=Priority.MEDIUM, estimated_time=60,
        xp_reward=30, gem_reward=2, date=day,
    )


class TestUsers:
    def test_create_and_get(self, store):
        user = store.create_user("Ana")
        assert user.id is not None
        assert user.xp == 0
        assert user.level == 1

        fetched = store.get_user(user.id)
        assert fetched.display_name == "Ana"
        assert fetched.created_at is not None

    def test_get_missing(self, store):
        assert store.get_user(999) is None

    def test_update(self, store):
        user = store.create_user("Ana")
        updated = store.update_user(
            user.id, xp=110, gems=2, streak=1, last_active_date=DAY,
        )
        assert updated.xp == 110
        assert updated.level == 2
        assert store.get_user(user.id).last_active_date == DAY

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update_user(999, xp=10)

    def test_level_is_not_writable(self, store):
        user = store.create_user("Ana")
        with pytest.raises(ValueError):
            store.update_user(user.id, level=5)


class TestGoals:
    def test_create_and_get(self, store):
        user = store.create_user("Ana")
        goal = store.create_goal(
            user.id, "Marathon", GoalType.LONG_TERM, date(2026, 6, 1), description="42k",
        )
        fetched = store.get_goal(goal.id)
        assert fetched.title == "Marathon"
        assert fetched.goal_type is GoalType.LONG_TERM
        assert fetched.deadline == date(2026, 6, 1)
        assert fetched.description == "42k"
        assert fetched.completed is False

    def test_list_active_only(self, store):
        user = store.create_user("Ana")
        a = store.create_goal(user.id, "A", GoalType.SHORT_TERM, date(2026, 3, 9))
        store.create_goal(user.id, "B", GoalType.SHORT_TERM, date(2026, 3, 5))
        store.update_goal(a.id, completed=True, completed_at=datetime(2026, 3, 4, 10, 0))

        assert [g.title for g in store.list_goals(user.id)] == ["B", "A"]
        assert [g.title for g in store.list_goals(user.id, active_only=True)] == ["B"]

    def test_list_scoped_to_user(self, store):
        ana = store.create_user("Ana")
        ben = store.create_user("Ben")
        store.create_goal(ana.id, "A", GoalType.SHORT_TERM, DAY)
        assert store.list_goals(ben.id) == []

    def test_delete_detaches_tasks(self, store):
        user = store.create_user("Ana")
        goal = store.create_goal(user.id, "A", GoalType.SHORT_TERM, date(2026, 3, 9))
        task = store.create_task(user.id, _spec(), goal_id=goal.id)

        assert store.delete_goal(goal.id) is True
        assert store.get_goal(goal.id) is None
        kept = store.get_task(task.id)
        assert kept is not None
        assert kept.goal_id is None

    def test_delete_missing(self, store):
        assert store.delete_goal(999) is False


class TestTasks:
    def test_create_from_milestone_spec(self, store):
        user = store.create_user("Ana")
        task = store.create_task(user.id, _spec(), goal_id=5)
        fetched = store.get_task(task.id)
        assert fetched.goal_id == 5
        assert fetched.priority is Priority.MEDIUM
        assert fetched.due_time == time(18, 0)
        assert fetched.date == DAY
        assert fetched.category == "personal"
        assert fetched.completed is False

    def test_create_from_validated_input(self, store):
        user = store.create_user("Ana")
        data = TaskCreate(
            title="Read", category="learning", priority="high", date="2026-03-02",
            external_links="https://example.com", estimated_time=45, goal_id=3,
        )
        task = store.create_task(user.id, data)
        fetched = store.get_task(task.id)
        assert fetched.goal_id == 3
        assert fetched.external_links == "https://example.com"
        assert fetched.estimated_time == 45
        assert fetched.due_time is None
        assert fetched.priority is Priority.HIGH

    def test_list_filters(self, store):
        user = store.create_user("Ana")
        store.create_task(user.id, _spec(DAY, "a"), goal_id=1)
        store.create_task(user.id, _spec(date(2026, 3, 3), "b"), goal_id=1)
        store.create_task(user.id, _spec(DAY, "c"), goal_id=2)

        assert [t.title for t in store.list_tasks(user.id)] == ["a", "c", "b"]
        assert [t.title for t in store.list_tasks(user.id, on_date=DAY)] == ["a", "c"]
        assert [t.title for t in store.list_tasks(user.id, goal_id=1)] == ["a", "b"]
        assert [t.title for t in store.list_tasks(user.id, on_date=DAY, goal_id=2)] == ["c"]

    def test_update_completion_roundtrip(self, store):
        user = store.create_user("Ana")
        task = store.create_task(user.id, _spec())
        done_at = datetime(2026, 3, 2, 17, 0)
        updated = store.update_task(
            task.id, completed=True, completed_at=done_at, completed_on_time=True,
        )
        assert updated.completed is True
        assert updated.completed_at == done_at
        assert updated.completed_on_time is True

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update_task(999, completed=True)

    def test_delete(self, store):
        user = store.create_user("Ana")
        task = store.create_task(user.id, _spec())
        assert store.delete_task(task.id) is True
        assert store.get_task(task.id) is None
        assert store.delete_task(task.id) is False


class TestSessions:
    def test_create_get_update(self, store):
        user = store.create_user("Ana")
        started = datetime(2026, 3, 2, 9, 0)
        session = store.create_session(user.id, 25, started, task_id=4)

        fetched = store.get_session(session.id)
        assert fetched.duration == 25
        assert fetched.task_id == 4
        assert fetched.started_at == started
        assert fetched.completed is False

        done = store.update_session(
            session.id, completed=True, completed_at=datetime(2026, 3, 2, 9, 25),
        )
        assert done.completed is True

    def test_list_sessions(self, store):
        user = store.create_user("Ana")
        store.create_session(user.id, 25, datetime(2026, 3, 2, 9, 0))
        store.create_session(user.id, 5, datetime(2026, 3, 2, 9, 30))
        assert [s.duration for s in store.list_sessions(user.id)] == [25, 5]

    def test_update_missing_raises(self, store):
        with pytest.raises(NotFoundError):
            store.update_session(999, completed=True)


class TestTransaction:
    def test_commits_on_success(self, store):
        with store.transaction():
            user = store.create_user("Ana")
            store.update_user(user.id, xp=50)
        assert store.get_user(user.id).xp == 50

    def test_rolls_back_on_error(self, store):
        user = store.create_user("Ana")
        with pytest.raises(RuntimeError):
            with store.transaction():
                store.update_user(user.id, xp=50)
                store.create_goal(user.id, "A", GoalType.SHORT_TERM, DAY)
                raise RuntimeError("boom")

        assert store.get_user(user.id).xp == 0
        assert store.list_goals(user.id) == []

    def test_nested_joins_outer(self, store):
        user = store.create_user("Ana")
        with pytest.raises(RuntimeError):
            with store.transaction():
                with store.transaction():
                    store.update_user(user.id, xp=50)
                raise RuntimeError("boom")
        assert store.get_user(user.id).xp == 0
