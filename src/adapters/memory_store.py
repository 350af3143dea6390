"""In-memory store adapter — implements StorePort.

Keeps every record in per-kind dicts keyed by id. Records are copied on the
way in and out so callers never share mutable state with the store.
Useful for tests and single-process demos; nothing survives a restart.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields as dataclass_fields, replace
from datetime import date, datetime
from typing import Any, TypeVar

from src.data.models import (
    FocusSession,
    Goal,
    GoalType,
    MilestoneTaskSpec,
    Task,
    User,
)
from src.data.schemas import TaskCreate
from src.ports.store_port import NotFoundError

logger = logging.getLogger(__name__)

_R = TypeVar("_R", User, Goal, Task, FocusSession)

# Fields callers may overwrite through update_*; identity and ownership are fixed
_IMMUTABLE = frozenset({"id", "user_id", "created_at", "started_at", "goal_type", "deadline"})

_MISSING = object()


class MemoryStore:
    """Dict-backed implementation of StorePort."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._users: dict[int, User] = {}
        self._goals: dict[int, Goal] = {}
        self._tasks: dict[int, Task] = {}
        self._sessions: dict[int, FocusSession] = {}
        self._next_ids = {"user": 1, "goal": 1, "task": 1, "session": 1}
        # (table, key, previous value) for each write in the open transaction
        self._journal: list[tuple[dict, Any, Any]] | None = None

    def _allocate_id(self, kind: str) -> int:
        record_id = self._next_ids[kind]
        self._put(self._next_ids, kind, record_id + 1)
        return record_id

    def _put(self, table: dict, key: Any, value: Any) -> None:
        if self._journal is not None:
            self._journal.append((table, key, table.get(key, _MISSING)))
        table[key] = value

    def _pop(self, table: dict, key: Any) -> Any:
        value = table.pop(key, None)
        if value is not None and self._journal is not None:
            self._journal.append((table, key, value))
        return value

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Hold the store lock; undo every write made inside if the body raises.

        Nested transactions join the outermost one.
        """
        with self._lock:
            if self._journal is not None:
                yield
                return
            self._journal = []
            try:
                yield
            except Exception:
                for table, key, previous in reversed(self._journal):
                    if previous is _MISSING:
                        table.pop(key, None)
                    else:
                        table[key] = previous
                logger.error(
                    "Transaction rolled back in memory store: %d writes undone", len(self._journal),
                )
                raise
            finally:
                self._journal = None

    @staticmethod
    def _apply(kind: str, record: _R, changes: dict[str, Any]) -> _R:
        allowed = {f.name for f in dataclass_fields(record)} - _IMMUTABLE
        unknown = set(changes) - allowed
        if unknown:
            raise ValueError(f"Cannot update {kind} fields: {', '.join(sorted(unknown))}")
        return replace(record, **changes)

    # Users

    def create_user(self, display_name: str) -> User:
        with self._lock:
            user = User(
                id=self._allocate_id("user"),
                display_name=display_name,
                created_at=datetime.now(),
            )
            self._put(self._users, user.id, user)
        logger.info("User registered: #%d '%s'", user.id, display_name)
        return replace(user)

    def get_user(self, user_id: int) -> User | None:
        with self._lock:
            user = self._users.get(user_id)
        return replace(user) if user is not None else None

    def update_user(self, user_id: int, **fields: Any) -> User:
        with self._lock:
            user = self._users.get(user_id)
            if user is None:
                raise NotFoundError("user", user_id)
            user = self._apply("user", user, fields)
            self._put(self._users, user_id, user)
        logger.info("User #%d updated: %s", user_id, ", ".join(fields))
        return replace(user)

    # Goals

    def create_goal(
        self,
        user_id: int,
        title: str,
        goal_type: GoalType,
        deadline: date,
        description: str | None = None,
    ) -> Goal:
        with self._lock:
            goal = Goal(
                id=self._allocate_id("goal"),
                user_id=user_id,
                title=title,
                description=description,
                goal_type=goal_type,
                deadline=deadline,
                created_at=datetime.now(),
            )
            self._put(self._goals, goal.id, goal)
        logger.info("Goal added: #%d '%s' (%s, due %s)", goal.id, title, goal_type.value, deadline)
        return replace(goal)

    def get_goal(self, goal_id: int) -> Goal | None:
        with self._lock:
            goal = self._goals.get(goal_id)
        return replace(goal) if goal is not None else None

    def list_goals(self, user_id: int, active_only: bool = False) -> list[Goal]:
        with self._lock:
            goals = [
                replace(g) for g in self._goals.values()
                if g.user_id == user_id and not (active_only and g.completed)
            ]
        return sorted(goals, key=lambda g: (g.deadline, g.id))

    def update_goal(self, goal_id: int, **fields: Any) -> Goal:
        with self._lock:
            goal = self._goals.get(goal_id)
            if goal is None:
                raise NotFoundError("goal", goal_id)
            goal = self._apply("goal", goal, fields)
            self._put(self._goals, goal_id, goal)
        return replace(goal)

    def delete_goal(self, goal_id: int) -> bool:
        """Delete a goal and detach (not delete) its tasks."""
        with self._lock:
            if self._pop(self._goals, goal_id) is None:
                return False
            for task_id, task in list(self._tasks.items()):
                if task.goal_id == goal_id:
                    self._put(self._tasks, task_id, replace(task, goal_id=None))
        logger.info("Goal #%d deleted, its tasks detached", goal_id)
        return True

    # Tasks

    def create_task(
        self,
        user_id: int,
        spec: MilestoneTaskSpec | TaskCreate,
        goal_id: int | None = None,
    ) -> Task:
        if goal_id is None:
            goal_id = getattr(spec, "goal_id", None)
        with self._lock:
            task = Task(
                id=self._allocate_id("task"),
                user_id=user_id,
                goal_id=goal_id,
                title=spec.title,
                category=spec.category,
                priority=spec.priority,
                estimated_time=spec.estimated_time,
                external_links=getattr(spec, "external_links", None),
                xp_reward=spec.xp_reward,
                gem_reward=spec.gem_reward,
                due_time=spec.due_time,
                date=spec.date,
                created_at=datetime.now(),
            )
            self._put(self._tasks, task.id, task)
        logger.info("Task added: #%d '%s' on %s", task.id, spec.title, spec.date)
        return replace(task)

    def get_task(self, task_id: int) -> Task | None:
        with self._lock:
            task = self._tasks.get(task_id)
        return replace(task) if task is not None else None

    def list_tasks(
        self,
        user_id: int,
        on_date: date | None = None,
        goal_id: int | None = None,
    ) -> list[Task]:
        with self._lock:
            tasks = [replace(t) for t in self._tasks.values() if t.user_id == user_id]
        if on_date is not None:
            tasks = [t for t in tasks if t.date == on_date]
        if goal_id is not None:
            tasks = [t for t in tasks if t.goal_id == goal_id]
        return sorted(tasks, key=lambda t: (t.date, t.id))

    def update_task(self, task_id: int, **fields: Any) -> Task:
        with self._lock:
            task = self._tasks.get(task_id)
            if task is None:
                raise NotFoundError("task", task_id)
            task = self._apply("task", task, fields)
            self._put(self._tasks, task_id, task)
        return replace(task)

    def delete_task(self, task_id: int) -> bool:
        with self._lock:
            deleted = self._pop(self._tasks, task_id) is not None
        if deleted:
            logger.info("Task #%d deleted", task_id)
        return deleted

    # Focus sessions

    def create_session(
        self,
        user_id: int,
        duration: int,
        started_at: datetime,
        task_id: int | None = None,
    ) -> FocusSession:
        with self._lock:
            session = FocusSession(
                id=self._allocate_id("session"),
                user_id=user_id,
                task_id=task_id,
                duration=duration,
                started_at=started_at,
            )
            self._put(self._sessions, session.id, session)
        logger.info("Focus session started: #%d (%d min)", session.id, duration)
        return replace(session)

    def get_session(self, session_id: int) -> FocusSession | None:
        with self._lock:
            session = self._sessions.get(session_id)
        return replace(session) if session is not None else None

    def update_session(self, session_id: int, **fields: Any) -> FocusSession:
        with self._lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise NotFoundError("focus_session", session_id)
            session = self._apply("focus_session", session, fields)
            self._put(self._sessions, session_id, session)
        return replace(session)

    def list_sessions(self, user_id: int) -> list[FocusSession]:
        with self._lock:
            sessions = [replace(s) for s in self._sessions.values() if s.user_id == user_id]
        return sorted(sessions, key=lambda s: (s.started_at, s.id))
