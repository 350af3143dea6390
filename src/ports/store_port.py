"""Store port — abstract persistence interface for goals, tasks, users and sessions.

The service layer depends on this protocol, never on a specific backend.
Reads return None for missing records; updates of missing records raise
NotFoundError.
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from datetime import date, datetime
from typing import Any, Protocol

from src.data.models import (
    FocusSession,
    Goal,
    GoalType,
    MilestoneTaskSpec,
    Task,
    User,
)
from src.data.schemas import TaskCreate


class NotFoundError(LookupError):
    """Raised when a referenced record does not exist."""

    def __init__(self, kind: str, record_id: int) -> None:
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.record_id = record_id


class StorePort(Protocol):
    """Abstract store used by the progress service.

    ``transaction()`` makes every store call made inside it, on the same
    thread, a single all-or-nothing unit that no other writer interleaves
    with.
    """

    def transaction(self) -> AbstractContextManager[None]: ...

    # Users
    def create_user(self, display_name: str) -> User: ...

    def get_user(self, user_id: int) -> User | None: ...

    def update_user(self, user_id: int, **fields: Any) -> User: ...

    # Goals
    def create_goal(
        self,
        user_id: int,
        title: str,
        goal_type: GoalType,
        deadline: date,
        description: str | None = None,
    ) -> Goal: ...

    def get_goal(self, goal_id: int) -> Goal | None: ...

    def list_goals(self, user_id: int, active_only: bool = False) -> list[Goal]: ...

    def update_goal(self, goal_id: int, **fields: Any) -> Goal: ...

    def delete_goal(self, goal_id: int) -> bool: ...

    # Tasks
    def create_task(
        self,
        user_id: int,
        spec: MilestoneTaskSpec | TaskCreate,
        goal_id: int | None = None,
    ) -> Task: ...

    def get_task(self, task_id: int) -> Task | None: ...

    def list_tasks(
        self,
        user_id: int,
        on_date: date | None = None,
        goal_id: int | None = None,
    ) -> list[Task]: ...

    def update_task(self, task_id: int, **fields: Any) -> Task: ...

    def delete_task(self, task_id: int) -> bool: ...

    # Focus sessions
    def create_session(
        self,
        user_id: int,
        duration: int,
        started_at: datetime,
        task_id: int | None = None,
    ) -> FocusSession: ...

    def get_session(self, session_id: int) -> FocusSession | None: ...

    def update_session(self, session_id: int, **fields: Any) -> FocusSession: ...

    def list_sessions(self, user_id: int) -> list[FocusSession]: ...
