"""
Milestone Quest — Data Models.

Plain records shared by the engine, the stores and the service layer.
Dates are ``datetime.date``, due times ``datetime.time`` and instants
``datetime.datetime``; stores convert them to ISO strings on the way in.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time
from enum import Enum

from src.core.progression import level_for_xp


class GoalType(Enum):
    SHORT_TERM = "short-term"
    LONG_TERM = "long-term"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class User:
    """A player whose XP and gems accumulate as tasks are completed.

    ``level`` is derived from ``xp`` on every read and cannot be set.
    """

    id: int
    display_name: str
    xp: int = 0
    gems: int = 0
    streak: int = 0
    last_active_date: date | None = None
    created_at: datetime | None = None

    @property
    def level(self) -> int:
        return level_for_xp(self.xp)


@dataclass
class Goal:
    """A user-stated goal with a deadline.

    Only the completion fields change after creation.
    """

    id: int
    user_id: int
    title: str
    goal_type: GoalType
    deadline: date
    description: str | None = None
    completed: bool = False
    completed_at: datetime | None = None
    created_at: datetime | None = None


@dataclass(frozen=True)
class MilestoneTaskSpec:
    """A generated milestone, not yet persisted as a Task."""

    title: str
    priority: Priority
    estimated_time: int       # minutes
    xp_reward: int
    gem_reward: int
    date: date                # the day it is due
    due_time: time = time(18, 0)
    category: str = "personal"


@dataclass
class Task:
    """A dated task, either a persisted milestone or a standalone one.

    ``goal_id`` is a plain lookup key: the task outlives its goal.
    """

    id: int
    user_id: int
    title: str
    category: str
    priority: Priority
    date: date
    xp_reward: int = 20
    gem_reward: int = 1
    estimated_time: int | None = None
    external_links: str | None = None
    due_time: time | None = None
    goal_id: int | None = None
    completed: bool = False
    completed_at: datetime | None = None
    completed_on_time: bool = False
    created_at: datetime | None = None


@dataclass
class FocusSession:
    """A timed focus interval (pomodoro), optionally tied to a task."""

    id: int
    user_id: int
    duration: int             # minutes
    task_id: int | None = None
    completed: bool = False
    started_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass
class DailyStats:
    """Completion figures for one day's task list."""

    progress_percentage: int
    completed_tasks: int
    total_tasks: int
    earned_xp: int = 0


@dataclass
class Dashboard:
    user: User
    tasks: list[Task] = field(default_factory=list)
    goals: list[Goal] = field(default_factory=list)
    stats: DailyStats | None = None
