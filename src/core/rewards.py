"""Reward engine — pure business logic.

Computes what completing a task or a focus session is worth and returns
updated copies of the records. Nothing here persists anything: the caller
writes the returned records back inside a store transaction.

Completing something that is already completed is a no-op that awards
nothing, so retried requests never pay out twice.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from datetime import date, datetime, timedelta, tzinfo

from src.data.models import FocusSession, Goal, Task, User

logger = logging.getLogger(__name__)

SESSION_MINUTES_PER_XP = 5


@dataclass
class TaskReward:
    """Outcome of completing a task."""

    task: Task
    xp_delta: int
    gem_delta: int


@dataclass
class SessionReward:
    """Outcome of completing a focus session."""

    session: FocusSession
    xp_delta: int


def due_instant(task: Task, tz: tzinfo | None = None) -> datetime | None:
    """Combine a task's date and due time into the instant it is due.

    Returns None for tasks without a due time.
    """
    if task.due_time is None:
        return None
    return datetime.combine(task.date, task.due_time, tzinfo=tz)


def complete_task(task: Task, now: datetime) -> TaskReward:
    """Mark a task completed at ``now`` and compute its reward.

    XP is always credited. Gems are credited only when ``now`` is at or
    before the task's due instant (tasks with no due time are always on
    time). The due instant takes ``now``'s timezone.
    """
    if task.completed:
        logger.info("Task #%d already completed; no reward", task.id)
        return TaskReward(task=task, xp_delta=0, gem_delta=0)

    due = due_instant(task, now.tzinfo)
    on_time = due is None or now <= due

    updated = replace(
        task, completed=True, completed_at=now, completed_on_time=on_time,
    )
    gem_delta = task.gem_reward if on_time else 0
    logger.debug(
        "Task #%d completed %s: +%d XP, +%d gems",
        task.id, "on time" if on_time else "late", task.xp_reward, gem_delta,
    )
    return TaskReward(task=updated, xp_delta=task.xp_reward, gem_delta=gem_delta)


def complete_session(session: FocusSession, now: datetime) -> SessionReward:
    """Mark a focus session completed; 1 XP per 5 minutes, rounded down."""
    if session.completed:
        logger.info("Session #%d already completed; no reward", session.id)
        return SessionReward(session=session, xp_delta=0)

    updated = replace(session, completed=True, completed_at=now)
    return SessionReward(
        session=updated, xp_delta=session.duration // SESSION_MINUTES_PER_XP,
    )


def apply_delta(user: User, xp_delta: int, gem_delta: int = 0) -> User:
    """Return ``user`` with the deltas added; level follows from the new XP."""
    return replace(user, xp=user.xp + xp_delta, gems=user.gems + gem_delta)


def complete_goal(goal: Goal, now: datetime) -> Goal:
    """Mark a goal completed. Goals carry no reward of their own."""
    if goal.completed:
        return goal
    return replace(goal, completed=True, completed_at=now)


def record_activity(user: User, today: date) -> User:
    """Update the daily streak for activity on ``today``.

    Activity on consecutive days extends the streak; a missed day (or no
    earlier activity) starts it again at 1.
    """
    last = user.last_active_date
    if last == today:
        return user
    if last is not None and last + timedelta(days=1) == today:
        streak = user.streak + 1
    else:
        streak = 1
    return replace(user, streak=streak, last_active_date=today)
