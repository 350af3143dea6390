"""
Milestone Quest — UI-Agnostic Progress Service.

Stateless service layer that orchestrates the engine and the store:
validate input -> open a store transaction -> read records -> run the pure
engine -> write the results back -> return structured response objects.

Every read-modify-write of a user's XP and gems happens inside one store
transaction, so two completions for the same user can never overwrite each
other's award. Goal creation inserts the goal and its whole timeline in one
transaction, so a failure leaves neither behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from src.core import rewards
from src.core.dashboard import build_daily_stats
from src.core.progression import xp_for_next_level, xp_progress_percent
from src.core.timeline import generate_timeline
from src.data.models import Dashboard, FocusSession, Goal, Task, User
from src.data.schemas import GoalCreate, SessionCreate, TaskCreate
from src.ports.store_port import NotFoundError

if TYPE_CHECKING:
    from src.ports.clock_port import ClockPort
    from src.ports.store_port import StorePort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Response types
# ---------------------------------------------------------------------------


@dataclass
class GoalPlan:
    goal: Goal
    tasks: list[Task] = field(default_factory=list)


@dataclass
class TaskCompletion:
    task: Task
    user: User
    xp_delta: int = 0
    gem_delta: int = 0
    leveled_up: bool = False
    already_completed: bool = False


@dataclass
class SessionCompletion:
    session: FocusSession
    user: User
    xp_delta: int = 0
    leveled_up: bool = False
    already_completed: bool = False


@dataclass
class ProgressSnapshot:
    level: int
    xp: int
    xp_for_next_level: int
    xp_progress_percent: int
    gems: int
    streak: int


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class ProgressService:
    """Goal, task and reward operations for the request layer."""

    def __init__(self, store: StorePort, clock: ClockPort) -> None:
        self._store = store
        self._clock = clock

    def _require_user(self, user_id: int) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def register_user(self, display_name: str) -> User:
        return self._store.create_user(display_name)

    # -- goals --------------------------------------------------------------

    def create_goal(self, user_id: int, data: GoalCreate | dict) -> GoalPlan:
        """Create a goal and persist its generated milestone timeline.

        A deadline today or earlier still creates the goal, with no tasks.
        """
        data = GoalCreate.model_validate(data)
        today = self._clock.today()
        with self._store.transaction():
            self._require_user(user_id)
            goal = self._store.create_goal(
                user_id=user_id,
                title=data.title,
                goal_type=data.goal_type,
                deadline=data.deadline,
                description=data.description,
            )
            tasks = [
                self._store.create_task(user_id, spec, goal_id=goal.id)
                for spec in generate_timeline(goal, today)
            ]

        logger.info(
            "Goal #%d '%s' planned with %d milestones", goal.id, goal.title, len(tasks),
        )
        return GoalPlan(goal=goal, tasks=tasks)

    def complete_goal(self, goal_id: int) -> Goal:
        now = self._clock.now()
        with self._store.transaction():
            goal = self._store.get_goal(goal_id)
            if goal is None:
                raise NotFoundError("goal", goal_id)
            if goal.completed:
                return goal
            done = rewards.complete_goal(goal, now)
            goal = self._store.update_goal(
                goal_id, completed=done.completed, completed_at=done.completed_at,
            )
        logger.info("Goal #%d completed", goal_id)
        return goal

    def delete_goal(self, goal_id: int) -> bool:
        """Delete a goal. Its tasks remain, detached from it."""
        return self._store.delete_goal(goal_id)

    # -- tasks --------------------------------------------------------------

    def add_task(self, user_id: int, data: TaskCreate | dict) -> Task:
        data = TaskCreate.model_validate(data)
        with self._store.transaction():
            self._require_user(user_id)
            return self._store.create_task(user_id, data)

    def delete_task(self, task_id: int) -> bool:
        """Delete a task. Focus sessions that referenced it keep the id."""
        deleted = self._store.delete_task(task_id)
        if not deleted:
            logger.info("Task #%d not found; nothing deleted", task_id)
        return deleted

    def complete_task(self, task_id: int) -> TaskCompletion:
        """Complete a task and credit its reward to the owner.

        Completing an already-completed task changes nothing and awards
        nothing.
        """
        now = self._clock.now()
        with self._store.transaction():
            task = self._store.get_task(task_id)
            if task is None:
                raise NotFoundError("task", task_id)
            user = self._require_user(task.user_id)

            if task.completed:
                logger.info("Task #%d was already completed; nothing awarded", task_id)
                return TaskCompletion(task=task, user=user, already_completed=True)

            reward = rewards.complete_task(task, now)
            rewarded = rewards.apply_delta(user, reward.xp_delta, reward.gem_delta)
            rewarded = rewards.record_activity(rewarded, self._clock.today())

            task = self._store.update_task(
                task_id,
                completed=reward.task.completed,
                completed_at=reward.task.completed_at,
                completed_on_time=reward.task.completed_on_time,
            )
            updated = self._store.update_user(
                user.id,
                xp=rewarded.xp,
                gems=rewarded.gems,
                streak=rewarded.streak,
                last_active_date=rewarded.last_active_date,
            )

        leveled_up = updated.level > user.level
        logger.info(
            "Task #%d completed %s by user #%d: +%d XP, +%d gems%s",
            task_id, "on time" if task.completed_on_time else "late", user.id,
            reward.xp_delta, reward.gem_delta,
            f", now level {updated.level}" if leveled_up else "",
        )
        return TaskCompletion(
            task=task,
            user=updated,
            xp_delta=reward.xp_delta,
            gem_delta=reward.gem_delta,
            leveled_up=leveled_up,
        )

    # -- focus sessions -----------------------------------------------------

    def start_session(self, user_id: int, data: SessionCreate | dict) -> FocusSession:
        data = SessionCreate.model_validate(data)
        with self._store.transaction():
            self._require_user(user_id)
            if data.task_id is not None and self._store.get_task(data.task_id) is None:
                raise NotFoundError("task", data.task_id)
            return self._store.create_session(
                user_id=user_id,
                duration=data.duration,
                started_at=self._clock.now(),
                task_id=data.task_id,
            )

    def complete_session(self, session_id: int) -> SessionCompletion:
        """Complete a focus session and credit its bonus XP."""
        now = self._clock.now()
        with self._store.transaction():
            session = self._store.get_session(session_id)
            if session is None:
                raise NotFoundError("focus_session", session_id)
            user = self._require_user(session.user_id)

            if session.completed:
                logger.info("Session #%d was already completed; nothing awarded", session_id)
                return SessionCompletion(session=session, user=user, already_completed=True)

            reward = rewards.complete_session(session, now)
            rewarded = rewards.apply_delta(user, reward.xp_delta)

            session = self._store.update_session(
                session_id, completed=True, completed_at=reward.session.completed_at,
            )
            updated = self._store.update_user(user.id, xp=rewarded.xp)

        leveled_up = updated.level > user.level
        logger.info(
            "Session #%d completed by user #%d: +%d XP", session_id, user.id, reward.xp_delta,
        )
        return SessionCompletion(
            session=session, user=updated, xp_delta=reward.xp_delta, leveled_up=leveled_up,
        )

    def focus_history(self, user_id: int) -> list[FocusSession]:
        """All of a user's focus sessions, oldest first."""
        self._require_user(user_id)
        return self._store.list_sessions(user_id)

    # -- read models --------------------------------------------------------

    def user_progress(self, user_id: int) -> ProgressSnapshot:
        user = self._require_user(user_id)
        return ProgressSnapshot(
            level=user.level,
            xp=user.xp,
            xp_for_next_level=xp_for_next_level(user.xp),
            xp_progress_percent=xp_progress_percent(user.xp),
            gems=user.gems,
            streak=user.streak,
        )

    def dashboard(self, user_id: int, on_date: date | None = None) -> Dashboard:
        """Today's tasks (or ``on_date``'s), active goals and completion stats."""
        if on_date is None:
            on_date = self._clock.today()
        user = self._require_user(user_id)
        tasks = self._store.list_tasks(user_id, on_date=on_date)
        goals = self._store.list_goals(user_id, active_only=True)
        return Dashboard(user=user, tasks=tasks, goals=goals, stats=build_daily_stats(tasks))
