"""Milestone timeline generator — pure business logic.

Turns a goal's type and deadline into an ordered list of dated milestone
task specs between today and the deadline.

No I/O: ``today`` is always passed in by the caller.
"""

from __future__ import annotations

import logging
import math
from datetime import date, time, timedelta
from typing import TYPE_CHECKING

from src.data.models import GoalType, MilestoneTaskSpec, Priority

if TYPE_CHECKING:
    from src.data.models import Goal
    from src.data.schemas import GoalCreate

logger = logging.getLogger(__name__)

MILESTONE_DUE_TIME = time(18, 0)
MILESTONE_CATEGORY = "personal"

# Short-term goals: at most one milestone per day, capped at a week's worth
SHORT_TERM_MAX_TASKS = 7
SHORT_TERM_MINUTES = 60
SHORT_TERM_XP = 30
SHORT_TERM_GEMS = 2

# Long-term goals: one progress check-in per week
LONG_TERM_MINUTES = 120
LONG_TERM_XP = 50
LONG_TERM_GEMS = 3


def generate_timeline(goal: Goal | GoalCreate, today: date) -> list[MilestoneTaskSpec]:
    """Build the milestone task specs for a goal.

    Args:
        goal: Anything with ``title``, ``goal_type`` and ``deadline``.
        today: The day the timeline starts on.

    Returns:
        Specs in ascending date order. Empty when the deadline is today or
        already past; the goal itself is still valid in that case.
    """
    total_days = (goal.deadline - today).days
    if total_days <= 0:
        logger.info(
            "Goal '%s' has deadline %s on or before %s; no milestones generated",
            goal.title, goal.deadline, today,
        )
        return []

    if goal.goal_type is GoalType.SHORT_TERM:
        specs = _short_term_milestones(goal.title, total_days, today)
    else:
        specs = _long_term_milestones(goal.title, total_days, today, goal.deadline)

    logger.debug(
        "Generated %d milestones for '%s' (%s, %d days)",
        len(specs), goal.title, goal.goal_type.value, total_days,
    )
    return specs


def _short_term_milestones(
    title: str, total_days: int, today: date,
) -> list[MilestoneTaskSpec]:
    task_count = min(total_days, SHORT_TERM_MAX_TASKS)
    specs: list[MilestoneTaskSpec] = []
    for i in range(task_count):
        # floor(total_days / task_count * i) without float rounding
        offset = total_days * i // task_count
        specs.append(MilestoneTaskSpec(
            title=f"{title} - Milestone {i + 1}",
            priority=Priority.HIGH if i == task_count - 1 else Priority.MEDIUM,
            estimated_time=SHORT_TERM_MINUTES,
            xp_reward=SHORT_TERM_XP,
            gem_reward=SHORT_TERM_GEMS,
            date=today + timedelta(days=offset),
            due_time=MILESTONE_DUE_TIME,
            category=MILESTONE_CATEGORY,
        ))
    return specs


def _long_term_milestones(
    title: str, total_days: int, today: date, deadline: date,
) -> list[MilestoneTaskSpec]:
    week_count = math.ceil(total_days / 7)
    specs: list[MilestoneTaskSpec] = []
    for week in range(week_count):
        due = today + timedelta(weeks=week)
        if due > deadline:
            continue
        specs.append(MilestoneTaskSpec(
            title=f"{title} - Week {week + 1} Progress",
            priority=Priority.HIGH if week == week_count - 1 else Priority.MEDIUM,
            estimated_time=LONG_TERM_MINUTES,
            xp_reward=LONG_TERM_XP,
            gem_reward=LONG_TERM_GEMS,
            date=due,
            due_time=MILESTONE_DUE_TIME,
            category=MILESTONE_CATEGORY,
        ))
    return specs
