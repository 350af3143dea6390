"""Dashboard statistics — pure aggregation over tasks and goals."""

from __future__ import annotations

from datetime import date

from src.data.models import DailyStats, Goal, Task


def calculate_progress(completed: int, total: int) -> int:
    """Percentage of completed items rounded half up, 0 when there are none."""
    if total == 0:
        return 0
    return (completed * 200 + total) // (total * 2)


def build_daily_stats(tasks: list[Task]) -> DailyStats:
    """Summarize one day's tasks: progress, counts and XP earned so far."""
    done = [t for t in tasks if t.completed]
    return DailyStats(
        progress_percentage=calculate_progress(len(done), len(tasks)),
        completed_tasks=len(done),
        total_tasks=len(tasks),
        earned_xp=sum(t.xp_reward for t in done),
    )


def days_left(goal: Goal, today: date) -> int:
    """Days until the goal's deadline; 0 or less means due today or overdue."""
    return (goal.deadline - today).days
