"""
Milestone Quest — Input schemas.

Boundary validation for everything that enters the service layer.
The engine assumes these ranges and never re-checks them.
"""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, Field

from src.data.models import GoalType, Priority


class GoalCreate(BaseModel):
    """A new goal.

    JSON example:
    {
        "title": "Run a 10k",
        "goal_type": "short-term",
        "deadline": "2026-11-01"
    }
    """
    title: str = Field(min_length=1)
    description: str | None = None
    goal_type: GoalType
    deadline: dt.date


class TaskCreate(BaseModel):
    """A standalone task.

    JSON example:
    {
        "title": "Read chapter 3",
        "category": "learning",
        "priority": "high",
        "estimated_time": 45,
        "xp_reward": 25,
        "gem_reward": 2,
        "due_time": "18:00",
        "date": "2026-10-18"
    }
    """
    title: str = Field(min_length=1)
    category: str = Field(default="personal", min_length=1)
    priority: Priority = Priority.MEDIUM
    estimated_time: int | None = Field(default=None, ge=5, le=480)  # minutes
    external_links: str | None = None
    xp_reward: int = Field(default=20, ge=5, le=100)
    gem_reward: int = Field(default=1, ge=1, le=10)
    due_time: dt.time | None = None  # HH:MM, local
    date: dt.date
    goal_id: int | None = None


class SessionCreate(BaseModel):
    """A focus session about to start (pomodoro 25, short break 5,
    long break 15, custom 45)."""
    duration: int = Field(ge=1)  # minutes
    task_id: int | None = None
