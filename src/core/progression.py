"""Level arithmetic — pure functions over accumulated XP.

Single source of truth for levels: the User model, the reward engine and
the dashboard all derive level and progress from here.
"""

from __future__ import annotations

XP_PER_LEVEL = 100


def level_for_xp(xp: int) -> int:
    """Return the level reached with ``xp`` points (level 1 starts at 0 XP)."""
    return xp // XP_PER_LEVEL + 1


def xp_for_next_level(xp: int) -> int:
    """Total XP at which the next level is reached."""
    return level_for_xp(xp) * XP_PER_LEVEL


def xp_progress_percent(xp: int) -> int:
    """Percentage of the way through the current level, 0-99."""
    level_floor = (level_for_xp(xp) - 1) * XP_PER_LEVEL
    return round((xp - level_floor) / XP_PER_LEVEL * 100)
