"""
Milestone Quest — Entry Point.

`python main.py` plans a sample goal for a demo player against the
configured store and prints the resulting timeline and progress.
"""

import logging
from datetime import timedelta

from src.config import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

from src.adapters.store_factory import create_store
from src.adapters.system_clock import SystemClock
from src.core.progress_service import ProgressService


def main() -> None:
    clock = SystemClock()
    service = ProgressService(create_store(), clock)

    user = service.register_user("Demo player")
    plan = service.create_goal(user.id, {
        "title": "Finish the reading list",
        "goal_type": "short-term",
        "deadline": (clock.today() + timedelta(days=10)).isoformat(),
    })

    print(f"Goal #{plan.goal.id}: {plan.goal.title} (due {plan.goal.deadline})")
    for task in plan.tasks:
        print(f"  {task.date}  [{task.priority.value:<6}] {task.title}  +{task.xp_reward} XP")

    if plan.tasks:
        done = service.complete_task(plan.tasks[0].id)
        print(f"\nCompleted '{done.task.title}': +{done.xp_delta} XP, +{done.gem_delta} gems")

    progress = service.user_progress(user.id)
    print(
        f"Level {progress.level}: {progress.xp}/{progress.xp_for_next_level} XP "
        f"({progress.xp_progress_percent}%), {progress.gems} gems, "
        f"{progress.streak} day streak"
    )


if __name__ == "__main__":
    main()
