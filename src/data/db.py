"""
Milestone Quest — Progress Database.

SQLite-backed implementation of StorePort: users, goals, tasks and focus
sessions persist across restarts. Dates and times are stored as ISO text.

Every method opens its own short-lived connection unless a
``transaction()`` is active on the calling thread, in which case it joins
that transaction's connection.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, time
from enum import Enum
from pathlib import Path
from typing import Any

from src.data.models import (
    FocusSession,
    Goal,
    GoalType,
    MilestoneTaskSpec,
    Priority,
    Task,
    User,
)
from src.data.schemas import TaskCreate
from src.ports.store_port import NotFoundError

logger = logging.getLogger(__name__)

_USER_FIELDS = frozenset({"display_name", "xp", "gems", "streak", "last_active_date"})
_GOAL_FIELDS = frozenset({"title", "description", "completed", "completed_at"})
_TASK_FIELDS = frozenset({
    "title", "category", "priority", "estimated_time", "external_links",
    "xp_reward", "gem_reward", "due_time", "date", "goal_id",
    "completed", "completed_at", "completed_on_time",
})
_SESSION_FIELDS = frozenset({"duration", "task_id", "completed", "completed_at"})


def _to_db(value: Any) -> Any:
    """Convert a model value to its SQLite column representation."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    return value


def _parse_date(raw: str | None) -> date | None:
    return date.fromisoformat(raw) if raw else None


def _parse_datetime(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


def _parse_time(raw: str | None) -> time | None:
    return time.fromisoformat(raw) if raw else None


class ProgressDB:
    """SQLite-backed storage for users, goals, tasks and focus sessions."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from src.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        self._local = threading.local()
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        """Yield the thread's transaction connection, or a fresh one."""
        active = getattr(self._local, "conn", None)
        if active is not None:
            yield active
            return

        conn = self._connect()
        try:
            with conn:
                yield conn
        finally:
            conn.close()

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """Run the enclosed store calls as one write-locked transaction.

        Uses BEGIN IMMEDIATE so concurrent writers queue up instead of
        interleaving their read-modify-write cycles. Nested calls join the
        outer transaction.
        """
        if getattr(self._local, "conn", None) is not None:
            yield
            return

        conn = self._connect()
        try:
            conn.execute("BEGIN IMMEDIATE")
        except sqlite3.Error:
            conn.close()
            raise
        self._local.conn = conn
        try:
            yield
        except Exception:
            conn.rollback()
            logger.error("Transaction rolled back on %s", self._db_path)
            raise
        else:
            conn.commit()
        finally:
            self._local.conn = None
            conn.close()

    def _init_db(self) -> None:
        """Create the tables if they don't exist."""
        with self._session() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS users (
                    id               INTEGER PRIMARY KEY AUTOINCREMENT,
                    display_name     TEXT    NOT NULL,
                    xp               INTEGER NOT NULL DEFAULT 0,
                    gems             INTEGER NOT NULL DEFAULT 0,
                    streak           INTEGER NOT NULL DEFAULT 0,
                    last_active_date TEXT,
                    created_at       TEXT    NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS goals (
                    id           INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id      INTEGER NOT NULL,
                    title        TEXT    NOT NULL,
                    description  TEXT,
                    goal_type    TEXT    NOT NULL,
                    deadline     TEXT    NOT NULL,
                    completed    INTEGER NOT NULL DEFAULT 0,
                    completed_at TEXT,
                    created_at   TEXT    NOT NULL
                )
            """)
            # goal_id is a plain lookup key, not a foreign key: tasks outlive goals
            conn.execute("""
                CREATE TABLE IF NOT EXISTS tasks (
                    id                INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id           INTEGER NOT NULL,
                    goal_id           INTEGER,
                    title             TEXT    NOT NULL,
                    category          TEXT    NOT NULL,
                    priority          TEXT    NOT NULL,
                    estimated_time    INTEGER,
                    external_links    TEXT,
                    xp_reward         INTEGER NOT NULL DEFAULT 20,
                    gem_reward        INTEGER NOT NULL DEFAULT 1,
                    due_time          TEXT,
                    date              TEXT    NOT NULL,
                    completed         INTEGER NOT NULL DEFAULT 0,
                    completed_at      TEXT,
                    completed_on_time INTEGER NOT NULL DEFAULT 0,
                    created_at        TEXT    NOT NULL
                )
            """)
            conn.execute("""
                CREATE TABLE IF NOT EXISTS focus_sessions (
                    id           INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id      INTEGER NOT NULL,
                    task_id      INTEGER,
                    duration     INTEGER NOT NULL,
                    completed    INTEGER NOT NULL DEFAULT 0,
                    started_at   TEXT    NOT NULL,
                    completed_at TEXT
                )
            """)
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_tasks_user_date ON tasks (user_id, date)"
            )
        logger.debug("Progress tables initialized at %s", self._db_path)

    # ------------------------------------------------------------------
    # Row mapping
    # ------------------------------------------------------------------

    @staticmethod
    def _row_to_user(row: sqlite3.Row) -> User:
        return User(
            id=row["id"],
            display_name=row["display_name"],
            xp=row["xp"],
            gems=row["gems"],
            streak=row["streak"],
            last_active_date=_parse_date(row["last_active_date"]),
            created_at=_parse_datetime(row["created_at"]),
        )

    @staticmethod
    def _row_to_goal(row: sqlite3.Row) -> Goal:
        return Goal(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            goal_type=GoalType(row["goal_type"]),
            deadline=date.fromisoformat(row["deadline"]),
            completed=bool(row["completed"]),
            completed_at=_parse_datetime(row["completed_at"]),
            created_at=_parse_datetime(row["created_at"]),
        )

    @staticmethod
    def _row_to_task(row: sqlite3.Row) -> Task:
        return Task(
            id=row["id"],
            user_id=row["user_id"],
            goal_id=row["goal_id"],
            title=row["title"],
            category=row["category"],
            priority=Priority(row["priority"]),
            estimated_time=row["estimated_time"],
            external_links=row["external_links"],
            xp_reward=row["xp_reward"],
            gem_reward=row["gem_reward"],
            due_time=_parse_time(row["due_time"]),
            date=date.fromisoformat(row["date"]),
            completed=bool(row["completed"]),
            completed_at=_parse_datetime(row["completed_at"]),
            completed_on_time=bool(row["completed_on_time"]),
            created_at=_parse_datetime(row["created_at"]),
        )

    @staticmethod
    def _row_to_session(row: sqlite3.Row) -> FocusSession:
        return FocusSession(
            id=row["id"],
            user_id=row["user_id"],
            task_id=row["task_id"],
            duration=row["duration"],
            completed=bool(row["completed"]),
            started_at=_parse_datetime(row["started_at"]),
            completed_at=_parse_datetime(row["completed_at"]),
        )

    def _update(
        self, table: str, allowed: frozenset[str], record_id: int, fields: dict[str, Any],
    ) -> sqlite3.Row:
        unknown = set(fields) - allowed
        if unknown:
            raise ValueError(f"Cannot update {table} columns: {', '.join(sorted(unknown))}")

        with self._session() as conn:
            if fields:
                assignments = ", ".join(f"{name} = ?" for name in fields)
                conn.execute(
                    f"UPDATE {table} SET {assignments} WHERE id = ?",
                    [_to_db(v) for v in fields.values()] + [record_id],
                )
            row = conn.execute(
                f"SELECT * FROM {table} WHERE id = ?", (record_id,)
            ).fetchone()
        if row is None:
            raise NotFoundError(table.rstrip("s"), record_id)
        return row

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(self, display_name: str) -> User:
        """Register a new user with no XP, gems or streak."""
        now = datetime.now()
        with self._session() as conn:
            cursor = conn.execute(
                "INSERT INTO users (display_name, created_at) VALUES (?, ?)",
                (display_name, now.isoformat()),
            )
            user_id = cursor.lastrowid

        logger.info("User registered: #%d '%s'", user_id, display_name)
        return User(id=user_id, display_name=display_name, created_at=now)

    def get_user(self, user_id: int) -> User | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_user(row)

    def update_user(self, user_id: int, **fields: Any) -> User:
        """Overwrite the given user columns. ``level`` is not a column."""
        user = self._row_to_user(self._update("users", _USER_FIELDS, user_id, fields))
        logger.info("User #%d updated: %s", user_id, ", ".join(fields))
        return user

    # ------------------------------------------------------------------
    # Goals
    # ------------------------------------------------------------------

    def create_goal(
        self,
        user_id: int,
        title: str,
        goal_type: GoalType,
        deadline: date,
        description: str | None = None,
    ) -> Goal:
        now = datetime.now()
        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO goals
                    (user_id, title, description, goal_type, deadline, completed, created_at)
                VALUES (?, ?, ?, ?, ?, 0, ?)
                """,
                (
                    user_id, title, description, goal_type.value,
                    deadline.isoformat(), now.isoformat(),
                ),
            )
            goal_id = cursor.lastrowid

        logger.info("Goal added: #%d '%s' (%s, due %s)", goal_id, title, goal_type.value, deadline)
        return Goal(
            id=goal_id,
            user_id=user_id,
            title=title,
            description=description,
            goal_type=goal_type,
            deadline=deadline,
            created_at=now,
        )

    def get_goal(self, goal_id: int) -> Goal | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM goals WHERE id = ?", (goal_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_goal(row)

    def list_goals(self, user_id: int, active_only: bool = False) -> list[Goal]:
        """List a user's goals by deadline, optionally only uncompleted ones."""
        query = "SELECT * FROM goals WHERE user_id = ?"
        if active_only:
            query += " AND completed = 0"
        query += " ORDER BY deadline, id"
        with self._session() as conn:
            rows = conn.execute(query, (user_id,)).fetchall()
        return [self._row_to_goal(r) for r in rows]

    def update_goal(self, goal_id: int, **fields: Any) -> Goal:
        return self._row_to_goal(self._update("goals", _GOAL_FIELDS, goal_id, fields))

    def delete_goal(self, goal_id: int) -> bool:
        """Delete a goal and detach (not delete) its tasks."""
        with self._session() as conn:
            conn.execute("UPDATE tasks SET goal_id = NULL WHERE goal_id = ?", (goal_id,))
            cursor = conn.execute("DELETE FROM goals WHERE id = ?", (goal_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Goal #%d deleted, its tasks detached", goal_id)
        return deleted

    # ------------------------------------------------------------------
    # Tasks
    # ------------------------------------------------------------------

    def create_task(
        self,
        user_id: int,
        spec: MilestoneTaskSpec | TaskCreate,
        goal_id: int | None = None,
    ) -> Task:
        """Persist a generated milestone or a validated standalone task."""
        if goal_id is None:
            goal_id = getattr(spec, "goal_id", None)
        external_links = getattr(spec, "external_links", None)
        now = datetime.now()

        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO tasks
                    (user_id, goal_id, title, category, priority, estimated_time,
                     external_links, xp_reward, gem_reward, due_time, date,
                     completed, completed_at, completed_on_time, created_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, 0, NULL, 0, ?)
                """,
                (
                    user_id, goal_id, spec.title, spec.category,
                    spec.priority.value, spec.estimated_time, external_links,
                    spec.xp_reward, spec.gem_reward, _to_db(spec.due_time),
                    spec.date.isoformat(), now.isoformat(),
                ),
            )
            task_id = cursor.lastrowid

        logger.info("Task added: #%d '%s' on %s", task_id, spec.title, spec.date)
        return Task(
            id=task_id,
            user_id=user_id,
            goal_id=goal_id,
            title=spec.title,
            category=spec.category,
            priority=spec.priority,
            estimated_time=spec.estimated_time,
            external_links=external_links,
            xp_reward=spec.xp_reward,
            gem_reward=spec.gem_reward,
            due_time=spec.due_time,
            date=spec.date,
            created_at=now,
        )

    def get_task(self, task_id: int) -> Task | None:
        with self._session() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
        if row is None:
            return None
        return self._row_to_task(row)

    def list_tasks(
        self,
        user_id: int,
        on_date: date | None = None,
        goal_id: int | None = None,
    ) -> list[Task]:
        """List a user's tasks, optionally filtered by day and/or goal."""
        query = "SELECT * FROM tasks WHERE user_id = ?"
        params: list = [user_id]
        if on_date is not None:
            query += " AND date = ?"
            params.append(on_date.isoformat())
        if goal_id is not None:
            query += " AND goal_id = ?"
            params.append(goal_id)
        query += " ORDER BY date, id"

        with self._session() as conn:
            rows = conn.execute(query, params).fetchall()
        return [self._row_to_task(r) for r in rows]

    def update_task(self, task_id: int, **fields: Any) -> Task:
        return self._row_to_task(self._update("tasks", _TASK_FIELDS, task_id, fields))

    def delete_task(self, task_id: int) -> bool:
        with self._session() as conn:
            cursor = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
        deleted = cursor.rowcount > 0
        if deleted:
            logger.info("Task #%d deleted", task_id)
        return deleted

    # ------------------------------------------------------------------
    # Focus sessions
    # ------------------------------------------------------------------

    def create_session(
        self,
        user_id: int,
        duration: int,
        started_at: datetime,
        task_id: int | None = None,
    ) -> FocusSession:
        with self._session() as conn:
            cursor = conn.execute(
                """
                INSERT INTO focus_sessions (user_id, task_id, duration, completed, started_at)
                VALUES (?, ?, ?, 0, ?)
                """,
                (user_id, task_id, duration, started_at.isoformat()),
            )
            session_id = cursor.lastrowid

        logger.info("Focus session started: #%d (%d min)", session_id, duration)
        return FocusSession(
            id=session_id,
            user_id=user_id,
            task_id=task_id,
            duration=duration,
            started_at=started_at,
        )

    def get_session(self, session_id: int) -> FocusSession | None:
        with self._session() as conn:
            row = conn.execute(
                "SELECT * FROM focus_sessions WHERE id = ?", (session_id,)
            ).fetchone()
        if row is None:
            return None
        return self._row_to_session(row)

    def update_session(self, session_id: int, **fields: Any) -> FocusSession:
        return self._row_to_session(
            self._update("focus_sessions", _SESSION_FIELDS, session_id, fields)
        )

    def list_sessions(self, user_id: int) -> list[FocusSession]:
        with self._session() as conn:
            rows = conn.execute(
                "SELECT * FROM focus_sessions WHERE user_id = ? ORDER BY started_at, id",
                (user_id,),
            ).fetchall()
        return [self._row_to_session(r) for r in rows]
