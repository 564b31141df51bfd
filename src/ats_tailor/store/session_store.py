"""Key-value persistence for ResumeSession records."""

from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Protocol, runtime_checkable

from ats_tailor.models.session import ResumeSession

DEFAULT_DB_PATH = Path.home() / ".ats-tailor" / "sessions.db"


@runtime_checkable
class SessionStore(Protocol):
    """Opaque session storage. Read-your-writes within one process is all we assume."""

    def get(self, session_id: str) -> ResumeSession | None: ...

    def put(self, session_id: str, session: ResumeSession) -> None: ...

    def list_ids(self) -> list[str]: ...


class InMemorySessionStore:
    """Dict-backed store. Keeps serialized copies so callers cannot alias stored state."""

    def __init__(self) -> None:
        self._rows: dict[str, str] = {}

    def get(self, session_id: str) -> ResumeSession | None:
        raw = self._rows.get(session_id)
        if raw is None:
            return None
        return ResumeSession.model_validate_json(raw)

    def put(self, session_id: str, session: ResumeSession) -> None:
        self._rows[session_id] = session.model_dump_json(by_alias=True)

    def list_ids(self) -> list[str]:
        return list(self._rows)


class SqliteSessionStore:
    """SQLite-backed session store with WAL mode."""

    def __init__(self, db_path: str | Path = DEFAULT_DB_PATH):
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self.db_path))
        conn.execute("PRAGMA journal_mode=WAL")
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS resume_sessions (
                    id TEXT PRIMARY KEY,
                    status TEXT NOT NULL,
                    session_json TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)

    def get(self, session_id: str) -> ResumeSession | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT session_json FROM resume_sessions WHERE id = ?",
                (session_id,),
            ).fetchone()
        if row is None:
            return None
        return ResumeSession.model_validate_json(row[0])

    def put(self, session_id: str, session: ResumeSession) -> None:
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO resume_sessions
                   (id, status, session_json, updated_at)
                   VALUES (?, ?, ?, ?)""",
                (
                    session_id,
                    session.status.value,
                    session.model_dump_json(by_alias=True),
                    session.updated_at.isoformat(),
                ),
            )

    def list_ids(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT id FROM resume_sessions ORDER BY updated_at DESC"
            ).fetchall()
        return [row[0] for row in rows]
