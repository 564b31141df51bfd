"""SQLite-backed stage usage log."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from ats_tailor.logging.models import StageLog

DEFAULT_DB_PATH = Path.home() / ".ats-tailor" / "usage.db"

_COLUMNS = (
    "id",
    "session_id",
    "stage",
    "timestamp",
    "provider",
    "job_title",
    "match_score",
    "elapsed_seconds",
    "llm_calls",
    "total_input_tokens",
    "total_output_tokens",
    "estimated_cost_usd",
    "success",
    "error_kind",
    "warnings",
)


class UsageStore:
    """SQLite-backed store for stage usage logs with WAL mode."""

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
                CREATE TABLE IF NOT EXISTS stage_logs (
                    id TEXT PRIMARY KEY,
                    session_id TEXT NOT NULL,
                    stage TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    provider TEXT,
                    job_title TEXT,
                    match_score INTEGER,
                    elapsed_seconds REAL NOT NULL DEFAULT 0.0,
                    llm_calls INTEGER NOT NULL DEFAULT 0,
                    total_input_tokens INTEGER NOT NULL DEFAULT 0,
                    total_output_tokens INTEGER NOT NULL DEFAULT 0,
                    estimated_cost_usd REAL NOT NULL DEFAULT 0.0,
                    success INTEGER NOT NULL DEFAULT 1,
                    error_kind TEXT,
                    warnings INTEGER NOT NULL DEFAULT 0
                )
            """)

    def save_log(self, log: StageLog) -> None:
        """Persist a stage log entry."""
        placeholders = ", ".join("?" for _ in _COLUMNS)
        with self._connect() as conn:
            conn.execute(
                f"INSERT OR REPLACE INTO stage_logs ({', '.join(_COLUMNS)}) VALUES ({placeholders})",
                (
                    log.id,
                    log.session_id,
                    log.stage,
                    log.timestamp.isoformat(),
                    log.provider,
                    log.job_title,
                    log.match_score,
                    log.elapsed_seconds,
                    log.llm_calls,
                    log.total_input_tokens,
                    log.total_output_tokens,
                    log.estimated_cost_usd,
                    1 if log.success else 0,
                    log.error_kind,
                    log.warnings,
                ),
            )

    def get_logs(self, session_id: str | None = None, limit: int = 50) -> list[StageLog]:
        """Retrieve logs, newest first, optionally for one session."""
        query = f"SELECT {', '.join(_COLUMNS)} FROM stage_logs"
        params: tuple = ()
        if session_id is not None:
            query += " WHERE session_id = ?"
            params = (session_id,)
        query += " ORDER BY timestamp DESC LIMIT ?"
        with self._connect() as conn:
            rows = conn.execute(query, (*params, limit)).fetchall()
        return [self._row_to_log(row) for row in rows]

    def get_totals(self) -> dict:
        """Aggregate usage across all logged stages."""
        with self._connect() as conn:
            row = conn.execute(
                """SELECT
                       COUNT(*),
                       SUM(total_input_tokens),
                       SUM(total_output_tokens),
                       SUM(estimated_cost_usd),
                       SUM(CASE WHEN success = 1 THEN 1 ELSE 0 END)
                   FROM stage_logs"""
            ).fetchone()
        return {
            "total_stages": row[0] or 0,
            "total_input_tokens": row[1] or 0,
            "total_output_tokens": row[2] or 0,
            "total_cost_usd": row[3] or 0.0,
            "success_rate": (row[4] / row[0] * 100) if row[0] else 0.0,
        }

    @staticmethod
    def _row_to_log(row: tuple) -> StageLog:
        data = dict(zip(_COLUMNS, row))
        data["timestamp"] = datetime.fromisoformat(data["timestamp"])
        data["success"] = bool(data["success"])
        return StageLog(**data)
