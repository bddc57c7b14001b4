"""SQLite-backed generation history."""

from __future__ import annotations

import sqlite3
from datetime import datetime
from pathlib import Path

from competence_composer.history.models import GenerationRecord

DEFAULT_DB_PATH = Path.home() / ".competence-composer" / "history.db"


class GenerationHistory:
    """SQLite-backed store for generation attempts with WAL mode."""

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
                CREATE TABLE IF NOT EXISTS generation_attempts (
                    id TEXT PRIMARY KEY,
                    timestamp TEXT NOT NULL,
                    segment_id TEXT NOT NULL,
                    segment_type TEXT NOT NULL,
                    action TEXT NOT NULL DEFAULT 'generate',
                    job_id TEXT,
                    outcome TEXT NOT NULL,
                    error_kind TEXT,
                    error_message TEXT,
                    elapsed_seconds REAL NOT NULL DEFAULT 0.0
                )
            """)

    def save_record(self, record: GenerationRecord) -> None:
        """Persist one generation attempt."""
        with self._connect() as conn:
            conn.execute(
                """INSERT OR REPLACE INTO generation_attempts
                   (id, timestamp, segment_id, segment_type, action, job_id,
                    outcome, error_kind, error_message, elapsed_seconds)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
                (
                    record.id,
                    record.timestamp.isoformat(),
                    record.segment_id,
                    record.segment_type,
                    record.action,
                    record.job_id,
                    record.outcome,
                    record.error_kind,
                    record.error_message,
                    record.elapsed_seconds,
                ),
            )

    def get_records(
        self,
        segment_id: str | None = None,
        limit: int = 50,
    ) -> list[GenerationRecord]:
        """Retrieve attempts, newest first, optionally for one segment."""
        with self._connect() as conn:
            if segment_id is not None:
                rows = conn.execute(
                    "SELECT * FROM generation_attempts WHERE segment_id = ? ORDER BY timestamp DESC LIMIT ?",
                    (segment_id, limit),
                ).fetchall()
            else:
                rows = conn.execute(
                    "SELECT * FROM generation_attempts ORDER BY timestamp DESC LIMIT ?",
                    (limit,),
                ).fetchall()
        return [self._row_to_record(row) for row in rows]

    def stats(self) -> dict:
        """Aggregate counts, success rate and average processing time."""
        with self._connect() as conn:
            row = conn.execute(
                """SELECT
                       COUNT(*) as total,
                       SUM(CASE WHEN outcome = 'done' THEN 1 ELSE 0 END) as success_count,
                       SUM(CASE WHEN outcome = 'error' THEN 1 ELSE 0 END) as failure_count,
                       SUM(CASE WHEN error_kind = 'timed_out' THEN 1 ELSE 0 END) as timeout_count,
                       AVG(CASE WHEN outcome = 'done' THEN elapsed_seconds END) as avg_elapsed
                   FROM generation_attempts"""
            ).fetchone()
        total = row[0] or 0
        return {
            "total": total,
            "success_count": row[1] or 0,
            "failure_count": row[2] or 0,
            "timeout_count": row[3] or 0,
            "success_rate": ((row[1] or 0) / total * 100) if total else 0.0,
            "avg_elapsed_seconds": round(row[4], 2) if row[4] is not None else None,
        }

    @staticmethod
    def _row_to_record(row: tuple) -> GenerationRecord:
        return GenerationRecord(
            id=row[0],
            timestamp=datetime.fromisoformat(row[1]),
            segment_id=row[2],
            segment_type=row[3],
            action=row[4],
            job_id=row[5],
            outcome=row[6],
            error_kind=row[7],
            error_message=row[8],
            elapsed_seconds=row[9],
        )
