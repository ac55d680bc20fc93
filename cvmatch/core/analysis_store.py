from __future__ import annotations

import json
import os
import sqlite3
import threading
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Protocol

from cvmatch.core.config import settings
from cvmatch.schemas.analysis import AnalysisRecord


class AnalysisStore(Protocol):
    def create(self, record: AnalysisRecord) -> str: ...

    def update(self, analysis_id: str, partial: dict[str, Any]) -> AnalysisRecord | None: ...

    def find_by_id(self, analysis_id: str) -> AnalysisRecord | None: ...

    def find_by_user(self, user_id: str, limit: int = 10) -> list[AnalysisRecord]: ...


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SQLiteAnalysisStore:
    """Analysis records as JSON payloads in sqlite, indexed by user and creation time."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def _get_connection(self) -> sqlite3.Connection:
        with self._lock:
            if self._conn is not None:
                return self._conn

            directory = os.path.dirname(self.db_path)
            if directory:
                os.makedirs(directory, exist_ok=True)

            conn = sqlite3.connect(
                self.db_path,
                check_same_thread=False,
                timeout=5,
                isolation_level=None,
            )
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            conn.execute("PRAGMA busy_timeout=5000;")
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS analysis_records (
                    analysis_id TEXT PRIMARY KEY,
                    user_id TEXT NOT NULL,
                    status TEXT NOT NULL,
                    overall_score INTEGER,
                    payload_json TEXT NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                );
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_analysis_records_user_created
                ON analysis_records (user_id, created_at);
                """
            )
            self._conn = conn
            return conn

    def init(self) -> None:
        self._get_connection()

    def close(self) -> None:
        with self._lock:
            if self._conn is not None:
                self._conn.close()
                self._conn = None

    def create(self, record: AnalysisRecord) -> str:
        conn = self._get_connection()
        with self._lock:
            conn.execute(
                """
                INSERT INTO analysis_records (
                    analysis_id, user_id, status, overall_score, payload_json, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    record.analysis_id,
                    record.user_id,
                    record.status,
                    record.scores.overall if record.scores else None,
                    record.model_dump_json(),
                    record.created_at.isoformat(),
                    record.updated_at.isoformat(),
                ),
            )
        return record.analysis_id

    def update(self, analysis_id: str, partial: dict[str, Any]) -> AnalysisRecord | None:
        current = self.find_by_id(analysis_id)
        if current is None:
            return None
        merged = current.model_dump()
        merged.update(partial)
        merged["updated_at"] = _utc_now()
        record = AnalysisRecord.model_validate(merged)

        conn = self._get_connection()
        with self._lock:
            conn.execute(
                """
                UPDATE analysis_records
                SET status = ?, overall_score = ?, payload_json = ?, updated_at = ?
                WHERE analysis_id = ?
                """,
                (
                    record.status,
                    record.scores.overall if record.scores else None,
                    record.model_dump_json(),
                    record.updated_at.isoformat(),
                    analysis_id,
                ),
            )
        return record

    def find_by_id(self, analysis_id: str) -> AnalysisRecord | None:
        conn = self._get_connection()
        with self._lock:
            row = conn.execute(
                "SELECT payload_json FROM analysis_records WHERE analysis_id = ?",
                (analysis_id,),
            ).fetchone()
        if not row:
            return None
        return AnalysisRecord.model_validate(json.loads(row[0]))

    def find_by_user(self, user_id: str, limit: int = 10) -> list[AnalysisRecord]:
        conn = self._get_connection()
        with self._lock:
            rows = conn.execute(
                """
                SELECT payload_json FROM analysis_records
                WHERE user_id = ?
                ORDER BY created_at DESC
                LIMIT ?
                """,
                (user_id, max(1, int(limit))),
            ).fetchall()
        return [AnalysisRecord.model_validate(json.loads(row[0])) for row in rows]


@lru_cache(maxsize=1)
def get_analysis_store() -> SQLiteAnalysisStore:
    return SQLiteAnalysisStore(settings.analysis_db_path)
