from __future__ import annotations

import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator


class SQLitePrescriptionDB:
    def __init__(self, db_path: str) -> None:
        self._path = Path(db_path).expanduser().resolve()
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._init_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._path), timeout=30.0, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._lock, self.connection() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS users (
                  id TEXT PRIMARY KEY,
                  email TEXT,
                  created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS prescriptions (
                  id TEXT PRIMARY KEY,
                  user_id TEXT NOT NULL,
                  medication_name TEXT NOT NULL,
                  dosage TEXT NOT NULL,
                  frequency TEXT NOT NULL,
                  duration TEXT NOT NULL,
                  condition TEXT NOT NULL,
                  summary TEXT NOT NULL,
                  recommendations_json TEXT NOT NULL,
                  created_at TEXT NOT NULL
                );

                CREATE TABLE IF NOT EXISTS prescription_analyses (
                  id TEXT PRIMARY KEY,
                  prescription_id TEXT NOT NULL UNIQUE REFERENCES prescriptions(id),
                  analysis_json TEXT NOT NULL,
                  created_at TEXT NOT NULL
                );

                CREATE INDEX IF NOT EXISTS idx_prescriptions_user_created
                  ON prescriptions(user_id, created_at DESC);
                """
            )
