from __future__ import annotations

import json
import logging
import sqlite3
import uuid
from typing import Any

from rxlens_core.errors import NotFoundError, PersistenceError
from rxlens_core.models import AnalysisResult

from .database import SQLitePrescriptionDB
from .time_utils import to_iso, utc_now

logger = logging.getLogger(__name__)

UNKNOWN_FIELD = "Unknown"
_PRESCRIPTION_COLUMNS = (
    "id, user_id, medication_name, dosage, frequency, duration, condition, summary, recommendations_json, created_at"
)


def _json_dumps(value: Any) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"))


def _prescription_row(row: sqlite3.Row) -> dict[str, Any]:
    record = dict(row)
    record["recommendations"] = json.loads(record.pop("recommendations_json") or "[]")
    return record


class PrescriptionStore:
    def __init__(self, db: SQLitePrescriptionDB) -> None:
        self._db = db

    def ensure_user(self, user_id: str, email: str | None = None) -> None:
        try:
            with self._db.connection() as conn:
                conn.execute(
                    "INSERT OR IGNORE INTO users (id, email, created_at) VALUES (?, ?, ?)",
                    (user_id, email, to_iso(utc_now())),
                )
        except sqlite3.Error as exc:
            logger.error("Failed to register user %s: %s", user_id, exc)
            raise PersistenceError("Failed to register user", stage="user") from exc

    def create_prescription(self, *, user_id: str, analysis: AnalysisResult) -> str:
        primary = analysis.primary_medication
        prescription_id = f"rx_{uuid.uuid4().hex}"
        try:
            with self._db.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO prescriptions (
                      id, user_id, medication_name, dosage, frequency, duration,
                      condition, summary, recommendations_json, created_at
                    )
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    (
                        prescription_id,
                        user_id,
                        (primary.name if primary else "") or UNKNOWN_FIELD,
                        (primary.dosage if primary else "") or UNKNOWN_FIELD,
                        (primary.frequency if primary else "") or UNKNOWN_FIELD,
                        (primary.duration if primary else "") or UNKNOWN_FIELD,
                        analysis.condition,
                        analysis.summary,
                        json.dumps(list(analysis.recommendations)),
                        to_iso(utc_now()),
                    ),
                )
        except sqlite3.Error as exc:
            logger.error("Error saving prescription for user %s: %s", user_id, exc)
            raise PersistenceError("Failed to save prescription", stage="prescription") from exc
        return prescription_id

    def create_analysis(self, *, prescription_id: str, analysis: AnalysisResult) -> str:
        analysis_id = f"rxa_{uuid.uuid4().hex}"
        try:
            with self._db.connection() as conn:
                conn.execute(
                    """
                    INSERT INTO prescription_analyses (id, prescription_id, analysis_json, created_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    (analysis_id, prescription_id, _json_dumps(analysis.as_payload()), to_iso(utc_now())),
                )
        except sqlite3.Error as exc:
            logger.error("Error saving analysis for prescription %s: %s", prescription_id, exc)
            raise PersistenceError(
                "Failed to save analysis",
                stage="analysis",
                prescription_id=prescription_id,
            ) from exc
        return analysis_id

    def save_analysis(self, *, user_id: str, analysis: AnalysisResult) -> str:
        """Write the prescription header, then the full analysis.

        The two writes commit separately. If the second one fails the header
        row stays in place and the raised error carries its id.
        """
        prescription_id = self.create_prescription(user_id=user_id, analysis=analysis)
        try:
            self.create_analysis(prescription_id=prescription_id, analysis=analysis)
        except PersistenceError:
            logger.warning("Prescription %s persisted without its analysis row", prescription_id)
            raise
        return prescription_id

    def list_prescriptions(self, user_id: str) -> list[dict[str, Any]]:
        try:
            with self._db.connection() as conn:
                rows = conn.execute(
                    f"""
                    SELECT {_PRESCRIPTION_COLUMNS}
                    FROM prescriptions
                    WHERE user_id = ?
                    ORDER BY created_at DESC, rowid DESC
                    """,
                    (user_id,),
                ).fetchall()
        except sqlite3.Error as exc:
            logger.error("Failed to list prescriptions for %s: %s", user_id, exc)
            raise PersistenceError("Failed to load prescriptions", stage="read") from exc
        return [_prescription_row(row) for row in rows]

    def get_prescription(self, *, user_id: str, prescription_id: str) -> dict[str, Any]:
        try:
            with self._db.connection() as conn:
                row = conn.execute(
                    f"""
                    SELECT {_PRESCRIPTION_COLUMNS}
                    FROM prescriptions
                    WHERE id = ? AND user_id = ?
                    """,
                    (prescription_id, user_id),
                ).fetchone()
                analysis_row = None
                if row is not None:
                    analysis_row = conn.execute(
                        "SELECT analysis_json FROM prescription_analyses WHERE prescription_id = ?",
                        (prescription_id,),
                    ).fetchone()
        except sqlite3.Error as exc:
            logger.error("Failed to load prescription %s: %s", prescription_id, exc)
            raise PersistenceError("Failed to load prescription", stage="read") from exc
        if row is None:
            raise NotFoundError("Prescription not found")
        record = _prescription_row(row)
        record["analysis"] = json.loads(analysis_row["analysis_json"]) if analysis_row else None
        return record

    def get_analysis(self, *, user_id: str, prescription_id: str) -> AnalysisResult:
        record = self.get_prescription(user_id=user_id, prescription_id=prescription_id)
        if record["analysis"] is None:
            raise NotFoundError("Prescription analysis not found")
        return AnalysisResult.from_payload(record["analysis"])
