from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

from .models import Prediction, ResolutionResult, Round, RoundResolution, utc_now


class RoundRepository:
    def __init__(self, db_path: str = "logs/rounds.sqlite3") -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._bootstrap()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        return conn

    def _bootstrap(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS rounds (
                    round_number INTEGER PRIMARY KEY,
                    start_price REAL NOT NULL,
                    start_ts REAL NOT NULL,
                    end_ts REAL NOT NULL,
                    prediction TEXT NOT NULL,
                    confidence INTEGER NOT NULL,
                    sma5 REAL,
                    sma10 REAL,
                    momentum REAL,
                    end_price REAL,
                    actual_direction TEXT,
                    prediction_correct INTEGER,
                    resolved_ts REAL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def _row_to_round(self, row: sqlite3.Row) -> Round:
        resolution = None
        if row["resolved_ts"] is not None:
            resolution = RoundResolution(
                end_price=row["end_price"],
                actual_direction=row["actual_direction"],
                prediction_correct=bool(row["prediction_correct"]),
                resolved_ts=row["resolved_ts"],
            )
        return Round(
            round_number=row["round_number"],
            start_price=row["start_price"],
            start_ts=row["start_ts"],
            end_ts=row["end_ts"],
            prediction=Prediction(
                direction=row["prediction"],
                confidence=row["confidence"],
                sma5=row["sma5"],
                sma10=row["sma10"],
                momentum=row["momentum"],
            ),
            resolution=resolution,
        )

    def save_round(self, round_: Round) -> None:
        now = utc_now().isoformat()
        resolution = round_.resolution
        prediction = round_.prediction

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO rounds (
                    round_number, start_price, start_ts, end_ts,
                    prediction, confidence, sma5, sma10, momentum,
                    end_price, actual_direction, prediction_correct, resolved_ts,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(round_number) DO UPDATE SET
                    start_price=excluded.start_price,
                    start_ts=excluded.start_ts,
                    end_ts=excluded.end_ts,
                    prediction=excluded.prediction,
                    confidence=excluded.confidence,
                    sma5=excluded.sma5,
                    sma10=excluded.sma10,
                    momentum=excluded.momentum,
                    end_price=excluded.end_price,
                    actual_direction=excluded.actual_direction,
                    prediction_correct=excluded.prediction_correct,
                    resolved_ts=excluded.resolved_ts,
                    updated_at=excluded.updated_at
                """,
                (
                    round_.round_number,
                    round_.start_price,
                    round_.start_ts,
                    round_.end_ts,
                    prediction.direction,
                    prediction.confidence,
                    prediction.sma5,
                    prediction.sma10,
                    prediction.momentum,
                    resolution.end_price if resolution else None,
                    resolution.actual_direction if resolution else None,
                    int(resolution.prediction_correct) if resolution else None,
                    resolution.resolved_ts if resolution else None,
                    now,
                    now,
                ),
            )

    def save_resolution(self, result: ResolutionResult) -> bool:
        with self._connect() as conn:
            cursor = conn.execute(
                """
                UPDATE rounds
                SET end_price = ?, actual_direction = ?, prediction_correct = ?,
                    resolved_ts = ?, updated_at = ?
                WHERE round_number = ? AND resolved_ts IS NULL
                """,
                (
                    result.end_price,
                    result.actual_direction,
                    int(result.prediction_correct),
                    result.resolved_ts,
                    utc_now().isoformat(),
                    result.round_number,
                ),
            )
            return cursor.rowcount == 1

    def get_round(self, round_number: int) -> Round | None:
        with self._connect() as conn:
            row = conn.execute("SELECT * FROM rounds WHERE round_number = ?", (round_number,)).fetchone()
            if row is None:
                return None
            return self._row_to_round(row)

    def list_rounds(self, *, limit: int = 50, resolved: bool | None = None) -> list[Round]:
        limit = max(1, min(limit, 500))
        sql = "SELECT * FROM rounds"
        params: list[Any] = []
        if resolved is True:
            sql += " WHERE resolved_ts IS NOT NULL"
        elif resolved is False:
            sql += " WHERE resolved_ts IS NULL"
        sql += " ORDER BY round_number DESC LIMIT ?"
        params.append(limit)

        with self._connect() as conn:
            rows = conn.execute(sql, params).fetchall()
            return [self._row_to_round(row) for row in rows]

    def recent_rounds(self, limit: int) -> list[Round]:
        """Most recent rounds in chronological order."""
        return list(reversed(self.list_rounds(limit=limit)))

    def accuracy_stats(self) -> dict:
        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT
                    COUNT(*) AS total_rounds,
                    COUNT(resolved_ts) AS resolved_rounds,
                    COALESCE(SUM(prediction_correct), 0) AS correct_predictions
                FROM rounds
                """
            ).fetchone()

        resolved_rounds = int(row["resolved_rounds"])
        correct = int(row["correct_predictions"])
        return {
            "total_rounds": int(row["total_rounds"]),
            "resolved_rounds": resolved_rounds,
            "correct_predictions": correct,
            "accuracy_pct": round(correct / resolved_rounds * 100.0, 2) if resolved_rounds else None,
        }
