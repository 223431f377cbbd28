from __future__ import annotations
import sqlite3
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Optional

from pushup_alarm.common import config

_DB_PATH = config.DB_PATH

SCHEMA = r"""
PRAGMA journal_mode=WAL;

CREATE TABLE IF NOT EXISTS workout_logs (
  id INTEGER PRIMARY KEY AUTOINCREMENT,
  session_id TEXT,
  user_id TEXT,
  alarm_name TEXT,
  target_pushups INTEGER NOT NULL,
  completed_pushups INTEGER NOT NULL,
  duration_seconds INTEGER NOT NULL,
  completed_at REAL NOT NULL,
  created_at REAL NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_workout_logs_user ON workout_logs(user_id, completed_at);
"""


@dataclass
class WorkoutLog:
    id: int
    session_id: Optional[str]
    user_id: Optional[str]
    alarm_name: Optional[str]
    target_pushups: int
    completed_pushups: int
    duration_seconds: int
    completed_at: float
    created_at: float


_conn: Optional[sqlite3.Connection] = None

def configure(path: Path | str):
    """Point the store at another database file (closes the current connection)."""
    global _DB_PATH, _conn
    if _conn is not None:
        _conn.close()
        _conn = None
    _DB_PATH = Path(path)

def get_conn() -> sqlite3.Connection:
    global _conn
    if _conn is None:
        _DB_PATH.parent.mkdir(parents=True, exist_ok=True)
        _conn = sqlite3.connect(_DB_PATH.as_posix(), check_same_thread=False)
        _conn.executescript(SCHEMA)
        _conn.commit()
    return _conn

# Workout log writes

def insert_workout_log(
    target_pushups: int,
    completed_pushups: int,
    duration_seconds: int,
    completed_at: float,
    alarm_name: Optional[str] = None,
    user_id: Optional[str] = None,
    session_id: Optional[str] = None,
) -> int:
    conn = get_conn()
    cur = conn.execute(
        """
        INSERT INTO workout_logs (
          session_id, user_id, alarm_name, target_pushups, completed_pushups,
          duration_seconds, completed_at, created_at
        ) VALUES (?,?,?,?,?,?,?,?)
        """,
        (
            session_id,
            user_id,
            alarm_name,
            int(target_pushups),
            int(completed_pushups),
            int(duration_seconds),
            completed_at,
            time.time(),
        ),
    )
    conn.commit()
    return int(cur.lastrowid)

# Reads

def get_workout_logs(user_id: Optional[str] = None, limit: Optional[int] = None) -> List[WorkoutLog]:
    conn = get_conn()
    sql = (
        "SELECT id, session_id, user_id, alarm_name, target_pushups, completed_pushups,"
        " duration_seconds, completed_at, created_at FROM workout_logs"
    )
    args: list = []
    if user_id is not None:
        sql += " WHERE user_id=?"
        args.append(user_id)
    sql += " ORDER BY completed_at DESC, id DESC"
    if limit:
        sql += " LIMIT ?"
        args.append(int(limit))
    return [WorkoutLog(*row) for row in conn.execute(sql, args).fetchall()]


def calculate_workout_stats(logs: Iterable[WorkoutLog]) -> dict:
    logs = list(logs)
    total_pushups = sum(log.completed_pushups for log in logs)
    completed_alarms = sum(1 for log in logs if log.completed_pushups >= log.target_pushups)
    success_rate = int(completed_alarms * 100 / len(logs) + 0.5) if logs else 0  # half-up
    return {
        "total_pushups": total_pushups,
        "completed_alarms": completed_alarms,
        "success_rate": success_rate,
        "total_workouts": len(logs),
    }
