from __future__ import annotations
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Optional

class EventType(str, Enum):
    SESSION_STARTED = "session_started"
    SESSION_COMPLETED = "session_completed"
    SESSION_STOPPED = "session_stopped"
    REP = "rep"
    REP_IGNORED = "rep_ignored"
    RESET = "reset"
    TRACE = "trace"

@dataclass
class SessionEvent:
    type: EventType
    session_id: str
    mode: str
    target_count: int
    ts: float
    count: int = 0
    duration_s: float = 0.0

    def as_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        return d

@dataclass
class RepEvent:
    type: EventType
    session_id: str
    ts: float
    rep_count: int
    source: str  # "pose", "motion", "threshold" or "manual"

    def as_dict(self) -> dict:
        d = asdict(self)
        d["type"] = self.type.value
        return d

def trace(msg: str, session_id: Optional[str] = None) -> dict:
    ev = {"type": EventType.TRACE.value, "msg": msg}
    if session_id:
        ev["session_id"] = session_id
    return ev
