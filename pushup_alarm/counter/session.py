from __future__ import annotations
import logging
import threading
import time
import uuid
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional, Tuple

from pushup_alarm.common import config
from pushup_alarm.common.events import EventType, RepEvent, SessionEvent, trace
from pushup_alarm.counter.detector import DetectionResult, RepDetector, make_detector
from pushup_alarm.counter.machine import MachineConfig
from pushup_alarm.data import db

logger = logging.getLogger(__name__)

Mode = Literal["pose", "motion", "threshold", "camera"]
MODES = ("pose", "motion", "threshold", "camera")


@dataclass
class SessionStatus:
    session_id: str
    state: str
    count: int
    target_count: int = 0
    mode: str = ""


@dataclass
class FinalSummary:
    session_id: str
    total_reps: int
    target_count: int
    duration_s: float
    completed: bool


class AlarmSessionManager:
    """
    Hosts one alarm-dismissal session at a time: owns the detector, tracks
    the target, speaks counts, and hands the final result to the log store.
    Calls are serialized with a lock since the camera thread and the web
    handlers can both feed the same session.
    """
    def __init__(
        self,
        trainer_mode: bool = config.TRAINER_MODE,
        log_append: Optional[Callable[..., Any]] = None,
        announcer=None,
        machine_config: Optional[MachineConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.trainer_mode = trainer_mode
        self.log_append = log_append or db.insert_workout_log
        self._announcer = announcer
        self.machine_config = machine_config
        self.clock = clock
        self._lock = threading.RLock()
        self._event_sink: Optional[Callable[[dict], None]] = None

        self.active_id: Optional[str] = None
        self.detector: Optional[RepDetector] = None
        self.pipeline = None
        self.mode: str = ""
        self.target_count = 0
        self.alarm_name: Optional[str] = None
        self.user_id: Optional[str] = None
        self.started_at = 0.0
        self.count = 0
        self._target_hit = False

    @property
    def tts(self):
        if self._announcer is None and self.trainer_mode:
            from pushup_alarm.audio.tts import TTSEngine
            self._announcer = TTSEngine()
        return self._announcer

    def set_event_sink(self, sink: Callable[[dict], None]):
        self._event_sink = sink

    def _emit(self, payload: dict):
        if self._event_sink is None:
            return
        try:
            self._event_sink(payload)
        except Exception:
            logger.exception("event sink failed for %s", payload.get("type"))

    def _emit_debug(self, ev: dict):
        logger.debug("%s", ev.get("msg"))
        self._emit(ev)

    def _on_rep(self, ev: RepEvent):
        self.count = ev.rep_count
        if self.trainer_mode and self.tts is not None:
            self.tts.announce_count(self.count, self.target_count)
        self._emit(ev.as_dict())
        if self.target_count and self.count >= self.target_count:
            self._target_hit = True

    def start(
        self,
        target_count: int = config.DEFAULT_TARGET,
        mode: Mode = "pose",
        alarm_name: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> Tuple[str, str]:
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}")
        target = int(target_count)
        if not config.MIN_TARGET <= target <= config.MAX_TARGET:
            raise ValueError(f"target_count must be between {config.MIN_TARGET} and {config.MAX_TARGET}")

        with self._lock:
            if self.detector is not None:
                self.stop(self.active_id)

            sid = str(uuid.uuid4())
            self.active_id = sid
            self.mode = mode
            self.target_count = target
            self.alarm_name = alarm_name
            self.user_id = user_id
            self.started_at = self.clock()
            self.count = 0
            self._target_hit = False
            self.detector = make_detector(
                "pose" if mode == "camera" else mode,
                on_rep=self._on_rep,
                session_id=sid,
                config=self.machine_config,
                debug_cb=self._emit_debug,
            )

            if mode == "camera":
                from pushup_alarm.counter.pipeline import PosePipeline  # needs opencv + mediapipe
                self.pipeline = PosePipeline(self.push_pose, on_error=self._on_error)
                self.pipeline.start()

            logger.info("session %s started: %d pushups (%s)", sid, target, mode)
            self._emit(SessionEvent(EventType.SESSION_STARTED, sid, mode, target, self.started_at).as_dict())
            return sid, f"started {mode} session for {target} pushups"

    def push_pose(self, landmarks: Any, t: Optional[float] = None) -> Optional[DetectionResult]:
        with self._lock:
            if self.detector is None:
                return None
            res = self.detector.process(landmarks, t)
            self._maybe_complete()
            return res

    def push_motion(self, sample: Any) -> Optional[DetectionResult]:
        with self._lock:
            if self.detector is None:
                return None
            res = self.detector.process(sample)
            self._maybe_complete()
            return res

    def manual_count(self, t: Optional[float] = None) -> bool:
        with self._lock:
            if self.detector is None:
                return False
            counted = self.detector.count_manual(t)
            if not counted:
                self._emit({"type": EventType.REP_IGNORED.value, "session_id": self.active_id, "count": self.count})
            self._maybe_complete()
            return counted

    def reset_count(self):
        with self._lock:
            if self.detector is None:
                return
            self.detector.reset()
            self.count = 0
            self._target_hit = False
            self._emit({"type": EventType.RESET.value, "session_id": self.active_id, "count": 0})

    def _maybe_complete(self):
        if self._target_hit and self.detector is not None:
            self._finish(EventType.SESSION_COMPLETED)

    def stop(self, session_id: Optional[str] = None) -> Optional[FinalSummary]:
        with self._lock:
            if self.detector is None:
                return None
            if session_id and session_id != self.active_id:
                logger.warning("stop requested for %s but active session is %s", session_id, self.active_id)
            return self._finish(EventType.SESSION_STOPPED)

    def _finish(self, kind: EventType) -> FinalSummary:
        sid = self.active_id or ""
        end = self.clock()
        duration = max(0.0, end - self.started_at)
        summary = FinalSummary(
            session_id=sid,
            total_reps=self.count,
            target_count=self.target_count,
            duration_s=duration,
            completed=self.count >= self.target_count,
        )

        pipe = self.pipeline
        if pipe is not None:
            pipe.stop()
            if pipe is not threading.current_thread():
                pipe.join(timeout=1.0)

        try:
            self.log_append(
                target_pushups=self.target_count,
                completed_pushups=self.count,
                duration_seconds=int(round(duration)),
                completed_at=end,
                alarm_name=self.alarm_name,
                user_id=self.user_id,
                session_id=sid,
            )
        except Exception:
            # the workout still counts even if history could not be saved
            logger.exception("could not save workout log for session %s", sid)
            self._emit(trace("could not save workout history", sid))

        logger.info("session %s %s: %d/%d in %.1fs", sid, kind.value, self.count, self.target_count, duration)
        self._emit(SessionEvent(kind, sid, self.mode, self.target_count, end, self.count, duration).as_dict())

        self.detector = None
        self.pipeline = None
        self.active_id = None
        self._target_hit = False
        return summary

    def status(self) -> SessionStatus:
        with self._lock:
            return SessionStatus(
                session_id=self.active_id or "",
                state="running" if self.detector is not None else "idle",
                count=self.count,
                target_count=self.target_count,
                mode=self.mode,
            )

    def _on_error(self, msg: str):
        # Called from the camera thread
        logger.error("camera pipeline error: %s", msg)
        self._emit(trace(f"pipeline error: {msg}", self.active_id))
        with self._lock:
            self.pipeline = None
            if self.detector is not None:
                self._finish(EventType.SESSION_STOPPED)
