from __future__ import annotations
import time
from dataclasses import dataclass
from typing import Any, Callable, Literal, Optional

from pushup_alarm.common.events import RepEvent
from pushup_alarm.counter.form import (
    DEFAULT_THRESHOLDS,
    FormThresholds,
    PoseMetrics,
    analyze_pose,
    form_feedback,
)
from pushup_alarm.counter.machine import MachineConfig, RepetitionStateMachine
from pushup_alarm.counter.motion import (
    MotionConfig,
    MotionPreprocessor,
    ThresholdMotionClassifier,
    ThresholdMotionConfig,
)

Mode = Literal["pose", "motion", "threshold"]


@dataclass(frozen=True)
class SignalReading:
    signal: float
    valid: bool
    down_ok: bool = False
    up_ok: bool = False
    progress: Optional[float] = None   # set by sources that skip range calibration
    metrics: Optional[PoseMetrics] = None
    intensity: Optional[float] = None
    deviation: Optional[float] = None


@dataclass(frozen=True)
class DetectionResult:
    is_down: bool
    progress: float
    count: int
    form_valid: bool
    calibrated: bool
    rep_completed: bool = False
    metrics: Optional[PoseMetrics] = None
    intensity: Optional[float] = None
    deviation: Optional[float] = None

    @property
    def phase(self) -> str:
        if not self.calibrated:
            return "transitioning"
        return "down" if self.is_down else "up"

    def as_dict(self) -> dict:
        out = {
            "isDown": self.is_down,
            "progressPercent": self.progress,
            "repetitionCount": self.count,
            "formValid": self.form_valid,
            "calibrated": self.calibrated,
            "repCompleted": self.rep_completed,
            "phase": self.phase,
        }
        if self.metrics is not None:
            out.update({
                "elbowAngle": self.metrics.elbow_angle,
                "shoulderTilt": self.metrics.shoulder_tilt,
                "bodyAlignment": self.metrics.body_alignment,
                "feedback": form_feedback(self.metrics, self.is_down),
            })
        if self.intensity is not None:
            out["motionIntensity"] = self.intensity
        if self.deviation is not None:
            out["deviation"] = self.deviation
        return out


class PoseSignalSource:
    """Camera variant: shoulder height as depth, elbow angle as corroboration."""
    name = "pose"

    def __init__(
        self,
        thresholds: FormThresholds = DEFAULT_THRESHOLDS,
        down_elbow_max: float = 120.0,
        up_elbow_min: float = 140.0,
    ):
        self.thresholds = thresholds
        self.down_elbow_max = down_elbow_max
        self.up_elbow_min = up_elbow_min

    def read(self, landmarks: Any) -> SignalReading:
        m = analyze_pose(landmarks or [], self.thresholds)
        return SignalReading(
            signal=m.depth,
            valid=m.is_valid,
            down_ok=m.elbow_angle < self.down_elbow_max,
            up_ok=m.elbow_angle > self.up_elbow_min,
            metrics=m,
        )

    def reset(self):
        pass


class MotionSignalSource:
    """Sensor variant: deviation from the resting vertical acceleration."""
    name = "motion"

    def __init__(self, cfg: Optional[MotionConfig] = None):
        self.pre = MotionPreprocessor(cfg)

    def read(self, sample: Any) -> SignalReading:
        dev = self.pre.ingest(sample)
        if dev is None:
            return SignalReading(signal=0.0, valid=False, intensity=0.0)
        cfg = self.pre.cfg
        return SignalReading(
            signal=dev,
            valid=True,
            down_ok=dev > cfg.down_deviation,
            up_ok=dev < cfg.up_deviation,
            intensity=self.pre.intensity(dev),
            deviation=dev,
        )

    def reset(self):
        self.pre.reset()


class ThresholdMotionSource:
    """Fallback sensor variant: high/low motion periods stand in for progress."""
    name = "threshold"

    def __init__(self, cfg: Optional[ThresholdMotionConfig] = None):
        self.clf = ThresholdMotionClassifier(cfg)

    def read(self, sample: Any) -> SignalReading:
        self.clf.classify(sample)
        settled = self.clf.settled()
        high = self.clf.high
        thr = self.clf.cfg.magnitude_threshold
        return SignalReading(
            signal=self.clf.magnitude,
            valid=True,
            down_ok=high and settled,
            up_ok=(not high) and settled,
            progress=100.0 if high else 0.0,
            intensity=min(100.0, self.clf.magnitude / thr * 100.0) if thr > 0 else 0.0,
        )

    def reset(self):
        self.clf.reset()


class RepDetector:
    """
    One exercise session's repetition engine: a signal source feeding the
    shared UP/DOWN state machine. Call process() once per frame or sample;
    on_rep fires synchronously, once per completed rep.
    """
    def __init__(
        self,
        source,
        config: Optional[MachineConfig] = None,
        on_rep: Optional[Callable[[RepEvent], None]] = None,
        session_id: str = "",
        clock: Callable[[], float] = time.monotonic,
        debug_cb: Optional[Callable[[dict], None]] = None,
    ):
        self.source = source
        self.machine = RepetitionStateMachine(
            config, on_rep=on_rep, session_id=session_id, clock=clock, debug_cb=debug_cb
        )

    @property
    def count(self) -> int:
        return self.machine.count

    @property
    def state(self):
        return self.machine.state

    @property
    def calibrator(self):
        return self.machine.calibrator

    def process(self, raw: Any, t: Optional[float] = None) -> DetectionResult:
        r = self.source.read(raw)
        m = self.machine
        name = self.source.name
        if r.progress is not None:
            done = m.advance(r.progress, r.valid, r.down_ok, r.up_ok, calibrated=True, source=name, t=t)
            calibrated = True
            progress = r.progress if r.valid else 0.0
        else:
            done = m.feed(r.signal, r.valid, r.down_ok, r.up_ok, source=name, t=t)
            calibrated = m.calibrator.calibrated
            progress = m.calibrator.progress(r.signal) if r.valid else 0.0
        return DetectionResult(
            is_down=m.is_down,
            progress=progress,
            count=m.count,
            form_valid=r.valid,
            calibrated=calibrated,
            rep_completed=done,
            metrics=r.metrics,
            intensity=r.intensity,
            deviation=r.deviation,
        )

    def count_manual(self, t: Optional[float] = None) -> bool:
        return self.machine.count_manual(t)

    def reset(self):
        """Zero the count, return to UP, drop calibration and any motion baseline."""
        self.machine.reset()
        self.source.reset()


def make_detector(
    mode: Mode = "pose",
    on_rep: Optional[Callable[[RepEvent], None]] = None,
    session_id: str = "",
    config: Optional[MachineConfig] = None,
    debug_cb: Optional[Callable[[dict], None]] = None,
    clock: Callable[[], float] = time.monotonic,
    source_cfg: Any = None,
) -> RepDetector:
    if mode == "pose":
        source = PoseSignalSource(source_cfg or DEFAULT_THRESHOLDS)
    elif mode == "motion":
        source = MotionSignalSource(source_cfg)
    elif mode == "threshold":
        source = ThresholdMotionSource(source_cfg)
    else:
        raise ValueError(f"Unknown detector mode: {mode}")
    return RepDetector(source, config, on_rep=on_rep, session_id=session_id, clock=clock, debug_cb=debug_cb)
