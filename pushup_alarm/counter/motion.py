from __future__ import annotations
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Deque, Optional

import numpy as np


@dataclass(frozen=True)
class MotionSample:
    x: float
    y: float
    z: float
    t: float  # seconds

    @property
    def magnitude(self) -> float:
        return math.sqrt(self.x * self.x + self.y * self.y + self.z * self.z)

    def axis(self, name: str) -> float:
        return getattr(self, name, 0.0)

    @classmethod
    def from_payload(cls, payload: Any) -> "MotionSample":
        """Build a sample from a devicemotion-style payload.

        Accepts `{"acceleration": {"x","y","z"}, "timestampMs": ...}` (also
        `accelerationIncludingGravity`). Missing or malformed axes become 0.
        """
        if isinstance(payload, MotionSample):
            return payload
        data = payload if isinstance(payload, dict) else {}
        acc = data.get("acceleration")
        if not isinstance(acc, dict):
            acc = data.get("accelerationIncludingGravity")
        if not isinstance(acc, dict):
            acc = {}
        ts_ms = _finite(data.get("timestampMs"), None)
        if ts_ms is not None:
            t = ts_ms / 1000.0
        else:
            t = time.monotonic()
        return cls(
            x=_finite(acc.get("x"), 0.0),
            y=_finite(acc.get("y"), 0.0),
            z=_finite(acc.get("z"), 0.0),
            t=float(t),
        )


def _finite(value: Any, default):
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    return f if math.isfinite(f) else default


@dataclass
class MotionConfig:
    window_s: float = 2.0          # rolling history length
    baseline_samples: int = 10     # samples averaged for the rest reading
    vertical_axis: str = "z"       # device lying flat on the floor, screen up
    intensity_scale: float = 5.0   # deviation (m/s^2) shown as 100% intensity
    down_deviation: float = 2.0    # deviation above this corroborates DOWN
    up_deviation: float = 1.0      # deviation below this corroborates UP


class MotionPreprocessor:
    """
    Rolling accelerometer window with a one-off rest baseline.

    The user holds a plank above the device; the first `baseline_samples`
    readings give the resting vertical acceleration. Every sample after that
    is reported as its absolute deviation from the baseline.
    """
    def __init__(self, cfg: Optional[MotionConfig] = None):
        self.cfg = cfg or MotionConfig()
        self.history: Deque[MotionSample] = deque()
        self.baseline: Optional[float] = None
        self.deviation = 0.0
        self._last_t: Optional[float] = None

    @property
    def has_baseline(self) -> bool:
        return self.baseline is not None

    def ingest(self, sample: Any) -> Optional[float]:
        """Add one sample; returns its deviation once the baseline exists, else None."""
        s = MotionSample.from_payload(sample)
        t = s.t
        if self._last_t is not None and t < self._last_t:
            t = self._last_t  # keep the session clock monotonic
            s = MotionSample(s.x, s.y, s.z, t)
        self._last_t = t

        self.history.append(s)
        while self.history and (t - self.history[0].t) > self.cfg.window_s:
            self.history.popleft()

        if self.baseline is None:
            n = self.cfg.baseline_samples
            if len(self.history) < n:
                return None
            recent = [abs(h.axis(self.cfg.vertical_axis)) for h in list(self.history)[-n:]]
            self.baseline = float(np.mean(recent))

        self.deviation = abs(abs(s.axis(self.cfg.vertical_axis)) - self.baseline)
        return self.deviation

    def intensity(self, deviation: Optional[float] = None) -> float:
        d = self.deviation if deviation is None else deviation
        if self.cfg.intensity_scale <= 0:
            return 0.0
        return min(100.0, d / self.cfg.intensity_scale * 100.0)

    def reset(self):
        self.history.clear()
        self.baseline = None
        self.deviation = 0.0
        self._last_t = None


@dataclass
class ThresholdMotionConfig:
    magnitude_threshold: float = 12.0  # |a| (m/s^2, gravity included) counted as high motion
    min_dwell_s: float = 0.3           # time a high/low period must last to count


class ThresholdMotionClassifier:
    """Manual-fallback signal: no baseline, just high/low motion periods with dwell."""
    def __init__(self, cfg: Optional[ThresholdMotionConfig] = None):
        self.cfg = cfg or ThresholdMotionConfig()
        self.high = False
        self.magnitude = 0.0
        self._period_start: Optional[float] = None
        self._last_t: Optional[float] = None

    def classify(self, sample: Any) -> MotionSample:
        s = MotionSample.from_payload(sample)
        t = s.t if self._last_t is None else max(s.t, self._last_t)
        self._last_t = t
        self.magnitude = s.magnitude
        high = self.magnitude > self.cfg.magnitude_threshold
        if self._period_start is None or high != self.high:
            self.high = high
            self._period_start = t
        return s

    def dwell(self) -> float:
        if self._period_start is None or self._last_t is None:
            return 0.0
        return self._last_t - self._period_start

    def settled(self) -> bool:
        return self.dwell() >= self.cfg.min_dwell_s

    def reset(self):
        self.high = False
        self.magnitude = 0.0
        self._period_start = None
        self._last_t = None
