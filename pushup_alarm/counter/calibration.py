from __future__ import annotations
import math


class RangeCalibrator:
    """
    Running min/max of a depth-like signal, mapped to a 0-100 progress scale.
    Normalizes body size, camera distance and device placement without an
    explicit calibration step. The observed range only ever widens until reset().
    """
    def __init__(self, min_span: float = 0.05):
        self.min_span = float(min_span)
        self.min_value = math.inf
        self.max_value = -math.inf

    @property
    def span(self) -> float:
        if self.max_value < self.min_value:
            return 0.0
        return self.max_value - self.min_value

    @property
    def calibrated(self) -> bool:
        return self.span >= self.min_span

    def observe(self, signal: float) -> float:
        s = float(signal)
        if not math.isfinite(s):
            return self.span
        self.min_value = min(self.min_value, s)
        self.max_value = max(self.max_value, s)
        return self.span

    def progress(self, signal: float) -> float:
        """Percent of the observed range; 0 until the span reaches min_span."""
        span = self.span
        if span < self.min_span:
            return 0.0
        pct = (float(signal) - self.min_value) / span * 100.0
        if not math.isfinite(pct):
            return 0.0
        return max(0.0, min(100.0, pct))

    def reset(self):
        self.min_value = math.inf
        self.max_value = -math.inf
