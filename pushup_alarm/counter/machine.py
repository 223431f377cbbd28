from __future__ import annotations
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from pushup_alarm.common.events import EventType, RepEvent, trace
from pushup_alarm.counter.calibration import RangeCalibrator

logger = logging.getLogger(__name__)


class RepState(str, Enum):
    UP = "up"
    DOWN = "down"


@dataclass
class MachineConfig:
    down_threshold: float = 70.0    # progress % above which we may enter DOWN
    up_threshold: float = 30.0      # progress % below which we may return UP
    min_stable_frames: int = 10     # consecutive valid samples before any transition
    manual_min_gap_s: float = 0.8   # debounce for count_manual()
    min_span: float = 0.05          # calibrator span needed before progress is meaningful


class RepetitionStateMachine:
    """
    UP -> DOWN -> UP counter over a 0-100 progress signal with hysteresis.

    Each tick needs the progress to cross its threshold, the signal source's
    secondary check to agree (elbow angle, motion deviation, dwell time) and
    at least `min_stable_frames` consecutive valid samples. The rep event fires
    on the DOWN -> UP half only, exactly once per cycle.
    """
    def __init__(
        self,
        config: Optional[MachineConfig] = None,
        calibrator: Optional[RangeCalibrator] = None,
        on_rep: Optional[Callable[[RepEvent], None]] = None,
        session_id: str = "",
        clock: Callable[[], float] = time.monotonic,
        debug_cb: Optional[Callable[[dict], None]] = None,
    ):
        self.cfg = config or MachineConfig()
        self.calibrator = calibrator or RangeCalibrator(self.cfg.min_span)
        self.on_rep = on_rep
        self.session_id = session_id
        self.clock = clock
        self._dbg = debug_cb or (lambda *_: None)

        self.state = RepState.UP
        self.count = 0
        self.stable_frames = 0
        self._last_manual_ts: Optional[float] = None

    def _enter_state(self, new_state: RepState):
        if new_state != self.state:
            self.state = new_state
            self._dbg(trace(f"state→{new_state.name}", self.session_id))

    def _emit(self, source: str, t: float) -> RepEvent:
        ev = RepEvent(
            type=EventType.REP,
            session_id=self.session_id,
            ts=t,
            rep_count=self.count,
            source=source,
        )
        if self.on_rep is not None:
            try:
                self.on_rep(ev)
            except Exception:
                logger.exception("rep callback failed (count=%d)", self.count)
        return ev

    @property
    def is_down(self) -> bool:
        return self.state == RepState.DOWN

    def feed(
        self,
        signal: float,
        valid: bool = True,
        down_ok: bool = True,
        up_ok: bool = True,
        source: str = "signal",
        t: Optional[float] = None,
    ) -> bool:
        """Calibrate on a raw depth/deviation sample, then advance."""
        if not valid:
            return self.advance(0.0, valid=False)
        self.calibrator.observe(signal)
        return self.advance(
            self.calibrator.progress(signal),
            valid=True,
            down_ok=down_ok,
            up_ok=up_ok,
            calibrated=self.calibrator.calibrated,
            source=source,
            t=t,
        )

    def advance(
        self,
        progress: float,
        valid: bool = True,
        down_ok: bool = True,
        up_ok: bool = True,
        calibrated: bool = True,
        source: str = "signal",
        t: Optional[float] = None,
    ) -> bool:
        """Apply one tick of already-normalized progress. Returns True on a completed rep."""
        if not valid:
            # state and count survive dropouts; only stability restarts
            self.stable_frames = 0
            return False
        self.stable_frames += 1
        if not calibrated:
            return False

        stable = self.stable_frames >= self.cfg.min_stable_frames
        if not stable:
            return False

        if self.state == RepState.UP:
            if progress > self.cfg.down_threshold and down_ok:
                self._enter_state(RepState.DOWN)
            return False

        if progress < self.cfg.up_threshold and up_ok:
            self._enter_state(RepState.UP)
            self.count += 1
            self._emit(source, self.clock() if t is None else t)
            return True
        return False

    def count_manual(self, t: Optional[float] = None) -> bool:
        """Count one rep directly, ignoring taps closer than manual_min_gap_s."""
        now = self.clock() if t is None else float(t)
        if self._last_manual_ts is not None and (now - self._last_manual_ts) < self.cfg.manual_min_gap_s:
            self._dbg(trace("manual count ignored (too fast)", self.session_id))
            return False
        self._last_manual_ts = now
        self.count += 1
        self._emit("manual", now)
        return True

    def reset(self):
        self.state = RepState.UP
        self.count = 0
        self.stable_frames = 0
        self._last_manual_ts = None
        self.calibrator.reset()
