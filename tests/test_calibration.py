import math

import pytest

from pushup_alarm.counter.calibration import RangeCalibrator


def test_uncalibrated_progress_is_zero():
    cal = RangeCalibrator()
    assert cal.span == 0.0
    assert not cal.calibrated
    assert cal.progress(0.4) == 0.0
    cal.observe(0.30)
    cal.observe(0.34)
    assert cal.span == pytest.approx(0.04)
    assert cal.progress(0.34) == 0.0


def test_progress_maps_range_to_percent():
    cal = RangeCalibrator()
    cal.observe(0.3)
    assert cal.observe(0.5) == pytest.approx(0.2)
    assert cal.calibrated
    assert cal.progress(0.4) == pytest.approx(50.0)
    assert cal.progress(0.47) == pytest.approx(85.0)


def test_progress_is_clamped():
    cal = RangeCalibrator()
    cal.observe(0.3)
    cal.observe(0.5)
    assert cal.progress(0.9) == 100.0
    assert cal.progress(0.0) == 0.0


def test_range_only_widens():
    cal = RangeCalibrator()
    for v in (0.3, 0.5, 0.4, 0.45):
        cal.observe(v)
    assert (cal.min_value, cal.max_value) == (0.3, 0.5)
    cal.observe(0.2)
    assert cal.min_value == 0.2 and cal.max_value == 0.5


def test_non_finite_signal_is_ignored():
    cal = RangeCalibrator()
    cal.observe(0.3)
    cal.observe(math.nan)
    cal.observe(math.inf)
    assert cal.span == 0.0


def test_reset_is_idempotent():
    cal = RangeCalibrator(min_span=0.1)
    cal.observe(0.1)
    cal.observe(0.9)
    cal.reset()
    cal.reset()
    assert cal.span == 0.0
    assert cal.progress(0.5) == 0.0
    assert cal.min_span == 0.1
