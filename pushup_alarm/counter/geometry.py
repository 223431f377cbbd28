from __future__ import annotations
import math
from typing import Any, Tuple

import numpy as np

# Utility math. Points are (x, y[, z]) sequences or landmark-like objects
# exposing .x/.y; everything is computed on the (x, y) projection.

_EPS = 1e-9


def _xy(p: Any) -> Tuple[float, float]:
    if hasattr(p, "x") and hasattr(p, "y"):
        return float(p.x), float(p.y)
    return float(p[0]), float(p[1])


def angle_between(a: Any, b: Any, c: Any) -> float:
    """Return angle ABC in degrees with B as vertex, in [0, 180].

    Degenerate input (a or c coincident with b) yields 0.0 instead of NaN.
    """
    v1 = np.subtract(_xy(a), _xy(b))
    v2 = np.subtract(_xy(c), _xy(b))
    denom = float(np.linalg.norm(v1) * np.linalg.norm(v2))
    if denom < _EPS or not math.isfinite(denom):
        return 0.0
    cosang = np.clip(np.dot(v1, v2) / denom, -1.0, 1.0)
    return float(np.degrees(np.arccos(cosang)))


def distance(a: Any, b: Any) -> float:
    """Planar Euclidean distance on (x, y)."""
    (ax, ay), (bx, by) = _xy(a), _xy(b)
    return math.hypot(ax - bx, ay - by)


def line_tilt(a: Any, b: Any) -> float:
    """Absolute slope angle of the line a-b in degrees, in [0, 90] (0 = level).

    Direction-free, so a mirrored camera (left joint right of the right one)
    reads the same tilt.
    """
    (ax, ay), (bx, by) = _xy(a), _xy(b)
    if abs(bx - ax) < _EPS and abs(by - ay) < _EPS:
        return 0.0
    ang = abs(math.degrees(math.atan2(by - ay, bx - ax)))
    if ang > 90:
        ang = 180 - ang
    return ang
