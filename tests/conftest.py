import math
import os

os.environ.setdefault("PUSHUP_ALARM_VOICE", "0")

import pytest

from pushup_alarm.counter.form import Landmark
from pushup_alarm.data import db


def build_pose(depth=0.3, elbow=150.0, visibility=0.9, tilt_dy=0.0, hip_offset=0.0):
    """33-point frame of a side-on plank: shoulders at `depth`, elbows bent to `elbow` degrees."""
    pts = [Landmark(0.5, 0.5, 0.0, 0.1) for _ in range(33)]
    rad = math.radians(elbow)
    for side, sx in ((0, 0.4), (1, 0.6)):
        sy = depth + (tilt_dy if side else 0.0)
        ex, ey = sx, sy + 0.1
        wx, wy = ex + 0.1 * math.sin(rad), ey - 0.1 * math.cos(rad)
        pts[11 + side] = Landmark(sx, sy, 0.0, visibility)
        pts[13 + side] = Landmark(ex, ey, 0.0, visibility)
        pts[15 + side] = Landmark(wx, wy, 0.0, visibility)
        pts[23 + side] = Landmark(sx + 0.3, depth + hip_offset, 0.0, visibility)
        pts[25 + side] = Landmark(sx + 0.5, depth + hip_offset, 0.0, visibility)
    return pts


def motion(z, ms, x=0.0, y=0.0):
    return {"acceleration": {"x": x, "y": y, "z": z}, "timestampMs": ms}


@pytest.fixture
def pose():
    return build_pose


@pytest.fixture
def sample():
    return motion


@pytest.fixture
def up_pose():
    return build_pose(depth=0.30, elbow=150.0)


@pytest.fixture
def down_pose():
    return build_pose(depth=0.47, elbow=100.0)


@pytest.fixture
def tmp_db(tmp_path):
    db.configure(tmp_path / "workouts.db")
    yield db
    db.configure(tmp_path / "closed.db")
