from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from pushup_alarm.counter.geometry import angle_between, line_tilt

# MediaPipe Pose (BlazePose, 33 points) indices used for pushup form.
LEFT_SHOULDER = 11
RIGHT_SHOULDER = 12
LEFT_ELBOW = 13
RIGHT_ELBOW = 14
LEFT_WRIST = 15
RIGHT_WRIST = 16
LEFT_HIP = 23
RIGHT_HIP = 24
LEFT_KNEE = 25
RIGHT_KNEE = 26

REQUIRED_JOINTS = (
    LEFT_SHOULDER, RIGHT_SHOULDER,
    LEFT_ELBOW, RIGHT_ELBOW,
    LEFT_WRIST, RIGHT_WRIST,
    LEFT_HIP, RIGHT_HIP,
    LEFT_KNEE, RIGHT_KNEE,
)


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 1.0


@dataclass(frozen=True)
class FormThresholds:
    # Loose plank detection in normalized image coordinates.
    min_visibility: float = 0.5
    min_elbow_angle: float = 60.0    # exclusive
    max_elbow_angle: float = 180.0   # exclusive
    max_shoulder_tilt: float = 15.0  # degrees
    max_alignment: float = 0.15      # normalized y units


DEFAULT_THRESHOLDS = FormThresholds()


@dataclass(frozen=True)
class PoseMetrics:
    elbow_angle: float = 0.0       # avg of left/right shoulder-elbow-wrist
    shoulder_tilt: float = 0.0
    body_alignment: float = 0.0    # smaller = straighter shoulder-hip-knee line
    depth: float = 0.0             # avg shoulder y
    is_valid: bool = False


INVALID_METRICS = PoseMetrics()


def _num(value: Any, default: Optional[float]) -> Optional[float]:
    try:
        f = float(value)
    except (TypeError, ValueError):
        return default
    return f if math.isfinite(f) else default


def to_landmark(record: Any) -> Optional[Landmark]:
    """Coerce a joint record (mapping, MediaPipe landmark, Landmark) to Landmark.

    Missing z defaults to 0 and missing visibility to 1.0. A record whose x/y
    is absent, non-numeric or not finite is treated as a missing joint; a
    visibility that is present but unreadable counts as not visible.
    """
    if record is None:
        return None
    if isinstance(record, dict):
        get = record.get
    else:
        def get(key, default=None):
            return getattr(record, key, default)
    x, y = _num(get("x"), None), _num(get("y"), None)
    if x is None or y is None:
        return None
    vis = get("visibility")
    return Landmark(
        x=x,
        y=y,
        z=_num(get("z", 0.0), 0.0),
        visibility=1.0 if vis is None else _num(vis, 0.0),
    )


def landmarks_from_records(records: Optional[Sequence[Any]]) -> List[Optional[Landmark]]:
    if not records:
        return []
    return [to_landmark(r) for r in records]


def analyze_pose(landmarks: Sequence[Any], thresholds: FormThresholds = DEFAULT_THRESHOLDS) -> PoseMetrics:
    """Compute one PoseMetrics snapshot from a frame of joint records.

    Any required joint missing or at/below the visibility threshold yields
    zeroed, invalid metrics; no partial computation is attempted.
    """
    pts = landmarks_from_records(landmarks)
    joints = {}
    for idx in REQUIRED_JOINTS:
        lm = pts[idx] if idx < len(pts) else None
        if lm is None or not lm.visibility > thresholds.min_visibility:
            return INVALID_METRICS
        joints[idx] = lm

    l_elbow = angle_between(joints[LEFT_SHOULDER], joints[LEFT_ELBOW], joints[LEFT_WRIST])
    r_elbow = angle_between(joints[RIGHT_SHOULDER], joints[RIGHT_ELBOW], joints[RIGHT_WRIST])
    elbow = (l_elbow + r_elbow) / 2.0

    tilt = line_tilt(joints[LEFT_SHOULDER], joints[RIGHT_SHOULDER])

    shoulder_y = (joints[LEFT_SHOULDER].y + joints[RIGHT_SHOULDER].y) / 2.0
    hip_y = (joints[LEFT_HIP].y + joints[RIGHT_HIP].y) / 2.0
    knee_y = (joints[LEFT_KNEE].y + joints[RIGHT_KNEE].y) / 2.0
    alignment = max(abs(shoulder_y - hip_y), abs(hip_y - knee_y))

    valid = (
        thresholds.min_elbow_angle < elbow < thresholds.max_elbow_angle
        and tilt < thresholds.max_shoulder_tilt
        and alignment < thresholds.max_alignment
    )
    return PoseMetrics(
        elbow_angle=elbow,
        shoulder_tilt=tilt,
        body_alignment=alignment,
        depth=shoulder_y,
        is_valid=valid,
    )


def form_feedback(metrics: Optional[PoseMetrics], is_down: bool) -> str:
    if metrics is None:
        return "Step into camera view"
    if not metrics.is_valid:
        return "Position yourself in plank position"
    if metrics.elbow_angle < 90:
        return "Good form - go lower!"
    if is_down:
        return "Great! Now push up"
    return "Perfect form - keep going!"
