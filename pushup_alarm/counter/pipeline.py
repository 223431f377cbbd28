from __future__ import annotations
import logging
import threading
import time
from typing import Callable, Optional

import cv2
import mediapipe as mp

from pushup_alarm.counter.detector import DetectionResult
from pushup_alarm.counter.form import form_feedback, landmarks_from_records

logger = logging.getLogger(__name__)


class PosePipeline(threading.Thread):
    """Webcam -> MediaPipe Pose -> feed(landmarks, t), on a daemon thread."""
    def __init__(
            self,
            feed: Callable[..., Optional[DetectionResult]],
            on_error: Optional[Callable[[str], None]] = None,
            camera_index: int = 0,
            show_window: bool = False,
    ):
        super().__init__(daemon=True)
        self.feed = feed
        self.on_error = on_error
        self.camera_index = camera_index
        self.show_window = show_window
        self._stop_evt = threading.Event()
        self.cap = None
        self.pose = None

    def run(self):
        mp_pose = mp.solutions.pose

        try:
            self.cap = cv2.VideoCapture(self.camera_index)
            if not self.cap.isOpened():
                raise RuntimeError("Webcam not available")

            self.pose = mp_pose.Pose(
                model_complexity=1,
                smooth_landmarks=True,
                min_detection_confidence=0.5,
                min_tracking_confidence=0.5,
            )

            while not self._stop_evt.is_set():
                ok, frame = self.cap.read()
                if not ok:
                    time.sleep(0.01)
                    continue
                res = self.pose.process(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
                if not res.pose_landmarks:
                    # nobody in frame: same as an invalid snapshot
                    result = self.feed([], time.monotonic())
                else:
                    landmarks = landmarks_from_records(res.pose_landmarks.landmark)
                    result = self.feed(landmarks, time.monotonic())

                if result is None:
                    break  # session finished
                if self.show_window:
                    self._draw(frame, res, result)

        except Exception as e:
            logger.exception("pose pipeline failed")
            if self.on_error:
                self.on_error(str(e))

        finally:
            if self.cap is not None:
                self.cap.release()
            if self.pose is not None:
                self.pose.close()
            if self.show_window:
                cv2.destroyAllWindows()

    def _draw(self, frame, res, result: DetectionResult):
        if res.pose_landmarks:
            color = (0, 255, 0) if result.form_valid else (0, 255, 255)
            mp.solutions.drawing_utils.draw_landmarks(
                frame,
                res.pose_landmarks,
                mp.solutions.pose.POSE_CONNECTIONS,
                mp.solutions.drawing_utils.DrawingSpec(color=color, thickness=2),
            )
        metrics = result.metrics if res.pose_landmarks else None
        lines = [
            f"Count: {result.count}",
            f"Position: {result.phase.upper()}",
            f"Progress: {round(result.progress)}%",
            form_feedback(metrics, result.is_down),
        ]
        for i, text in enumerate(lines):
            cv2.putText(frame, text, (20, 40 + 30 * i), cv2.FONT_HERSHEY_SIMPLEX, 0.8, (255, 255, 255), 2)
        cv2.imshow("Pushup alarm", frame)
        cv2.waitKey(1)

    def stop(self):
        self._stop_evt.set()
