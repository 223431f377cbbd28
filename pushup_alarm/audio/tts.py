from __future__ import annotations
import logging
import platform
import queue
import subprocess
import threading
from typing import Optional

logger = logging.getLogger(__name__)


class TTSEngine:
    """Queued speech for rep counts and alarm cues; never blocks the frame loop."""
    def __init__(self, prefer_mac_say: bool = True):
        self.prefer_mac_say = prefer_mac_say and platform.system() == "Darwin"
        self.q: "queue.Queue[str]" = queue.Queue()
        self._stop = threading.Event()
        self._pyttsx3 = None
        self._broken = False
        self.worker = threading.Thread(target=self._run, daemon=True)
        self.worker.start()

    def _ensure_pyttsx3(self):
        if self._pyttsx3 is None:
            import pyttsx3  # lazy import
            self._pyttsx3 = pyttsx3.init()

    def _speak(self, text: str):
        if self.prefer_mac_say:
            subprocess.run(["say", text], check=False)
            return
        if self._broken:
            return
        try:
            self._ensure_pyttsx3()
            self._pyttsx3.say(text)
            self._pyttsx3.runAndWait()
        except Exception:
            # no speech backend on this host; stay quiet from now on
            self._broken = True
            logger.warning("speech backend unavailable, announcements disabled", exc_info=True)

    def _run(self):
        while not self._stop.is_set():
            try:
                text = self.q.get(timeout=0.1)
            except queue.Empty:
                continue
            try:
                if text:
                    self._speak(text)
            finally:
                self.q.task_done()

    def say(self, text: str):
        if not text:
            return
        self.q.put(text)

    def announce_count(self, count: int, target: Optional[int] = None):
        if target is not None and count >= target:
            self.say(f"{count}. alarm dismissed")
        else:
            self.say(str(count))

    def shutdown(self):
        self._stop.set()
        try:
            self.q.put_nowait("")
        except queue.Full:
            pass
