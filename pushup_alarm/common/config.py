from __future__ import annotations
import logging
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


DB_PATH = Path(os.getenv("PUSHUP_ALARM_DB", "./pushup_alarm.db"))
TRAINER_MODE = _flag("PUSHUP_ALARM_VOICE", True)  # speak counts out loud
DEFAULT_TARGET = int(os.getenv("PUSHUP_ALARM_TARGET", "20"))
LOG_LEVEL = os.getenv("PUSHUP_ALARM_LOG_LEVEL", "INFO").upper()

MIN_TARGET = 1
MAX_TARGET = 100


def configure_logging(level: str | None = None):
    logging.basicConfig(
        level=getattr(logging, (level or LOG_LEVEL), logging.INFO),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
