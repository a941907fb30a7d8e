"""
Utility modules for constants.
"""

from .constants import (
    CALIBRATION_LOG_INTERVAL,
    CLIP_SESSION_FORMAT,
    DEFAULT_CLIP_DIR,
    ENV_API_KEY,
    ENV_CLIP_DIR,
    ENV_MODEL_FILE,
    INITIAL_EVENT_TIME,
    PROGRESS_CAP,
    PROGRESS_INTERVAL_FRAMES,
)

__all__ = [
    "CALIBRATION_LOG_INTERVAL",
    "CLIP_SESSION_FORMAT",
    "DEFAULT_CLIP_DIR",
    # Environment
    "ENV_API_KEY",
    "ENV_CLIP_DIR",
    "ENV_MODEL_FILE",
    "INITIAL_EVENT_TIME",
    "PROGRESS_CAP",
    "PROGRESS_INTERVAL_FRAMES",
]
