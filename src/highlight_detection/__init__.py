"""
Highlight Detection

Finds scoring events in fixed-camera sports video and cuts a short clip
around each one. Built on YOLO and ffmpeg.

Package structure:
  models/     - Geometry, detections, events and collaborator protocols
  inference/  - Detector backends (YOLO, cloud) and post-processing
  logic/      - Target calibration and event detection
  clips/      - Bounded-concurrency clip export
  video/      - Frame sources
  config/     - Configuration loading and validation
  utils/      - Constants
"""

__version__ = "1.0.0"

from .callbacks import AnalysisCallbacks, CallbackDispatcher
from .clips import ClipScheduler, FfmpegTrimmer, TrimStatus

# Configuration
from .config import (
    AnalysisConfig,
    AppConfig,
    ClipConfig,
    ConfigValidationError,
    DetectorConfig,
    InferenceConfig,
    load_config,
    validate_config_full,
)
from .errors import VideoAnalysisError
from .inference import build_detector, filter_detections
from .logic import AnalysisLogic, CalibrationEngine, EventDetectionEngine
from .models import (
    AnalysisResult,
    BoundingBox,
    Calibrated,
    Calibrating,
    ClipJob,
    ClipResult,
    Custom,
    DetectedObject,
    EventDetected,
)
from .orchestrator import AnalysisOrchestrator, RunState

__all__ = [
    "AnalysisCallbacks",
    "AnalysisConfig",
    "AnalysisLogic",
    # Orchestration
    "AnalysisOrchestrator",
    "AnalysisResult",
    "AppConfig",
    # Models
    "BoundingBox",
    "Calibrated",
    "Calibrating",
    "CalibrationEngine",
    "CallbackDispatcher",
    "ClipConfig",
    "ClipJob",
    "ClipResult",
    # Clips
    "ClipScheduler",
    "ConfigValidationError",
    "Custom",
    "DetectedObject",
    "DetectorConfig",
    "EventDetected",
    "EventDetectionEngine",
    "FfmpegTrimmer",
    "InferenceConfig",
    "RunState",
    "TrimStatus",
    # Errors
    "VideoAnalysisError",
    "build_detector",
    "filter_detections",
    "load_config",
    "validate_config_full",
]
