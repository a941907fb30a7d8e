"""
Consolidated data models for highlight detection.

This package contains the value types shared across the engines, the
orchestrator and the clip scheduler, plus the collaborator protocols.
"""

from .detection import DetectedObject
from .detector import Detector
from .events import (
    EVENT_TYPE_CALIBRATED,
    EVENT_TYPE_CALIBRATING,
    EVENT_TYPE_CUSTOM,
    EVENT_TYPE_EVENT_DETECTED,
    AnalysisEvent,
    AnalysisResult,
    Calibrated,
    Calibrating,
    ClipJob,
    ClipResult,
    Custom,
    EventDetected,
)
from .geometry import BoundingBox
from .video import Frame, FrameSource, Orientation, VideoInfo

__all__ = [
    # Event types
    "EVENT_TYPE_CALIBRATED",
    "EVENT_TYPE_CALIBRATING",
    "EVENT_TYPE_CUSTOM",
    "EVENT_TYPE_EVENT_DETECTED",
    "AnalysisEvent",
    "AnalysisResult",
    # Geometry
    "BoundingBox",
    "Calibrated",
    "Calibrating",
    "ClipJob",
    "ClipResult",
    "Custom",
    "DetectedObject",
    # Protocols
    "Detector",
    "EventDetected",
    "Frame",
    "FrameSource",
    "Orientation",
    "VideoInfo",
]
