"""
Detector Protocol - Common interface for all detection backends.

Any detection method (local YOLO, cloud API, test fixture) can implement
this protocol to plug into the analysis loop.
"""

from typing import Any, Protocol, runtime_checkable

from .detection import DetectedObject
from .video import Orientation


@runtime_checkable
class Detector(Protocol):
    """
    Protocol for detection algorithms.

    Called repeatedly from the frame-loop thread only.

    Example:
        detector: Detector = YoloDetector("model.pt", InferenceConfig())
        objects = detector.detect(frame.image, info.orientation)
    """

    def detect(self, frame: Any, orientation: Orientation) -> list[DetectedObject]:
        """
        Detect objects in a single frame.

        Args:
            frame: Pixel data for one frame
            orientation: Rotation needed to make the frame upright

        Returns:
            Filtered detections with normalized boxes
        """
        ...
