"""
Video source models and the FrameSource protocol.

A frame source yields decoded frames with presentation timestamps in
increasing order. Any decoder (OpenCV, PyAV, a test fixture) can implement
the protocol to drive the analysis loop.
"""

from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Protocol, runtime_checkable


class Orientation(Enum):
    """Clockwise rotation needed to display the stored frame upright."""

    UP = 0
    RIGHT = 90
    DOWN = 180
    LEFT = 270

    @classmethod
    def from_degrees(cls, degrees: float) -> "Orientation":
        """Map rotation metadata (any multiple of 90, possibly negative) to an orientation."""
        normalized = int(round(degrees)) % 360
        for orientation in cls:
            if orientation.value == normalized:
                return orientation
        return cls.UP


@dataclass(frozen=True)
class VideoInfo:
    """Metadata reported by a frame source once opened."""

    path: Path
    duration: float
    fps: float
    frame_count: int
    orientation: Orientation = Orientation.UP


@dataclass(frozen=True)
class Frame:
    """
    A decoded frame.

    Attributes:
        image: Pixel data (BGR numpy array for OpenCV sources)
        timestamp: Presentation time in seconds
        index: Position of the frame in the source
    """

    image: Any
    timestamp: float
    index: int


@runtime_checkable
class FrameSource(Protocol):
    """Protocol for frame sources."""

    def open(self) -> VideoInfo:
        """
        Open the source and return its metadata.

        Raises:
            VideoLoadError: If the source cannot be opened
        """
        ...

    def read_frames(self, start_time: float, end_time: float) -> Iterator[Frame]:
        """Yield frames with start_time <= timestamp < end_time in timestamp order."""
        ...

    def close(self) -> None:
        """Release decoder resources."""
        ...
