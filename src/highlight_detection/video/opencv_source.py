"""
OpenCV frame source - decodes a video file with cv2.VideoCapture.
"""

import logging
from collections.abc import Iterator
from pathlib import Path

import cv2

from ..errors import ReaderCreationError, VideoLoadError, VideoTrackNotFoundError
from ..models import Frame, Orientation, VideoInfo

logger = logging.getLogger(__name__)


class OpenCvFrameSource:
    """
    Frame source for local video files.

    Auto-rotation is disabled so frames arrive as stored; the rotation
    metadata is reported through VideoInfo.orientation and applied by the
    detector.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._cap: cv2.VideoCapture | None = None
        self._fps = 0.0

    def open(self) -> VideoInfo:
        if not self.path.exists():
            raise VideoLoadError(f"Video file not found: {self.path}")

        cap = cv2.VideoCapture(str(self.path))
        if not cap.isOpened():
            cap.release()
            raise VideoLoadError(f"Cannot open video: {self.path}")

        fps = cap.get(cv2.CAP_PROP_FPS) or 0.0
        frame_count = int(cap.get(cv2.CAP_PROP_FRAME_COUNT) or 0)
        if fps <= 0 or frame_count <= 0:
            cap.release()
            raise VideoTrackNotFoundError(str(self.path))

        cap.set(cv2.CAP_PROP_ORIENTATION_AUTO, 0)
        orientation = Orientation.from_degrees(cap.get(cv2.CAP_PROP_ORIENTATION_META) or 0)

        self._cap = cap
        self._fps = fps

        info = VideoInfo(
            path=self.path,
            duration=frame_count / fps,
            fps=fps,
            frame_count=frame_count,
            orientation=orientation,
        )
        logger.info(
            f"Opened {self.path.name}: {info.duration:.1f}s, {fps:.2f} fps, "
            f"{frame_count} frames, rotation {orientation.value}"
        )
        return info

    def read_frames(self, start_time: float, end_time: float) -> Iterator[Frame]:
        """Yield frames with start_time <= timestamp < end_time."""
        if self._cap is None:
            raise ReaderCreationError("Video source is not open")

        cap = self._cap
        if start_time > 0 and not cap.set(cv2.CAP_PROP_POS_MSEC, start_time * 1000.0):
            raise ReaderCreationError(f"Cannot seek to {start_time:.2f}s in {self.path}")

        while True:
            position = int(cap.get(cv2.CAP_PROP_POS_FRAMES))
            ok, image = cap.read()
            if not ok:
                break

            timestamp = position / self._fps
            if timestamp >= end_time:
                break
            # Seeking lands on the preceding keyframe
            if timestamp < start_time:
                continue

            yield Frame(image=image, timestamp=timestamp, index=position)

    def close(self) -> None:
        if self._cap is not None:
            self._cap.release()
            self._cap = None
