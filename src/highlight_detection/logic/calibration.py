"""
Calibration Engine - Locks the static target position.

Collects the best target detection from each frame until enough samples
are buffered, then averages them into the target box and derives the
target zone: a thin band directly above the target, slightly wider than
it, where an object must pass for an event to count.
"""

import logging
from collections.abc import Callable

from ..models import BoundingBox, Calibrated, Calibrating, DetectedObject
from ..utils.constants import DEBUG_SAMPLE_INTERVAL

logger = logging.getLogger(__name__)


class CalibrationEngine:
    """One-shot calibration of the target box and zone."""

    def __init__(
        self,
        calibration_frames: int,
        target_labels: frozenset[str],
        zone_height: float,
        zone_horizontal_expansion: float,
        log_callback: Callable[[str], None] | None = None,
    ):
        """
        Args:
            calibration_frames: Samples required before locking the target
            target_labels: Lowercase labels that count as the target
            zone_height: Height of the zone band above the target
            zone_horizontal_expansion: Zone overhang on each side of the target
            log_callback: Optional sink for diagnostic messages
        """
        if calibration_frames < 1:
            raise ValueError("calibration_frames must be >= 1")

        self.calibration_frames = calibration_frames
        self.target_labels = frozenset(label.lower() for label in target_labels)
        self.zone_height = zone_height
        self.zone_horizontal_expansion = zone_horizontal_expansion
        self._log_callback = log_callback

        self._samples: list[BoundingBox] = []
        self._target_box: BoundingBox | None = None
        self._target_zone: BoundingBox | None = None

    @property
    def is_calibrated(self) -> bool:
        return self._target_box is not None

    @property
    def target_box(self) -> BoundingBox | None:
        return self._target_box

    @property
    def target_zone(self) -> BoundingBox | None:
        return self._target_zone

    @property
    def sample_count(self) -> int:
        return len(self._samples)

    def observe(self, detections: list[DetectedObject]) -> Calibrating | Calibrated | None:
        """
        Feed one frame of detections.

        Returns:
            Calibrating while collecting, Calibrated on the sample that
            completes calibration, None for frames without a target and for
            every frame after calibration.
        """
        if self.is_calibrated:
            return None

        targets = [d for d in detections if d.has_label(self.target_labels)]
        if not targets:
            return None

        best = max(targets, key=lambda d: d.confidence)
        self._samples.append(best.bounding_box)

        count = len(self._samples)
        if count % DEBUG_SAMPLE_INTERVAL == 0:
            self._log(
                f"Calibration sample {count}/{self.calibration_frames}: "
                f"{best.label} {best.confidence:.2f} at {best.bounding_box}"
            )

        if count < self.calibration_frames:
            return Calibrating(current=count, target=self.calibration_frames)

        box = BoundingBox.mean(self._samples)
        self._samples.clear()
        self._target_box = box
        self._target_zone = self.zone_for(box)

        logger.info(f"Target locked at {box}")
        logger.info(f"Target zone: {self._target_zone}")
        return Calibrated(box=box)

    def zone_for(self, box: BoundingBox) -> BoundingBox:
        """Zone band above `box`, widened by the horizontal expansion on each side."""
        return BoundingBox(
            x=box.min_x - self.zone_horizontal_expansion,
            y=box.min_y - self.zone_height,
            width=box.width + 2 * self.zone_horizontal_expansion,
            height=self.zone_height,
        )

    def _log(self, message: str) -> None:
        logger.debug(message)
        if self._log_callback:
            self._log_callback(message)
