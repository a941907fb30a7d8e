"""
Analysis Logic - Routes frames to calibration, then to event detection.
"""

import logging
from collections.abc import Callable

from ..config.schemas import AnalysisConfig
from ..models import AnalysisEvent, BoundingBox, Calibrated, DetectedObject
from .calibration import CalibrationEngine
from .event_engine import EventDetectionEngine

logger = logging.getLogger(__name__)


class AnalysisLogic:
    """Per-run analysis state: calibration first, event detection after."""

    def __init__(
        self,
        config: AnalysisConfig,
        log_callback: Callable[[str], None] | None = None,
    ):
        self.config = config
        self._log_callback = log_callback
        self.calibration = CalibrationEngine(
            calibration_frames=config.calibration_frames,
            target_labels=config.target_labels,
            zone_height=config.target_zone_height,
            zone_horizontal_expansion=config.target_zone_horizontal_expansion,
            log_callback=log_callback if config.debug_mode else None,
        )
        self.events: EventDetectionEngine | None = None

    @property
    def is_calibrated(self) -> bool:
        return self.events is not None

    @property
    def target_box(self) -> BoundingBox | None:
        return self.calibration.target_box

    @property
    def target_zone(self) -> BoundingBox | None:
        return self.calibration.target_zone

    def process_frame(
        self, detections: list[DetectedObject], timestamp: float
    ) -> AnalysisEvent | None:
        """
        Process one frame of detections.

        Args:
            detections: Filtered detections for the frame
            timestamp: Frame presentation time in seconds

        Returns:
            Calibrating / Calibrated during calibration, EventDetected when
            an event fires, otherwise None
        """
        if self.events is not None:
            return self.events.observe(detections, timestamp)

        event = self.calibration.observe(detections)
        if isinstance(event, Calibrated):
            self.events = EventDetectionEngine(
                target_box=self.calibration.target_box,
                target_zone=self.calibration.target_zone,
                config=self.config,
                log_callback=self._log_callback,
            )
        return event
