"""
Event Detection Engine - Recognises object/target interaction events.

Works against the target box and zone locked by calibration. Per frame:

1. Frames inside the cooldown after the last event are ignored.
2. An object whose center is within interaction_distance_threshold of the
   target center, or inside the target box grown by expansion_factor,
   records an interaction.
3. An object whose center is inside the target zone marks the frame as a
   zone entry.
4. A zone entry fires an event when the last interaction is within
   event_window. In "same_frame" mode the interaction must also be
   recorded in the zone-entry frame; in "recent" mode an interaction from
   an earlier frame is enough.
"""

import logging
from collections.abc import Callable

from ..config.schemas import AnalysisConfig
from ..models import BoundingBox, DetectedObject, EventDetected
from ..utils.constants import INITIAL_EVENT_TIME

logger = logging.getLogger(__name__)


class EventDetectionEngine:
    """Stateful per-frame event detector for a calibrated target."""

    def __init__(
        self,
        target_box: BoundingBox,
        target_zone: BoundingBox,
        config: AnalysisConfig,
        log_callback: Callable[[str], None] | None = None,
    ):
        self.target_box = target_box
        self.target_zone = target_zone
        self.config = config
        self._log_callback = log_callback

        self._interaction_region = target_box.expanded(
            config.expansion_factor, config.expansion_factor
        )
        self.last_interaction_time = INITIAL_EVENT_TIME
        self.last_event_time = INITIAL_EVENT_TIME

    def observe(
        self, detections: list[DetectedObject], timestamp: float
    ) -> EventDetected | None:
        """Evaluate one frame; returns EventDetected when an event fires."""
        config = self.config

        if timestamp - self.last_event_time < config.event_cooldown:
            return None

        targets = [d for d in detections if d.has_label(config.target_labels)]
        objects = [d for d in detections if d.has_label(config.object_labels)]

        if config.debug_mode:
            self._log(
                f"[{_format_clock(timestamp)} | {timestamp:.2f}s] "
                f"targets={len(targets)} objects={len(objects)}"
            )

        in_zone = False
        interacted = False

        for obj in objects:
            center_x, center_y = obj.center

            distance = obj.bounding_box.distance(self.target_box)
            if distance < config.interaction_distance_threshold:
                interacted = True
                if config.debug_mode:
                    self._log(
                        f"  interaction: distance {distance:.3f} < "
                        f"{config.interaction_distance_threshold}"
                    )

            if self._interaction_region.contains_point(center_x, center_y):
                interacted = True
                if config.debug_mode:
                    self._log(f"  interaction: {obj.label} inside expanded target")

            if self.target_zone.contains_point(center_x, center_y):
                in_zone = True
                if config.debug_mode:
                    self._log(f"  zone entry at ({center_x:.3f}, {center_y:.3f})")

        if interacted:
            self.last_interaction_time = timestamp

        if not in_zone:
            return None
        if config.interaction_mode == "same_frame" and not interacted:
            return None

        elapsed = abs(timestamp - self.last_interaction_time)
        if elapsed > config.event_window:
            if config.debug_mode:
                self._log(f"  outside event window: {elapsed:.2f}s > {config.event_window}s")
            return None

        self.last_event_time = timestamp
        logger.info(f"Event detected at {timestamp:.2f}s")
        return EventDetected(timestamp=timestamp)

    def _log(self, message: str) -> None:
        logger.debug(message)
        if self._log_callback:
            self._log_callback(message)


def _format_clock(seconds: float) -> str:
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}:{secs:02d}"
