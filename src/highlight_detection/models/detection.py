"""
Detected object model - one labelled box produced by a detector for a frame.
"""

from dataclasses import dataclass
from typing import Any

from .geometry import BoundingBox


@dataclass(frozen=True)
class DetectedObject:
    """
    A single detection.

    Attributes:
        label: Class label as reported by the detector
        confidence: Detection confidence in [0, 1]
        bounding_box: Normalized box
        timestamp: Presentation time of the source frame, if known
    """

    label: str
    confidence: float
    bounding_box: BoundingBox
    timestamp: float | None = None

    @property
    def center(self) -> tuple[float, float]:
        return (self.bounding_box.center_x, self.bounding_box.center_y)

    def has_label(self, labels: set[str] | frozenset[str]) -> bool:
        """Case-insensitive label membership; `labels` must already be lowercase."""
        return self.label.lower() in labels

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "label": self.label,
            "confidence": self.confidence,
            "bounding_box": self.bounding_box.to_dict(),
        }
        if self.timestamp is not None:
            data["timestamp"] = self.timestamp
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DetectedObject":
        timestamp = data.get("timestamp")
        return cls(
            label=str(data["label"]),
            confidence=float(data["confidence"]),
            bounding_box=BoundingBox.from_dict(data["bounding_box"]),
            timestamp=float(timestamp) if timestamp is not None else None,
        )
