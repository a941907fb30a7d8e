"""
Analysis events and results - contract between the analysis engines,
the orchestrator and its callers.

Event Types:
    CALIBRATING: Calibration sample collected (progress)
    CALIBRATED: Target position locked for the rest of the run
    EVENT_DETECTED: Object/target interaction recognised (e.g. a score)
    CUSTOM: Named event with a typed scalar payload

Events are immutable; callers match on the concrete class or `event_type`.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Union

from .geometry import BoundingBox

EVENT_TYPE_CALIBRATING = "CALIBRATING"
EVENT_TYPE_CALIBRATED = "CALIBRATED"
EVENT_TYPE_EVENT_DETECTED = "EVENT_DETECTED"
EVENT_TYPE_CUSTOM = "CUSTOM"

Scalar = Union[str, int, float, bool]


@dataclass(frozen=True)
class Calibrating:
    """Calibration in progress: `current` of `target` samples collected."""

    event_type: ClassVar[str] = EVENT_TYPE_CALIBRATING

    current: int
    target: int

    def to_dict(self) -> dict[str, Any]:
        return {"event_type": self.event_type, "current": self.current, "target": self.target}


@dataclass(frozen=True)
class Calibrated:
    """Calibration finished; `box` is the averaged target box."""

    event_type: ClassVar[str] = EVENT_TYPE_CALIBRATED

    box: BoundingBox

    def to_dict(self) -> dict[str, Any]:
        return {"event_type": self.event_type, "box": self.box.to_dict()}


@dataclass(frozen=True)
class EventDetected:
    """An interaction event at `timestamp` seconds into the video."""

    event_type: ClassVar[str] = EVENT_TYPE_EVENT_DETECTED

    timestamp: float
    metadata: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"event_type": self.event_type, "timestamp": self.timestamp}
        if self.metadata is not None:
            data["metadata"] = dict(self.metadata)
        return data


@dataclass(frozen=True)
class Custom:
    """Extension point for scenario-specific events."""

    event_type: ClassVar[str] = EVENT_TYPE_CUSTOM

    name: str
    data: dict[str, Scalar] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"event_type": self.event_type, "name": self.name, "data": dict(self.data)}


AnalysisEvent = Union[Calibrating, Calibrated, EventDetected, Custom]


@dataclass(frozen=True)
class ClipJob:
    """
    Request to cut a clip around an event.

    Attributes:
        source: Source video path
        timestamp: Event time in seconds
        index: Event number within the run (1-based), used to correlate results
        source_duration: Source length in seconds, if already known
    """

    source: Path
    timestamp: float
    index: int
    source_duration: float | None = None


@dataclass(frozen=True)
class ClipResult:
    """A clip written to disk."""

    path: Path
    index: int
    timestamp: float
    duration: float
    file_size: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "index": self.index,
            "timestamp": round(self.timestamp, 3),
            "duration": round(self.duration, 3),
            "file_size": self.file_size,
        }


@dataclass
class AnalysisResult:
    """Summary of a finished run."""

    total_frames: int
    duration: float
    events: list[EventDetected] = field(default_factory=list)

    @property
    def average_fps(self) -> float:
        return self.total_frames / self.duration if self.duration > 0 else 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_frames": self.total_frames,
            "duration": round(self.duration, 3),
            "average_fps": round(self.average_fps, 2),
            "events": [e.to_dict() for e in self.events],
        }
