"""
Pydantic schemas for configuration validation.

Provides type-safe, declarative validation with clear error messages.
All config models are immutable once built; named presets are fixed
value combinations.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class StrictModel(BaseModel):
    """Base model that rejects unknown fields and is immutable."""

    model_config = ConfigDict(extra="forbid", frozen=True)


class InferenceConfig(StrictModel):
    """Detection post-processing settings (confidence, NMS, label filter)."""

    confidence_threshold: float = Field(default=0.15, ge=0.0, le=1.0)
    nms_threshold: float = Field(default=0.45, ge=0.0, le=1.0)
    max_detections: int = Field(default=100, ge=1)
    label_filter: frozenset[str] | None = Field(
        default=None, description="Keep only these labels (case-insensitive)"
    )

    @field_validator("label_filter")
    @classmethod
    def normalize_labels(cls, v: frozenset[str] | None) -> frozenset[str] | None:
        if v is None:
            return None
        return frozenset(label.lower() for label in v)

    @classmethod
    def preset(cls, name: str) -> "InferenceConfig":
        """Return a named preset: default, high_precision, high_recall, performance."""
        presets = {
            "default": {},
            "high_precision": {"confidence_threshold": 0.5, "nms_threshold": 0.3},
            "high_recall": {"confidence_threshold": 0.1, "nms_threshold": 0.6},
            "performance": {"confidence_threshold": 0.2, "max_detections": 50},
        }
        if name not in presets:
            raise ValueError(f"Unknown inference preset: {name}")
        return cls(**presets[name])


DEFAULT_TARGET_LABELS = frozenset({"rim", "1", "hoop", "basket", "class_1"})
DEFAULT_OBJECT_LABELS = frozenset({"ball", "0", "basketball", "sport ball", "class_0"})

ANALYSIS_PRESETS = ("default", "performance", "high_precision")


class AnalysisConfig(StrictModel):
    """Frame loop, calibration and event detection settings."""

    inference: InferenceConfig = Field(default_factory=InferenceConfig)

    # Performance
    frame_skip: int = Field(default=3, ge=1, description="Process every Nth frame once calibrated")
    calibration_frames: int = Field(default=30, ge=1)

    # Time range (seconds); None means start/end of video
    start_time: float | None = Field(default=None, ge=0)
    end_time: float | None = Field(default=None, ge=0)

    # Event detection
    event_window: float = Field(default=2.5, ge=0)
    event_cooldown: float = Field(default=3.0, ge=0)
    interaction_mode: Literal["same_frame", "recent"] = Field(
        default="same_frame",
        description="same_frame: interaction must occur in the zone-entry frame; "
        "recent: any interaction within event_window counts",
    )

    # Spatial thresholds (normalized coordinates)
    target_zone_height: float = Field(default=0.06, gt=0)
    target_zone_horizontal_expansion: float = Field(default=0.01, ge=0)
    interaction_distance_threshold: float = Field(default=0.20, ge=0)
    expansion_factor: float = Field(default=0.10, ge=0)

    # Labels
    target_labels: frozenset[str] = DEFAULT_TARGET_LABELS
    object_labels: frozenset[str] = DEFAULT_OBJECT_LABELS

    # Debugging
    debug_mode: bool = False
    max_log_count: int = Field(default=1000, ge=1)

    @field_validator("target_labels", "object_labels")
    @classmethod
    def normalize_labels(cls, v: frozenset[str]) -> frozenset[str]:
        if not v:
            raise ValueError("At least one label is required")
        return frozenset(label.lower() for label in v)

    @model_validator(mode="after")
    def validate_time_range(self):
        if (
            self.start_time is not None
            and self.end_time is not None
            and self.start_time >= self.end_time
        ):
            raise ValueError("end_time must be > start_time")
        return self

    @classmethod
    def preset(cls, name: str) -> "AnalysisConfig":
        """Return a named preset: default, performance, high_precision."""
        if name == "default":
            return cls()
        if name == "performance":
            return cls(frame_skip=5, calibration_frames=20, max_log_count=500)
        if name == "high_precision":
            return cls(
                inference=InferenceConfig.preset("high_precision"),
                frame_skip=2,
                calibration_frames=40,
                event_window=2.0,
                event_cooldown=4.0,
                target_zone_height=0.04,
                interaction_distance_threshold=0.15,
            )
        raise ValueError(f"Unknown analysis preset: {name}")


class ClipConfig(StrictModel):
    """Clip export settings."""

    lead_time: float = Field(default=4.0, ge=0, description="Seconds before the event")
    trail_time: float = Field(default=2.0, ge=0, description="Seconds after the event")
    max_concurrent_exports: int = Field(default=2, ge=1)
    export_timeout: float = Field(default=120.0, gt=0)
    output_directory: Path | None = None
    session_name: str | None = Field(default=None, min_length=1)
    extension: str = Field(default="mp4", min_length=1)

    @field_validator("extension")
    @classmethod
    def strip_dot(cls, v: str) -> str:
        return v.lstrip(".")


class DetectorConfig(StrictModel):
    """Detector backend selection."""

    type: Literal["yolo", "cloud"] = "yolo"
    model_file: str | None = Field(default=None, description="YOLO weights (.pt, .onnx, ...)")
    device: str | None = Field(default=None, description="Torch device; auto when unset")
    endpoint: str | None = Field(default=None, description="Cloud inference URL")
    api_key: str | None = None
    timeout_seconds: float = Field(default=30.0, gt=0)

    @model_validator(mode="after")
    def validate_backend(self):
        if self.type == "yolo" and not self.model_file:
            raise ValueError("detector.model_file is required for type 'yolo'")
        if self.type == "cloud" and not self.endpoint:
            raise ValueError("detector.endpoint is required for type 'cloud'")
        return self


class AppConfig(StrictModel):
    """Complete configuration file."""

    preset: Literal["default", "performance", "high_precision"] = "default"
    detector: DetectorConfig
    analysis: AnalysisConfig = Field(default_factory=AnalysisConfig)
    clips: ClipConfig = Field(default_factory=ClipConfig)
    clips_enabled: bool = True
