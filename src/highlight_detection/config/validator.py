"""
Configuration Validator - Validates config syntax and semantic correctness.

Schema errors come from the pydantic models; this module adds the checks
that need more than one field (label overlap, filter coverage, timing)
and the filesystem checks for model files.
"""

import logging
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .loader import ConfigValidationError, build_app_config
from .schemas import AppConfig

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of config validation."""

    valid: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    derived: dict[str, Any] = field(default_factory=dict)


def validate_config_full(raw: dict[str, Any]) -> ValidationResult:
    """
    Comprehensive config validation with detailed error messages.

    Args:
        raw: Raw configuration dictionary (after environment overrides)

    Returns:
        ValidationResult with errors, warnings, and derived settings.
    """
    result = ValidationResult(valid=True)

    try:
        app_config = build_app_config(raw)
    except ConfigValidationError as e:
        result.errors.extend(e.errors or [str(e)])
        result.valid = False
        return result

    _validate_detector(app_config, result)
    _validate_labels(app_config, result)
    _validate_timing(app_config, result)

    result.derived["preset"] = app_config.preset
    result.derived["frame_skip"] = app_config.analysis.frame_skip
    result.derived["calibration_frames"] = app_config.analysis.calibration_frames
    result.derived["clips"] = "enabled" if app_config.clips_enabled else "disabled"

    if result.errors:
        result.valid = False

    return result


def _validate_detector(config: AppConfig, result: ValidationResult) -> None:
    """Validate detector backend settings."""
    detector = config.detector
    if detector.type == "yolo" and detector.model_file:
        if not Path(detector.model_file).exists():
            result.errors.append(f"Model file not found: {detector.model_file}")
    if detector.type == "cloud" and not detector.api_key:
        result.warnings.append("Cloud detector has no api_key; requests are sent unauthenticated")


def _validate_labels(config: AppConfig, result: ValidationResult) -> None:
    """Check that target and object labels can actually reach the engines."""
    analysis = config.analysis

    overlap = analysis.target_labels & analysis.object_labels
    if overlap:
        result.warnings.append(
            f"Labels used as both target and object: {', '.join(sorted(overlap))}"
        )

    label_filter = analysis.inference.label_filter
    if label_filter is not None:
        if not label_filter & analysis.target_labels:
            result.errors.append(
                "inference.label_filter removes every target label - calibration can never finish"
            )
        if not label_filter & analysis.object_labels:
            result.errors.append(
                "inference.label_filter removes every object label - no event can fire"
            )


def _validate_timing(config: AppConfig, result: ValidationResult) -> None:
    """Check timing parameters that are valid individually but odd together."""
    analysis = config.analysis

    if analysis.event_cooldown < analysis.event_window:
        result.warnings.append(
            f"event_cooldown ({analysis.event_cooldown}s) is shorter than "
            f"event_window ({analysis.event_window}s); one event may fire twice"
        )

    if analysis.frame_skip > analysis.calibration_frames:
        result.warnings.append(
            f"frame_skip ({analysis.frame_skip}) exceeds calibration_frames "
            f"({analysis.calibration_frames})"
        )


def print_validation_result(result: ValidationResult, stream=None) -> None:
    """Print validation result in a human-readable form."""
    out = stream or sys.stdout

    if result.valid:
        print("Configuration valid", file=out)
    else:
        print("Configuration invalid", file=out)

    for error in result.errors:
        print(f"  ERROR: {error}", file=out)
    for warning in result.warnings:
        print(f"  WARNING: {warning}", file=out)

    if result.derived:
        print("\nDerived settings:", file=out)
        for key, value in result.derived.items():
            print(f"  {key}: {value}", file=out)
