"""
Configuration loading, validation and presets.

- load_config: Find, read and validate the YAML config
- validate_config_full: Schema plus semantic checks with errors/warnings

Pydantic schemas are immutable value objects passed to the engines at
construction time:
- InferenceConfig, AnalysisConfig, ClipConfig, DetectorConfig, AppConfig
"""

from .loader import (
    ConfigValidationError,
    apply_env_overrides,
    build_app_config,
    deep_merge,
    find_config_file,
    load_config,
    load_raw_config,
)
from .schemas import (
    ANALYSIS_PRESETS,
    AnalysisConfig,
    AppConfig,
    ClipConfig,
    DetectorConfig,
    InferenceConfig,
)
from .validator import (
    ValidationResult,
    print_validation_result,
    validate_config_full,
)

__all__ = [
    "ANALYSIS_PRESETS",
    # Schemas
    "AnalysisConfig",
    "AppConfig",
    "ClipConfig",
    # Exception
    "ConfigValidationError",
    "DetectorConfig",
    "InferenceConfig",
    # Validation
    "ValidationResult",
    # Loading
    "apply_env_overrides",
    "build_app_config",
    "deep_merge",
    "find_config_file",
    "load_config",
    "load_raw_config",
    "print_validation_result",
    "validate_config_full",
]
