"""
Configuration Loader - Finds, reads and resolves the YAML config file.

Handles:
- Config file search (explicit path, working directory, user config dir)
- Pointer files (`use: path/to/config.yaml`)
- Environment variable overrides
- Merging `analysis` overrides onto the selected preset
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from ..utils.constants import ENV_API_KEY, ENV_CLIP_DIR, ENV_MODEL_FILE
from .schemas import ANALYSIS_PRESETS, AnalysisConfig, AppConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "config.yaml"


class ConfigValidationError(Exception):
    """Raised when config loading or validation fails."""

    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = errors or []


def find_config_file(config_path: str | None = None) -> Path | None:
    """
    Find config file in standard locations.

    Search order:
    1. Specified path (if provided)
    2. Current directory (config.yaml)
    3. ~/.config/highlight-detection/config.yaml

    Args:
        config_path: User-specified config path

    Returns:
        Path to config file, or None if nothing was found

    Raises:
        ConfigValidationError: If an explicitly specified file does not exist
    """
    if config_path:
        specified = Path(config_path)
        if not specified.exists():
            raise ConfigValidationError(f"Specified config file not found: {config_path}")
        return specified

    search_paths = [
        Path.cwd() / DEFAULT_CONFIG_NAME,
        Path.home() / ".config" / "highlight-detection" / DEFAULT_CONFIG_NAME,
    ]

    for path in search_paths:
        if path.exists():
            logger.info(f"Using config: {path}")
            return path

    logger.info("No config file found, using preset defaults")
    return None


def load_raw_config(config_file: Path) -> dict[str, Any]:
    """
    Read a YAML config file, following a pointer file if present.

    Supports pointer files: if config only contains `use: path/to/config.yaml`,
    that file is loaded instead (resolved relative to the pointer file).
    """
    try:
        with open(config_file, encoding="utf-8") as f:
            config = yaml.safe_load(f) or {}

        if isinstance(config, dict) and list(config.keys()) == ["use"]:
            pointer_path = Path(config_file).parent / config["use"]
            logger.info(f"Config pointer: {config_file} -> {pointer_path}")
            with open(pointer_path, encoding="utf-8") as f:
                config = yaml.safe_load(f) or {}

    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML in {config_file}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(f"Cannot read config {config_file}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigValidationError(f"Config root must be a mapping: {config_file}")

    logger.info(f"Configuration loaded from {config_file}")
    return config


def apply_env_overrides(config: dict[str, Any]) -> dict[str, Any]:
    """
    Apply environment variable overrides to a raw config dict.

    Args:
        config: Raw configuration dictionary (not modified)

    Returns:
        Configuration with environment variables applied
    """
    config = copy.deepcopy(config)

    if ENV_MODEL_FILE in os.environ:
        logger.info(f"Using model file from environment: {ENV_MODEL_FILE}")
        config.setdefault("detector", {})["model_file"] = os.environ[ENV_MODEL_FILE]

    if ENV_API_KEY in os.environ:
        logger.info(f"Using API key from environment: {ENV_API_KEY}")
        config.setdefault("detector", {})["api_key"] = os.environ[ENV_API_KEY]

    if ENV_CLIP_DIR in os.environ:
        logger.info(f"Using clip directory from environment: {ENV_CLIP_DIR}")
        config.setdefault("clips", {})["output_directory"] = os.environ[ENV_CLIP_DIR]

    return config


def deep_merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge `overrides` onto `base`; nested dicts merge, other values replace."""
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_app_config(raw: dict[str, Any]) -> AppConfig:
    """
    Resolve presets and validate a raw config dict.

    Raises:
        ConfigValidationError: With one message per schema violation
    """
    preset_name = raw.get("preset", "default")
    if preset_name not in ANALYSIS_PRESETS:
        raise ConfigValidationError(
            f"Unknown preset '{preset_name}'",
            [f"preset: must be one of {', '.join(ANALYSIS_PRESETS)}"],
        )

    analysis_overrides = raw.get("analysis") or {}
    if not isinstance(analysis_overrides, dict):
        raise ConfigValidationError("analysis must be a mapping", ["analysis: must be a mapping"])

    base = AnalysisConfig.preset(preset_name).model_dump()
    resolved = dict(raw)
    resolved["analysis"] = deep_merge(base, analysis_overrides)

    try:
        return AppConfig.model_validate(resolved)
    except ValidationError as e:
        errors = format_validation_errors(e)
        raise ConfigValidationError("Invalid configuration", errors) from e


def format_validation_errors(error: ValidationError) -> list[str]:
    """Flatten a pydantic ValidationError into 'path: message' strings."""
    messages = []
    for item in error.errors():
        location = ".".join(str(part) for part in item["loc"]) or "config"
        messages.append(f"{location}: {item['msg']}")
    return messages


def load_config(config_path: str | None = None) -> AppConfig:
    """
    Load, override and validate the configuration.

    Args:
        config_path: Explicit config file path, or None to search

    Returns:
        Validated AppConfig

    Raises:
        ConfigValidationError: If the file cannot be read or is invalid
    """
    config_file = find_config_file(config_path)
    raw = load_raw_config(config_file) if config_file else {}
    raw = apply_env_overrides(raw)
    return build_app_config(raw)
