"""
Clip export: scheduling and the ffmpeg trim primitive.
"""

from .scheduler import ClipScheduler, resolve_output_directory
from .trimmer import (
    FfmpegOperation,
    FfmpegTrimmer,
    TrimOperation,
    Trimmer,
    TrimStatus,
    build_trim_command,
    find_ffmpeg,
    find_ffprobe,
)

__all__ = [
    "ClipScheduler",
    "FfmpegOperation",
    "FfmpegTrimmer",
    "TrimOperation",
    "TrimStatus",
    "Trimmer",
    "build_trim_command",
    "find_ffmpeg",
    "find_ffprobe",
    "resolve_output_directory",
]
