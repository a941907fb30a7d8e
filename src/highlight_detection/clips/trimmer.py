"""
Trim primitive - cuts a time range out of a video file.

The scheduler only depends on the Trimmer / TrimOperation protocols.
FfmpegTrimmer is the production implementation: a stream-copy cut run as
a cancellable ffmpeg subprocess.
"""

import json
import logging
import shutil
import subprocess
import threading
from collections.abc import Sequence
from enum import Enum
from pathlib import Path
from typing import Protocol, runtime_checkable

from ..utils.constants import TRIM_KILL_TIMEOUT

logger = logging.getLogger(__name__)

FFPROBE_TIMEOUT = 30


class TrimStatus(Enum):
    """Terminal state of a trim operation."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"
    UNKNOWN = "unknown"


@runtime_checkable
class TrimOperation(Protocol):
    """Handle to a running trim."""

    @property
    def error(self) -> str | None:
        """Failure reason once the operation has FAILED."""
        ...

    def wait(self, timeout: float | None = None) -> TrimStatus | None:
        """Block until finished; None if still running after `timeout` seconds."""
        ...

    def cancel(self) -> None:
        """Stop the trim; a subsequent wait() reports CANCELLED."""
        ...


@runtime_checkable
class Trimmer(Protocol):
    """Starts trims; implementations must allow concurrent operations."""

    def start_trim(
        self, source: Path, start: float, duration: float, output_path: Path
    ) -> TrimOperation:
        ...


def find_ffmpeg() -> str:
    """Return path to the ffmpeg binary on PATH."""
    ffmpeg = shutil.which("ffmpeg")
    if not ffmpeg:
        raise RuntimeError(
            "ffmpeg was not found on your system.\n\n"
            "Clip export uses ffmpeg to cut the source video.\n\n"
            "Install ffmpeg:\n"
            "  - macOS:  brew install ffmpeg\n"
            "  - Debian/Ubuntu:  sudo apt install ffmpeg\n"
            "  - Windows:  winget install ffmpeg\n"
            "Or disable clip export with --no-clips."
        )
    return ffmpeg


def find_ffprobe(ffmpeg: str | None = None) -> str:
    """Return path to ffprobe, preferring the directory ffmpeg lives in."""
    ffmpeg = ffmpeg or find_ffmpeg()
    sibling = Path(ffmpeg).parent / Path(ffmpeg).name.replace("ffmpeg", "ffprobe")
    if sibling.exists():
        return str(sibling)
    ffprobe = shutil.which("ffprobe")
    if not ffprobe:
        raise RuntimeError("ffprobe was not found on your system (it ships with ffmpeg)")
    return ffprobe


def build_trim_command(
    ffmpeg: str,
    source: Path,
    start: float,
    duration: float,
    output_path: Path,
    extra_args: Sequence[str] = (),
) -> list[str]:
    """ffmpeg argv for a stream-copy cut of [start, start + duration)."""
    return [
        ffmpeg,
        "-y",
        "-loglevel", "error",
        "-ss", f"{start:.3f}",
        "-i", str(source),
        "-t", f"{duration:.3f}",
        "-c", "copy",
        *extra_args,
        str(output_path),
    ]


class FfmpegOperation:
    """A running ffmpeg process."""

    def __init__(self, process: subprocess.Popen, output_path: Path):
        self._process = process
        self._output_path = output_path
        self._cancelled = threading.Event()
        self._status: TrimStatus | None = None
        self._error: str | None = None
        self._lock = threading.Lock()

    @property
    def error(self) -> str | None:
        return self._error

    def wait(self, timeout: float | None = None) -> TrimStatus | None:
        try:
            _, stderr = self._process.communicate(timeout=timeout)
        except subprocess.TimeoutExpired:
            return None
        except ValueError:
            # Streams already closed by an earlier wait
            self._process.wait()
            stderr = ""

        with self._lock:
            if self._status is None:
                self._status = self._finish(self._process.returncode, stderr or "")
            return self._status

    def _finish(self, returncode: int, stderr: str) -> TrimStatus:
        if self._cancelled.is_set():
            self._output_path.unlink(missing_ok=True)
            return TrimStatus.CANCELLED
        if returncode == 0:
            return TrimStatus.COMPLETED
        message = stderr.strip().splitlines()[-1] if stderr.strip() else ""
        self._error = f"ffmpeg exited with code {returncode}" + (f": {message}" if message else "")
        return TrimStatus.FAILED

    def cancel(self) -> None:
        self._cancelled.set()
        if self._process.poll() is not None:
            return

        self._process.terminate()
        try:
            self._process.wait(timeout=TRIM_KILL_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.warning(f"ffmpeg did not exit after {TRIM_KILL_TIMEOUT}s, killing")
            self._process.kill()


class FfmpegTrimmer:
    """Trimmer that runs one ffmpeg process per clip."""

    def __init__(
        self,
        ffmpeg: str | None = None,
        ffprobe: str | None = None,
        extra_args: Sequence[str] = (),
    ):
        self.ffmpeg = ffmpeg or find_ffmpeg()
        self.ffprobe = ffprobe or find_ffprobe(self.ffmpeg)
        self.extra_args = tuple(extra_args)

    def start_trim(
        self, source: Path, start: float, duration: float, output_path: Path
    ) -> FfmpegOperation:
        command = build_trim_command(
            self.ffmpeg, source, start, duration, output_path, self.extra_args
        )
        logger.debug(f"Running: {' '.join(command)}")
        process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        return FfmpegOperation(process, output_path)

    def probe_duration(self, source: Path) -> float | None:
        """Container duration in seconds from ffprobe, or None if unknown."""
        try:
            result = subprocess.run(
                [self.ffprobe, "-v", "quiet", "-print_format", "json", "-show_format", str(source)],
                capture_output=True,
                text=True,
                timeout=FFPROBE_TIMEOUT,
            )
        except subprocess.TimeoutExpired:
            logger.warning(f"ffprobe timed out after {FFPROBE_TIMEOUT}s: {source}")
            return None

        if result.returncode != 0:
            logger.warning(f"ffprobe failed for {source}: {result.stderr.strip()}")
            return None

        try:
            data = json.loads(result.stdout)
            return float(data["format"]["duration"])
        except (ValueError, KeyError, TypeError):
            logger.warning(f"ffprobe returned no duration for {source}")
            return None
