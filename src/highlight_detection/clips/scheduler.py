"""
Clip Scheduler - Bounded-concurrency clip export.

Each event becomes a ClipJob. Jobs run on a thread pool sized to
max_concurrent_exports, so at most that many trims are in flight; the rest
queue in submission order. Every job resolves its future exactly once,
with a ClipResult or a ClipExportError subclass.
"""

import logging
import math
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from ..config.schemas import ClipConfig
from ..errors import (
    ClipCancelledError,
    ClipExportError,
    ClipTimeoutError,
    ExportFailedError,
    InvalidClipRangeError,
    UnknownExportError,
)
from ..models import ClipJob, ClipResult
from ..utils.constants import CLIP_SESSION_FORMAT, DEFAULT_CLIP_DIR, TRIM_KILL_TIMEOUT
from .trimmer import Trimmer, TrimOperation, TrimStatus

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class _JobState:
    """Mutable per-job bookkeeping; guarded by the scheduler lock."""

    job: ClipJob
    cancelled: bool = False
    operation: TrimOperation | None = None


def resolve_output_directory(config: ClipConfig, now: datetime | None = None) -> Path:
    """
    Directory clips are written to.

    The configured output_directory wins; otherwise clips go to
    ./clips/<session_name>, or ./clips/Session_<timestamp> without a name.
    """
    if config.output_directory is not None:
        return Path(config.output_directory).expanduser()
    session = config.session_name or (now or datetime.now()).strftime(CLIP_SESSION_FORMAT)
    return Path.cwd() / DEFAULT_CLIP_DIR / session


class ClipScheduler:
    """Schedules clip exports around detected events."""

    def __init__(
        self,
        config: ClipConfig,
        trimmer: Trimmer,
        duration_probe: Callable[[Path], float | None] | None = None,
    ):
        """
        Args:
            config: Lead/trail times, concurrency, timeout and output location
            trimmer: Trim primitive
            duration_probe: Looks up a source duration when a job carries none
        """
        self.config = config
        self._trimmer = trimmer
        self._duration_probe = duration_probe

        self.output_directory = resolve_output_directory(config)
        self.output_directory.mkdir(parents=True, exist_ok=True)

        self._executor = ThreadPoolExecutor(
            max_workers=config.max_concurrent_exports,
            thread_name_prefix="ClipExport",
        )
        self._lock = threading.Lock()
        self._jobs: set[_JobState] = set()
        self._active = 0
        self._shutdown = False

        logger.info(
            f"Clip scheduler ready: {self.output_directory} "
            f"(max {config.max_concurrent_exports} concurrent, timeout {config.export_timeout:g}s)"
        )

    @property
    def active_count(self) -> int:
        """Number of trims currently in flight."""
        with self._lock:
            return self._active

    def compute_range(
        self, timestamp: float, source_duration: float | None
    ) -> tuple[float, float]:
        """Clip (start, end) around `timestamp`, clamped to the source."""
        start = max(0.0, timestamp - self.config.lead_time)
        end = timestamp + self.config.trail_time
        if source_duration is not None:
            end = min(source_duration, end)
        return start, end

    def output_path_for(self, job: ClipJob) -> Path:
        name = f"clip_{job.index}_{math.floor(job.timestamp)}s.{self.config.extension}"
        return self.output_directory / name

    def submit(self, job: ClipJob) -> "Future[ClipResult]":
        """
        Queue a clip export. Never blocks and never raises; failures are
        delivered through the returned future.

        A job without a source duration is probed on the export worker, so
        its range is only checked there.
        """
        if job.source_duration is not None or self._duration_probe is None:
            try:
                self._clip_range(job, job.source_duration)
            except InvalidClipRangeError as e:
                return _failed_future(e)

        state = _JobState(job=job)
        with self._lock:
            if self._shutdown:
                return _failed_future(ClipCancelledError("Clip scheduler is shut down"))
            self._jobs.add(state)
            future = self._executor.submit(self._run, state)

        future.add_done_callback(lambda _: self._forget(state))
        logger.debug(f"Clip {job.index} queued at {job.timestamp:.2f}s")
        return future

    def cancel_all(self) -> int:
        """
        Cancel every unfinished job, queued or in flight.

        Returns:
            Number of jobs cancelled
        """
        with self._lock:
            states = list(self._jobs)
            self._jobs.clear()
            for state in states:
                state.cancelled = True
            operations = [s.operation for s in states if s.operation is not None]

        for operation in operations:
            operation.cancel()

        if states:
            logger.info(f"Cancelled {len(states)} clip export(s)")
        return len(states)

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        """Stop accepting jobs; optionally cancel outstanding ones."""
        with self._lock:
            self._shutdown = True
        if cancel_pending:
            self.cancel_all()
        self._executor.shutdown(wait=wait)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown(wait=True, cancel_pending=exc_type is not None)

    def _clip_range(self, job: ClipJob, source_duration: float | None) -> tuple[float, float]:
        """(start, duration) for `job`; raises InvalidClipRangeError when empty."""
        start, end = self.compute_range(job.timestamp, source_duration)
        if end - start <= 0:
            logger.warning(f"Clip {job.index} skipped: empty range {start:.2f}s - {end:.2f}s")
            raise InvalidClipRangeError(start, end)
        return start, end - start

    def _source_duration(self, job: ClipJob) -> float | None:
        if job.source_duration is not None:
            return job.source_duration
        if self._duration_probe is None:
            return None
        try:
            return self._duration_probe(job.source)
        except Exception as e:
            logger.warning(f"Could not read duration of {job.source}: {e}")
            return None

    def _forget(self, state: _JobState) -> None:
        with self._lock:
            self._jobs.discard(state)

    def _run(self, state: _JobState) -> ClipResult:
        """Worker body: one trim, mapped to a result or a ClipExportError."""
        job = state.job
        with self._lock:
            if state.cancelled:
                raise ClipCancelledError()

        start, duration = self._clip_range(job, self._source_duration(job))

        with self._lock:
            if state.cancelled:
                raise ClipCancelledError()
            self._active += 1

        try:
            return self._export(state, start, duration)
        except ClipExportError as e:
            logger.warning(f"Clip {job.index} failed: {e}")
            raise
        except Exception as e:
            logger.error(f"Clip {job.index} failed unexpectedly: {e}", exc_info=True)
            raise UnknownExportError(str(e)) from e
        finally:
            with self._lock:
                self._active -= 1

    def _export(self, state: _JobState, start: float, duration: float) -> ClipResult:
        job = state.job
        output_path = self.output_path_for(job)
        output_path.unlink(missing_ok=True)

        logger.info(
            f"Exporting clip {job.index}: {start:.2f}s + {duration:.2f}s -> {output_path.name}"
        )

        try:
            operation = self._trimmer.start_trim(job.source, start, duration, output_path)
        except Exception as e:
            raise ExportFailedError(str(e)) from e

        with self._lock:
            state.operation = operation
            cancelled = state.cancelled
        if cancelled:
            operation.cancel()

        status = operation.wait(self.config.export_timeout)
        if status is None:
            operation.cancel()
            # Reap the cancelled trim so its partial output is removed
            if operation.wait(TRIM_KILL_TIMEOUT) is None:
                logger.warning(f"Clip {job.index} trim still running after cancel")
            raise ClipTimeoutError(self.config.export_timeout)

        if status is TrimStatus.COMPLETED:
            try:
                file_size = output_path.stat().st_size
            except OSError as e:
                raise ExportFailedError(f"Output not readable: {output_path}: {e}") from e
            logger.info(f"Clip {job.index} saved: {output_path} ({file_size} bytes)")
            return ClipResult(
                path=output_path,
                index=job.index,
                timestamp=job.timestamp,
                duration=duration,
                file_size=file_size,
            )
        if status is TrimStatus.FAILED:
            raise ExportFailedError(operation.error or "trim failed")
        if status is TrimStatus.CANCELLED:
            raise ClipCancelledError()
        raise UnknownExportError(f"unexpected trim status {status}")


def _failed_future(error: Exception) -> Future:
    future: Future = Future()
    future.set_exception(error)
    return future
