"""
Analysis Orchestrator - Runs the frame loop for one video at a time.

The loop runs on its own daemon thread:

    read frame -> detect -> calibration / event logic -> callbacks
                                        |
                                        +-> clip scheduler (never awaited)

Control (pause, resume, stop) goes through a single Condition, so a paused
loop blocks without polling and a stop wakes it immediately. Callbacks are
delivered on a CallbackDispatcher thread.
"""

import logging
import threading
import time
from collections import deque
from concurrent.futures import Future
from enum import Enum
from pathlib import Path

from .callbacks import AnalysisCallbacks, CallbackDispatcher
from .clips import ClipScheduler
from .config.schemas import AnalysisConfig
from .errors import (
    AnalysisStateError,
    InvalidTimeRangeError,
    ReaderCreationError,
    VideoAnalysisError,
    VideoLoadError,
)
from .logic import AnalysisLogic
from .models import (
    AnalysisEvent,
    AnalysisResult,
    Calibrated,
    Calibrating,
    ClipJob,
    Detector,
    EventDetected,
    FrameSource,
    VideoInfo,
)
from .utils.constants import (
    CALIBRATION_LOG_INTERVAL,
    CALLBACK_FLUSH_TIMEOUT,
    FRAME_STATS_INTERVAL,
    PROGRESS_CAP,
    PROGRESS_INTERVAL_FRAMES,
)

logger = logging.getLogger(__name__)


class RunState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


class AnalysisOrchestrator:
    """Drives detection and event analysis over a video, one run at a time."""

    def __init__(
        self,
        detector: Detector,
        config: AnalysisConfig,
        clip_scheduler: ClipScheduler | None = None,
    ):
        """
        Args:
            detector: Inference backend
            config: Analysis settings for every run
            clip_scheduler: Exports clips around events; None disables clips
        """
        self.detector = detector
        self.config = config
        self.clip_scheduler = clip_scheduler

        self._cond = threading.Condition()
        self._state = RunState.IDLE
        self._thread: threading.Thread | None = None
        self._generation = 0
        self._dispatcher = CallbackDispatcher()
        self.recent_logs: deque[str] = deque(maxlen=config.max_log_count)

    # ------------------------------------------------------------------
    # Control
    # ------------------------------------------------------------------

    @property
    def state(self) -> RunState:
        with self._cond:
            return self._state

    @property
    def is_running(self) -> bool:
        return self.state in (RunState.RUNNING, RunState.PAUSED)

    @property
    def is_paused(self) -> bool:
        return self.state is RunState.PAUSED

    def start(
        self,
        source: FrameSource | str | Path,
        callbacks: AnalysisCallbacks | None = None,
    ) -> None:
        """
        Start analysing `source` in the background.

        A loop still finishing its current frame after stop() is joined
        first, so at most one frame loop exists at a time.

        Args:
            source: A FrameSource, or a video path opened with OpenCV
            callbacks: Observer hooks for this run

        Raises:
            AnalysisStateError: If a run is already active
        """
        if isinstance(source, (str, Path)):
            from .video import OpenCvFrameSource

            source = OpenCvFrameSource(source)

        callbacks = callbacks or AnalysisCallbacks()

        with self._cond:
            self._check_can_start()
            previous = self._thread
        if previous is not None and previous is not threading.current_thread():
            previous.join()

        with self._cond:
            self._check_can_start()
            if self._thread is not previous and self._thread.is_alive():
                raise AnalysisStateError("Another run was started concurrently")
            self._generation += 1
            self._state = RunState.RUNNING
            self._thread = threading.Thread(
                target=self._run,
                args=(source, callbacks, self._generation),
                name="AnalysisLoop",
                daemon=True,
            )
            self._thread.start()

    def _check_can_start(self) -> None:
        if self._state in (RunState.RUNNING, RunState.PAUSED):
            raise AnalysisStateError("Analysis is already running")

    def pause(self) -> None:
        with self._cond:
            if self._state is not RunState.RUNNING:
                return
            self._state = RunState.PAUSED
        logger.info("Analysis paused")

    def resume(self) -> None:
        with self._cond:
            if self._state is not RunState.PAUSED:
                return
            self._state = RunState.RUNNING
            self._cond.notify_all()
        logger.info("Analysis resumed")

    def stop(self) -> None:
        """Ask the loop to finish after the current frame."""
        with self._cond:
            if self._state not in (RunState.RUNNING, RunState.PAUSED):
                return
            self._state = RunState.STOPPED
            self._cond.notify_all()
        logger.info("Analysis stop requested")

    def wait(self, timeout: float | None = None) -> bool:
        """
        Wait for the current run to end and its callbacks to be delivered.

        Returns:
            False if the run is still going after `timeout` seconds
        """
        thread = self._thread
        if thread is not None:
            thread.join(timeout)
            if thread.is_alive():
                return False
        return self._dispatcher.flush(timeout)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the run, then release the clip scheduler and callback thread."""
        self.stop()
        if wait:
            self.wait()
        if self.clip_scheduler is not None:
            self.clip_scheduler.shutdown(wait=wait)
        self._dispatcher.stop(CALLBACK_FLUSH_TIMEOUT if wait else 0)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.shutdown()

    # ------------------------------------------------------------------
    # Frame loop
    # ------------------------------------------------------------------

    def _run(
        self, source: FrameSource, callbacks: AnalysisCallbacks, generation: int
    ) -> None:
        try:
            self._analyse(source, callbacks, generation)
        except VideoAnalysisError as e:
            self._report_error(e, callbacks)
        except Exception as e:
            logger.error(f"Fatal error in analysis: {e}", exc_info=True)
            self._report_error(ReaderCreationError(str(e)), callbacks)
        finally:
            try:
                source.close()
            except Exception as e:
                logger.warning(f"Error closing video source: {e}")
            with self._cond:
                if self._generation == generation and self._state is not RunState.STOPPED:
                    self._state = RunState.IDLE
                self._cond.notify_all()

    def _analyse(
        self, source: FrameSource, callbacks: AnalysisCallbacks, generation: int
    ) -> None:
        try:
            info = source.open()
        except VideoAnalysisError:
            raise
        except Exception as e:
            raise VideoLoadError(str(e)) from e

        start_time, end_time = self._resolve_range(info)
        self._log_startup(info, start_time, end_time, callbacks)

        def engine_log(message: str) -> None:
            self._record(message, callbacks)

        logic = AnalysisLogic(
            self.config, log_callback=engine_log if self.config.debug_mode else None
        )

        span = end_time - start_time
        frame_count = 0
        processed = 0
        last_progress = 0.0
        events: list[EventDetected] = []
        run_started = time.monotonic()

        frames = iter(source.read_frames(start_time, end_time))
        while self._wait_if_paused(generation):
            try:
                frame = next(frames)
            except StopIteration:
                break

            frame_count += 1
            if logic.is_calibrated and frame_count % self.config.frame_skip != 0:
                continue
            processed += 1

            try:
                detections = self.detector.detect(frame.image, info.orientation)
            except Exception as e:
                self._log(f"Detection failed at {frame.timestamp:.2f}s: {e}", callbacks, logging.WARNING)
                detections = []

            if processed % FRAME_STATS_INTERVAL == 0:
                logger.debug(f"Frame {frame.index} @ {frame.timestamp:.2f}s: {len(detections)} detections")

            event = logic.process_frame(detections, frame.timestamp)
            if event is not None:
                self._dispatcher.post(callbacks.on_event, event)
                self._handle_event(event, info, events, callbacks)

            if processed % PROGRESS_INTERVAL_FRAMES == 0:
                progress = min((frame.timestamp - start_time) / span * PROGRESS_CAP, PROGRESS_CAP)
                if progress > last_progress:
                    last_progress = progress
                    self._dispatcher.post(callbacks.on_progress, progress)

        elapsed = time.monotonic() - run_started
        result = AnalysisResult(total_frames=frame_count, duration=elapsed, events=events)

        if self._stopped(generation):
            self._log("Analysis stopped", callbacks)
        self._log_completion(result, logic, callbacks)

        self._dispatcher.post(callbacks.on_progress, 1.0)
        self._dispatcher.post(callbacks.on_completion, result)

    def _stopped(self, generation: int) -> bool:
        with self._cond:
            return self._generation != generation or self._state is RunState.STOPPED

    def _wait_if_paused(self, generation: int) -> bool:
        """Block while paused; False once this run has been stopped or replaced."""
        with self._cond:
            while self._generation == generation and self._state is RunState.PAUSED:
                self._cond.wait()
            return self._generation == generation and self._state is RunState.RUNNING

    def _resolve_range(self, info: VideoInfo) -> tuple[float, float]:
        start = self.config.start_time or 0.0
        end = self.config.end_time if self.config.end_time is not None else info.duration
        if not (0 <= start < end <= info.duration):
            raise InvalidTimeRangeError(
                f"Invalid time range {start:.2f}s - {end:.2f}s for a {info.duration:.2f}s video"
            )
        return start, end

    def _handle_event(
        self,
        event: AnalysisEvent,
        info: VideoInfo,
        events: list[EventDetected],
        callbacks: AnalysisCallbacks,
    ) -> None:
        if isinstance(event, Calibrating):
            if event.current % CALIBRATION_LOG_INTERVAL == 0:
                self._log(f"Calibrating: {event.current}/{event.target}", callbacks)
        elif isinstance(event, Calibrated):
            self._log(f"Calibrated: target at {event.box}", callbacks)
        elif isinstance(event, EventDetected):
            events.append(event)
            self._log(f"Event {len(events)} at {event.timestamp:.2f}s", callbacks)
            self._submit_clip(
                ClipJob(
                    source=info.path,
                    timestamp=event.timestamp,
                    index=len(events),
                    source_duration=info.duration,
                ),
                callbacks,
            )

    def _submit_clip(self, job: ClipJob, callbacks: AnalysisCallbacks) -> None:
        if self.clip_scheduler is None:
            return

        def on_done(future: Future) -> None:
            try:
                clip = future.result()
            except Exception as e:
                self._log(f"Clip {job.index} not created: {e}", callbacks, logging.WARNING)
                return
            self._log(f"Clip {clip.index} created: {clip.path.name}", callbacks)
            self._dispatcher.post(callbacks.on_clip_created, clip)

        self.clip_scheduler.submit(job).add_done_callback(on_done)

    # ------------------------------------------------------------------
    # Logging
    # ------------------------------------------------------------------

    def _log(self, message: str, callbacks: AnalysisCallbacks, level: int = logging.INFO) -> None:
        logger.log(level, message)
        self._record(message, callbacks)

    def _record(self, message: str, callbacks: AnalysisCallbacks) -> None:
        self.recent_logs.append(message)
        self._dispatcher.post(callbacks.on_log, message)

    def _report_error(self, error: VideoAnalysisError, callbacks: AnalysisCallbacks) -> None:
        self._log(f"Analysis failed: {error}", callbacks, logging.ERROR)
        self._dispatcher.post(callbacks.on_error, error)

    def _log_startup(
        self, info: VideoInfo, start: float, end: float, callbacks: AnalysisCallbacks
    ) -> None:
        config = self.config
        inference = config.inference
        lines = [
            f"Analysing {info.path.name}: {start:.1f}s - {end:.1f}s of {info.duration:.1f}s",
            f"  Inference: confidence >= {inference.confidence_threshold}, "
            f"NMS {inference.nms_threshold}, max {inference.max_detections}",
            f"  Calibration: {config.calibration_frames} frames, "
            f"zone height {config.target_zone_height}",
            f"  Events: window {config.event_window}s, cooldown {config.event_cooldown}s, "
            f"mode {config.interaction_mode}, distance < {config.interaction_distance_threshold}",
            f"  Frame skip: {config.frame_skip} (after calibration)",
        ]
        if self.clip_scheduler is not None:
            lines.append(f"  Clips: {self.clip_scheduler.output_directory}")
        for line in lines:
            self._log(line, callbacks)

    def _log_completion(
        self, result: AnalysisResult, logic: AnalysisLogic, callbacks: AnalysisCallbacks
    ) -> None:
        self._log("Analysis complete", callbacks)
        self._log(f"  Frames: {result.total_frames}", callbacks)
        self._log(f"  Elapsed: {result.duration:.1f}s", callbacks)
        self._log(f"  Avg FPS: {result.average_fps:.1f}", callbacks)
        self._log(f"  Events: {len(result.events)}", callbacks)
        if not logic.is_calibrated:
            self._log("  Target was never calibrated", callbacks, logging.WARNING)
