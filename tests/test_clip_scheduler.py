"""
Tests for the clip export scheduler
"""

import subprocess
import sys
import tempfile
import threading
import time
import unittest
from datetime import datetime
from pathlib import Path

from highlight_detection.clips import ClipScheduler, TrimStatus, resolve_output_directory
from highlight_detection.clips.trimmer import FfmpegOperation
from highlight_detection.config import ClipConfig
from highlight_detection.errors import (
    ClipCancelledError,
    ClipExportError,
    ClipTimeoutError,
    ExportFailedError,
    InvalidClipRangeError,
    InvalidTimeRangeError,
    UnknownExportError,
)
from highlight_detection.models import ClipJob

WAIT = 5.0


def wait_for(predicate, timeout=WAIT):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class FakeOperation:
    """Trim operation finished by the test (or immediately when not blocking)."""

    def __init__(self, trimmer, output_path, status, error):
        self._trimmer = trimmer
        self._output_path = output_path
        self._status = status
        self.error = error
        self.cancel_calls = 0
        self._done = threading.Event()

    def finish(self):
        if self._done.is_set():
            return
        if self._status is TrimStatus.COMPLETED and self._trimmer.write_output:
            self._output_path.write_bytes(b"\x00" * 1024)
        self._done.set()

    def wait(self, timeout=None):
        if not self._done.wait(timeout):
            return None
        self._trimmer.finished(self)
        return self._status

    def cancel(self):
        self.cancel_calls += 1
        self._status = TrimStatus.CANCELLED
        self._done.set()


class FakeTrimmer:
    """Instrumented trimmer recording calls and peak concurrency."""

    def __init__(self, block=False, status=TrimStatus.COMPLETED, error=None, write_output=True):
        self.block = block
        self.status = status
        self.error = error
        self.write_output = write_output
        self.start_error = None

        self.calls = []
        self.operations = []
        self.existed_at_start = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._finished = set()
        self._lock = threading.Lock()

    def start_trim(self, source, start, duration, output_path):
        if self.start_error is not None:
            raise self.start_error
        operation = FakeOperation(self, output_path, self.status, self.error)
        with self._lock:
            self.calls.append((source, start, duration, output_path))
            self.existed_at_start.append(output_path.exists())
            self.operations.append(operation)
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            block = self.block
        if not block:
            operation.finish()
        return operation

    def finished(self, operation):
        with self._lock:
            if id(operation) not in self._finished:
                self._finished.add(id(operation))
                self.in_flight -= 1

    def release(self):
        with self._lock:
            self.block = False
            operations = list(self.operations)
        for operation in operations:
            operation.finish()


class SubprocessTrimmer:
    """Runs a stand-in process that writes partial output and never exits."""

    def start_trim(self, source, start, duration, output_path):
        code = f"import time; open({str(output_path)!r}, 'wb').write(b'partial'); time.sleep(60)"
        process = subprocess.Popen(
            [sys.executable, "-c", code],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
        )
        wait_for(output_path.exists)
        return FfmpegOperation(process, output_path)


class SchedulerTestCase(unittest.TestCase):
    """Creates a scheduler writing into a temporary directory."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output_dir = Path(self._tmp.name)
        self.source = self.output_dir / "game.mp4"
        self.schedulers = []

    def tearDown(self):
        for scheduler in self.schedulers:
            scheduler.shutdown(wait=True, cancel_pending=True)
        self._tmp.cleanup()

    def make_scheduler(self, trimmer, duration_probe=None, **config):
        config.setdefault("output_directory", self.output_dir)
        scheduler = ClipScheduler(ClipConfig(**config), trimmer, duration_probe=duration_probe)
        self.schedulers.append(scheduler)
        return scheduler

    def job(self, timestamp, index=1, source_duration=60.0):
        return ClipJob(
            source=self.source,
            timestamp=timestamp,
            index=index,
            source_duration=source_duration,
        )


class TestClipRange(SchedulerTestCase):
    """Test clip range computation and validation."""

    def test_range_around_event(self):
        """Test 4s lead and 2s trail around 10.5s gives 6.5s - 12.5s."""
        trimmer = FakeTrimmer()
        scheduler = self.make_scheduler(trimmer, lead_time=4.0, trail_time=2.0)

        clip = scheduler.submit(self.job(10.5)).result(WAIT)

        _, start, duration, _ = trimmer.calls[0]
        self.assertAlmostEqual(start, 6.5)
        self.assertAlmostEqual(duration, 6.0)
        self.assertAlmostEqual(clip.duration, 6.0)
        self.assertEqual(clip.timestamp, 10.5)

    def test_range_clamped_to_source(self):
        """Test the range is clamped to [0, source duration]."""
        scheduler = self.make_scheduler(FakeTrimmer())

        self.assertEqual(scheduler.compute_range(1.0, 60.0), (0.0, 3.0))
        self.assertEqual(scheduler.compute_range(59.0, 60.0), (55.0, 60.0))
        self.assertEqual(scheduler.compute_range(30.0, None), (26.0, 32.0))

    def test_empty_range_fails_without_trimming(self):
        """Test an event past the end of the source fails immediately."""
        trimmer = FakeTrimmer()
        scheduler = self.make_scheduler(trimmer)

        future = scheduler.submit(self.job(70.0, source_duration=60.0))

        self.assertTrue(future.done())
        error = future.exception()
        self.assertIsInstance(error, InvalidClipRangeError)
        self.assertIsInstance(error, InvalidTimeRangeError)
        self.assertIsInstance(error, ClipExportError)
        self.assertEqual(trimmer.calls, [])
        self.assertEqual(scheduler.active_count, 0)

    def test_duration_probe_used_when_unknown(self):
        """Test the probe supplies the source duration when the job has none."""
        trimmer = FakeTrimmer()
        probed = []

        def probe(path):
            probed.append(path)
            return 12.0

        scheduler = self.make_scheduler(trimmer, duration_probe=probe)
        clip = scheduler.submit(self.job(11.0, source_duration=None)).result(WAIT)

        self.assertEqual(probed, [self.source])
        self.assertAlmostEqual(clip.duration, 5.0)

    def test_failing_probe_treated_as_unbounded(self):
        """Test a probe error falls back to an unclamped end."""
        trimmer = FakeTrimmer()

        def probe(path):
            raise OSError("no ffprobe")

        scheduler = self.make_scheduler(trimmer, duration_probe=probe)
        clip = scheduler.submit(self.job(11.0, source_duration=None)).result(WAIT)

        self.assertAlmostEqual(clip.duration, 6.0)

    def test_probe_runs_on_worker(self):
        """Test submit returns before a slow duration lookup finishes."""
        trimmer = FakeTrimmer()
        release = threading.Event()
        callers = []

        def probe(path):
            callers.append(threading.current_thread().name)
            release.wait(WAIT)
            return 60.0

        scheduler = self.make_scheduler(trimmer, duration_probe=probe)
        future = scheduler.submit(self.job(11.0, source_duration=None))

        self.assertFalse(future.done())
        release.set()
        self.assertAlmostEqual(future.result(WAIT).duration, 6.0)
        self.assertTrue(callers[0].startswith("ClipExport"))

    def test_probed_empty_range_fails_without_trimming(self):
        """Test a probed duration before the event fails the job on the worker."""
        trimmer = FakeTrimmer()
        scheduler = self.make_scheduler(trimmer, duration_probe=lambda path: 5.0)

        error = scheduler.submit(self.job(11.0, source_duration=None)).exception(WAIT)

        self.assertIsInstance(error, InvalidClipRangeError)
        self.assertEqual(trimmer.calls, [])
        self.assertEqual(scheduler.active_count, 0)


class TestClipOutput(SchedulerTestCase):
    """Test output naming and results."""

    def test_output_name(self):
        """Test clips are named clip_<index>_<whole seconds>s.<ext>."""
        scheduler = self.make_scheduler(FakeTrimmer(), extension=".mov")

        clip = scheduler.submit(self.job(10.9, index=3)).result(WAIT)

        self.assertEqual(clip.path, self.output_dir / "clip_3_10s.mov")
        self.assertEqual(clip.index, 3)
        self.assertEqual(clip.file_size, 1024)

    def test_existing_output_deleted_first(self):
        """Test a stale file at the output path is removed before trimming."""
        trimmer = FakeTrimmer()
        scheduler = self.make_scheduler(trimmer)
        stale = self.output_dir / "clip_1_10s.mp4"
        stale.write_bytes(b"old")

        clip = scheduler.submit(self.job(10.0)).result(WAIT)

        self.assertEqual(trimmer.existed_at_start, [False])
        self.assertEqual(clip.file_size, 1024)

    def test_output_directory_created(self):
        """Test the output directory is created at construction."""
        target = self.output_dir / "nested" / "session"
        scheduler = self.make_scheduler(FakeTrimmer(), output_directory=target)

        self.assertTrue(target.is_dir())
        self.assertEqual(scheduler.output_directory, target)


class TestOutputDirectory(unittest.TestCase):
    """Test output directory resolution."""

    def test_configured_directory_wins(self):
        """Test an explicit output directory is used as is."""
        config = ClipConfig(output_directory=Path("/data/clips"), session_name="ignored")
        self.assertEqual(resolve_output_directory(config), Path("/data/clips"))

    def test_session_name(self):
        """Test a named session goes under ./clips."""
        config = ClipConfig(session_name="final")
        self.assertEqual(resolve_output_directory(config), Path.cwd() / "clips" / "final")

    def test_timestamped_session(self):
        """Test an unnamed session gets a timestamped directory."""
        now = datetime(2026, 1, 2, 13, 4, 5)
        self.assertEqual(
            resolve_output_directory(ClipConfig(), now=now),
            Path.cwd() / "clips" / "Session_20260102_130405",
        )


class TestConcurrency(SchedulerTestCase):
    """Test bounded concurrency."""

    def test_never_exceeds_max_concurrent(self):
        """Test 5 jobs with 2 slots run at most 2 trims at once."""
        trimmer = FakeTrimmer(block=True)
        scheduler = self.make_scheduler(trimmer, max_concurrent_exports=2)

        futures = [scheduler.submit(self.job(10.0 + i * 5, index=i + 1)) for i in range(5)]

        self.assertTrue(wait_for(lambda: len(trimmer.calls) == 2))
        time.sleep(0.1)
        self.assertEqual(len(trimmer.calls), 2)
        self.assertEqual(scheduler.active_count, 2)

        trimmer.release()
        results = [f.result(WAIT) for f in futures]

        self.assertEqual(len(trimmer.calls), 5)
        self.assertEqual(trimmer.max_in_flight, 2)
        self.assertEqual(sorted(r.index for r in results), [1, 2, 3, 4, 5])
        self.assertTrue(wait_for(lambda: scheduler.active_count == 0))

    def test_submit_does_not_block(self):
        """Test submit returns while trims are still running."""
        trimmer = FakeTrimmer(block=True)
        scheduler = self.make_scheduler(trimmer, max_concurrent_exports=1)

        futures = [scheduler.submit(self.job(10.0, index=i)) for i in range(3)]

        self.assertFalse(any(f.done() for f in futures))
        trimmer.release()
        for f in futures:
            f.result(WAIT)


class TestCancellation(SchedulerTestCase):
    """Test timeouts and cancel_all."""

    def test_timeout_cancels_trim(self):
        """Test an export exceeding the timeout is cancelled."""
        trimmer = FakeTrimmer(block=True)
        scheduler = self.make_scheduler(trimmer, export_timeout=0.1)

        error = scheduler.submit(self.job(10.0)).exception(WAIT)

        self.assertIsInstance(error, ClipTimeoutError)
        self.assertIsInstance(error, ClipCancelledError)
        self.assertEqual(trimmer.operations[0].cancel_calls, 1)

    def test_timeout_removes_partial_output(self):
        """Test a timed-out trim leaves no partial clip behind."""
        scheduler = self.make_scheduler(SubprocessTrimmer(), export_timeout=0.5)

        error = scheduler.submit(self.job(10.0)).exception(WAIT + 10)

        self.assertIsInstance(error, ClipTimeoutError)
        self.assertFalse((self.output_dir / "clip_1_10s.mp4").exists())
        self.assertEqual(list(self.output_dir.iterdir()), [])

    def test_cancel_all(self):
        """Test in-flight and queued jobs all resolve as cancelled."""
        trimmer = FakeTrimmer(block=True)
        scheduler = self.make_scheduler(trimmer, max_concurrent_exports=1)

        futures = [scheduler.submit(self.job(10.0, index=i)) for i in range(3)]
        self.assertTrue(wait_for(lambda: len(trimmer.calls) == 1))

        cancelled = scheduler.cancel_all()

        self.assertEqual(cancelled, 3)
        for future in futures:
            self.assertIsInstance(future.exception(WAIT), ClipCancelledError)
        # Queued jobs never reach the trimmer
        self.assertEqual(len(trimmer.calls), 1)
        self.assertEqual(trimmer.operations[0].cancel_calls, 1)

    def test_cancel_all_with_nothing_pending(self):
        """Test cancel_all on an idle scheduler is a no-op."""
        scheduler = self.make_scheduler(FakeTrimmer())
        self.assertEqual(scheduler.cancel_all(), 0)

    def test_submit_after_shutdown(self):
        """Test jobs submitted after shutdown fail as cancelled."""
        trimmer = FakeTrimmer()
        scheduler = self.make_scheduler(trimmer)
        scheduler.shutdown()

        future = scheduler.submit(self.job(10.0))

        self.assertIsInstance(future.exception(WAIT), ClipCancelledError)
        self.assertEqual(trimmer.calls, [])


class TestFailureMapping(SchedulerTestCase):
    """Test trim outcomes map to the right errors."""

    def test_failed(self):
        """Test FAILED carries the trimmer's reason."""
        trimmer = FakeTrimmer(status=TrimStatus.FAILED, error="codec not supported")
        scheduler = self.make_scheduler(trimmer)

        error = scheduler.submit(self.job(10.0)).exception(WAIT)

        self.assertIsInstance(error, ExportFailedError)
        self.assertEqual(error.reason, "codec not supported")

    def test_cancelled(self):
        """Test CANCELLED maps to ClipCancelledError."""
        scheduler = self.make_scheduler(FakeTrimmer(status=TrimStatus.CANCELLED))
        error = scheduler.submit(self.job(10.0)).exception(WAIT)
        self.assertIsInstance(error, ClipCancelledError)
        self.assertNotIsInstance(error, ClipTimeoutError)

    def test_unknown(self):
        """Test UNKNOWN maps to UnknownExportError."""
        scheduler = self.make_scheduler(FakeTrimmer(status=TrimStatus.UNKNOWN))
        error = scheduler.submit(self.job(10.0)).exception(WAIT)
        self.assertIsInstance(error, UnknownExportError)

    def test_start_failure(self):
        """Test an exception from start_trim becomes ExportFailedError."""
        trimmer = FakeTrimmer()
        trimmer.start_error = OSError("ffmpeg missing")
        scheduler = self.make_scheduler(trimmer)

        error = scheduler.submit(self.job(10.0)).exception(WAIT)

        self.assertIsInstance(error, ExportFailedError)
        self.assertIn("ffmpeg missing", str(error))

    def test_completed_without_output(self):
        """Test a completed trim with no output file is a failure."""
        scheduler = self.make_scheduler(FakeTrimmer(write_output=False))
        error = scheduler.submit(self.job(10.0)).exception(WAIT)
        self.assertIsInstance(error, ExportFailedError)

    def test_failure_does_not_affect_other_jobs(self):
        """Test one failing job leaves later jobs unaffected."""
        trimmer = FakeTrimmer(status=TrimStatus.FAILED, error="bad")
        scheduler = self.make_scheduler(trimmer, max_concurrent_exports=1)

        first = scheduler.submit(self.job(10.0, index=1))
        first.exception(WAIT)
        trimmer.status = TrimStatus.COMPLETED
        second = scheduler.submit(self.job(20.0, index=2))

        self.assertEqual(second.result(WAIT).index, 2)


if __name__ == "__main__":
    unittest.main()
