"""
Analysis callbacks and their delivery thread.

All callbacks of a run are delivered in order on one dedicated thread, so
callers never receive them on the frame loop or on a clip export worker.
A callback that raises is logged and does not affect the run.
"""

import logging
import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from .models import AnalysisEvent, AnalysisResult, ClipResult

logger = logging.getLogger(__name__)


@dataclass
class AnalysisCallbacks:
    """Optional observer hooks for one analysis run."""

    on_log: Callable[[str], None] | None = None
    on_progress: Callable[[float], None] | None = None
    on_event: Callable[[AnalysisEvent], None] | None = None
    on_clip_created: Callable[[ClipResult], None] | None = None
    on_completion: Callable[[AnalysisResult], None] | None = None
    on_error: Callable[[Exception], None] | None = None


class CallbackDispatcher:
    """Single consumer thread draining a queue of callback invocations."""

    def __init__(self, name: str = "CallbackDispatcher"):
        self._queue: queue.Queue = queue.Queue()
        self._stopped = False
        self._lock = threading.Lock()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._thread.start()

    def post(self, fn: Callable[..., Any] | None, *args: Any) -> None:
        """Queue `fn(*args)`; a None callback is ignored."""
        if fn is None:
            return
        with self._lock:
            if self._stopped:
                logger.debug("Callback posted after dispatcher stopped, dropping")
                return
            self._queue.put((fn, args))

    def flush(self, timeout: float | None = None) -> bool:
        """Block until everything posted so far has been delivered."""
        if threading.current_thread() is self._thread:
            return True
        done = threading.Event()
        with self._lock:
            if self._stopped:
                return not self._thread.is_alive()
            self._queue.put((done.set, ()))
        return done.wait(timeout)

    def stop(self, timeout: float | None = None) -> None:
        """Deliver pending callbacks, then end the thread."""
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            self._queue.put(None)
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is None:
                break
            fn, args = item
            try:
                fn(*args)
            except Exception as e:
                logger.error(f"Callback {getattr(fn, '__name__', fn)} raised: {e}", exc_info=True)
