"""
Error types for video analysis and clip export.

Run-level errors (model, video, time range) end a run through the
orchestrator's error callback. Clip export errors are delivered per job
through the job's future and never affect the frame loop.
"""


class VideoAnalysisError(Exception):
    """Base class for all analysis errors."""


class ModelNotFoundError(VideoAnalysisError):
    """Raised when a detector model file does not exist."""

    def __init__(self, name: str):
        super().__init__(f"Model not found: {name}")
        self.name = name


class ModelLoadError(VideoAnalysisError):
    """Raised when a detector model exists but cannot be loaded."""


class InferenceError(VideoAnalysisError):
    """Raised by a detector when a single inference fails."""


class VideoLoadError(VideoAnalysisError):
    """Raised when a video cannot be opened."""


class VideoTrackNotFoundError(VideoAnalysisError):
    """Raised when a video has no readable video stream."""

    def __init__(self, path: str = ""):
        super().__init__(f"Video track not found: {path}" if path else "Video track not found")


class ReaderCreationError(VideoAnalysisError):
    """Raised when frames cannot be read from an opened video."""


class InvalidTimeRangeError(VideoAnalysisError):
    """Raised when an analysis or clip time range is empty or out of bounds."""


class AnalysisStateError(VideoAnalysisError):
    """Raised when a control operation does not fit the current run state."""


class ClipExportError(VideoAnalysisError):
    """Base class for per-job clip export failures."""


class InvalidClipRangeError(ClipExportError, InvalidTimeRangeError):
    """Clip range around the event timestamp has no duration."""

    def __init__(self, start: float, end: float):
        super().__init__(f"Invalid clip range: {start:.2f}s - {end:.2f}s")
        self.start = start
        self.end = end


class ExportFailedError(ClipExportError):
    """The trim primitive reported a failure."""

    def __init__(self, reason: str):
        super().__init__(f"Export failed: {reason}")
        self.reason = reason


class ClipCancelledError(ClipExportError):
    """The export was cancelled, explicitly or by timeout."""

    def __init__(self, message: str = "Export cancelled"):
        super().__init__(message)


class ClipTimeoutError(ClipCancelledError):
    """The export exceeded its timeout and was cancelled."""

    def __init__(self, timeout: float):
        super().__init__(f"Export timed out after {timeout:g}s")
        self.timeout = timeout


class UnknownExportError(ClipExportError):
    """The trim primitive ended in an unexpected state."""

    def __init__(self, reason: str):
        super().__init__(f"Unknown export error: {reason}")
        self.reason = reason
