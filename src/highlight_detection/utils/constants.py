"""
Constants used throughout the highlight detection system
"""

# Event detection state
INITIAL_EVENT_TIME = -10.0  # Seconds; far enough back that the first frame is never in cooldown

# Progress reporting
PROGRESS_INTERVAL_FRAMES = 30  # Report progress every N processed frames
PROGRESS_CAP = 0.95  # Progress never exceeds this until the run is finished

# Logging
CALIBRATION_LOG_INTERVAL = 10  # Log calibration progress every N samples
DEBUG_SAMPLE_INTERVAL = 5  # Engine diagnostics during calibration every N samples
FRAME_STATS_INTERVAL = 100  # Debug detection stats every N frames

# Clip export
DEFAULT_CLIP_DIR = "clips"
CLIP_SESSION_FORMAT = "Session_%Y%m%d_%H%M%S"
TRIM_KILL_TIMEOUT = 5.0  # Seconds to wait after terminate before killing ffmpeg

# Shutdown
CALLBACK_FLUSH_TIMEOUT = 5.0

# Environment variables
ENV_MODEL_FILE = "HIGHLIGHT_MODEL_FILE"
ENV_CLIP_DIR = "HIGHLIGHT_CLIP_DIR"
ENV_API_KEY = "HIGHLIGHT_API_KEY"
