"""
Frame analysis logic: target calibration and event detection.
"""

from .analysis_logic import AnalysisLogic
from .calibration import CalibrationEngine
from .event_engine import EventDetectionEngine

__all__ = ["AnalysisLogic", "CalibrationEngine", "EventDetectionEngine"]
