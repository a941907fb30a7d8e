"""
Video frame sources.
"""

from .opencv_source import OpenCvFrameSource

__all__ = ["OpenCvFrameSource"]
