"""
Frame preparation shared by the detector backends.
"""

import cv2
import numpy as np

from ..models import Orientation

_ROTATIONS = {
    Orientation.RIGHT: cv2.ROTATE_90_CLOCKWISE,
    Orientation.DOWN: cv2.ROTATE_180,
    Orientation.LEFT: cv2.ROTATE_90_COUNTERCLOCKWISE,
}


def rotate_upright(frame: np.ndarray, orientation: Orientation) -> np.ndarray:
    """Rotate a frame so that it displays upright."""
    rotation = _ROTATIONS.get(orientation)
    if rotation is None:
        return frame
    return cv2.rotate(frame, rotation)
