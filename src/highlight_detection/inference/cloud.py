"""
Cloud Detector - Sends frames to a remote inference endpoint.

Frames are downscaled, JPEG encoded and POSTed as multipart form data.
The endpoint answers with:

    {"detections": [{"label": "ball", "confidence": 0.9,
                     "box": {"x": 0.1, "y": 0.2, "width": 0.05, "height": 0.05}}]}

Boxes are normalized with a top-left origin. The response is run through
the same post-processing filter as local inference.
"""

import logging
from typing import Any

import cv2
import numpy as np
import requests

from ..config.schemas import InferenceConfig
from ..errors import InferenceError
from ..models import BoundingBox, DetectedObject, Orientation
from .frames import rotate_upright
from .nms import filter_detections

logger = logging.getLogger(__name__)


class CloudDetector:
    """Detector that delegates inference to an HTTP endpoint."""

    def __init__(
        self,
        endpoint: str,
        api_key: str | None,
        inference_config: InferenceConfig,
        timeout: float = 30.0,
        jpeg_quality: int = 80,
        max_size: tuple[int, int] = (1280, 720),
    ):
        self._endpoint = endpoint
        self._api_key = api_key
        self._timeout = timeout
        self._jpeg_quality = jpeg_quality
        self._max_size = max_size
        self.config = inference_config
        self._session = requests.Session()

        logger.info(f"Cloud detector initialized: {endpoint}")

    def detect(self, frame: np.ndarray, orientation: Orientation) -> list[DetectedObject]:
        """Upload one frame and return filtered detections."""
        payload = self._encode(rotate_upright(frame, orientation))

        headers = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"

        try:
            response = self._session.post(
                self._endpoint,
                files={"image": ("frame.jpg", payload, "image/jpeg")},
                data={"confidence_threshold": str(self.config.confidence_threshold)},
                headers=headers,
                timeout=self._timeout,
            )
        except requests.Timeout as e:
            raise InferenceError(f"Inference request timed out after {self._timeout}s") from e
        except requests.RequestException as e:
            raise InferenceError(f"Inference request failed: {e}") from e

        if not response.ok:
            raise InferenceError(
                f"Inference endpoint returned {response.status_code}: {response.text[:100]}"
            )

        try:
            body = response.json()
        except ValueError as e:
            raise InferenceError(f"Invalid JSON response: {e}") from e

        return filter_detections(parse_detections(body), self.config)

    def _encode(self, frame: np.ndarray) -> bytes:
        """Downscale to fit max_size and JPEG encode."""
        height, width = frame.shape[:2]
        max_w, max_h = self._max_size
        scale = min(max_w / width, max_h / height, 1.0)
        if scale < 1.0:
            frame = cv2.resize(
                frame, (int(width * scale), int(height * scale)), interpolation=cv2.INTER_AREA
            )

        ok, buffer = cv2.imencode(".jpg", frame, [cv2.IMWRITE_JPEG_QUALITY, self._jpeg_quality])
        if not ok:
            raise InferenceError("Failed to encode frame as JPEG")
        return buffer.tobytes()

    def close(self) -> None:
        self._session.close()


def parse_detections(body: Any) -> list[DetectedObject]:
    """
    Parse an endpoint response body into detections.

    Raises:
        InferenceError: If the body does not have the expected shape
    """
    if not isinstance(body, dict) or not isinstance(body.get("detections"), list):
        raise InferenceError("Response has no 'detections' list")

    detections = []
    for item in body["detections"]:
        try:
            box = item["box"]
            detections.append(
                DetectedObject(
                    label=str(item["label"]),
                    confidence=float(item["confidence"]),
                    bounding_box=BoundingBox(
                        x=float(box["x"]),
                        y=float(box["y"]),
                        width=float(box["width"]),
                        height=float(box["height"]),
                    ),
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise InferenceError(f"Malformed detection in response: {e}") from e

    return detections
