"""
YOLO Detector - local inference with ultralytics.

Runs the model on GPU when available, rotates frames upright, converts
normalized xyxy boxes to BoundingBox and applies the shared
post-processing filter.
"""

import logging
from pathlib import Path

import numpy as np
import torch
from ultralytics import YOLO

from ..config.schemas import InferenceConfig
from ..errors import ModelLoadError, ModelNotFoundError
from ..models import BoundingBox, DetectedObject, Orientation
from .frames import rotate_upright
from .nms import filter_detections

logger = logging.getLogger(__name__)


class YoloDetector:
    """Detector backed by an ultralytics YOLO model."""

    def __init__(
        self,
        model_file: str,
        inference_config: InferenceConfig,
        device: str | None = None,
    ):
        """
        Load the model.

        Args:
            model_file: Path to YOLO weights
            inference_config: Post-processing settings
            device: Torch device; CUDA when available if unset

        Raises:
            ModelNotFoundError: If the weights file does not exist
            ModelLoadError: If ultralytics cannot load the weights
        """
        self.config = inference_config
        self.device = device or ("cuda" if torch.cuda.is_available() else "cpu")
        self.model = self._initialize_model(model_file)

    def _initialize_model(self, model_file: str) -> YOLO:
        """Initialize YOLO model on the selected device."""
        if not Path(model_file).exists():
            raise ModelNotFoundError(model_file)

        try:
            model = YOLO(model_file)
            model.to(self.device)
        except Exception as e:
            raise ModelLoadError(f"Failed to load {model_file}: {e}") from e

        logger.info(f"Model initialized: {model_file}")
        logger.info(f"Device: {self.device}")
        logger.info(f"Classes: {', '.join(str(n) for n in model.names.values())}")

        if self.device == "cuda":
            logger.info(f"GPU: {torch.cuda.get_device_name(0)}")
        else:
            logger.warning("Running on CPU - performance will be slow")

        return model

    def detect(self, frame: np.ndarray, orientation: Orientation) -> list[DetectedObject]:
        """Run inference on one frame and return filtered detections."""
        upright = rotate_upright(frame, orientation)
        results = self.model.predict(
            source=upright,
            conf=self.config.confidence_threshold,
            device=self.device,
            verbose=False,
        )
        return filter_detections(self._to_detections(results), self.config)

    def _to_detections(self, results) -> list[DetectedObject]:
        """Convert ultralytics results to DetectedObject list (normalized boxes)."""
        detections: list[DetectedObject] = []
        if not results:
            return detections

        result = results[0]
        boxes = result.boxes
        if boxes is None or boxes.cls is None or len(boxes.cls) == 0:
            return detections

        classes = boxes.cls.int().cpu().tolist()
        xyxyn = boxes.xyxyn.cpu().numpy()
        confs = boxes.conf.cpu().tolist()

        for obj_class, box, conf in zip(classes, xyxyn, confs):
            x1, y1, x2, y2 = (float(v) for v in box)
            detections.append(
                DetectedObject(
                    label=str(result.names.get(obj_class, obj_class)),
                    confidence=float(conf),
                    bounding_box=BoundingBox(x=x1, y=y1, width=x2 - x1, height=y2 - y1),
                )
            )

        return detections
