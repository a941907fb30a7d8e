"""
Inference backends and detection post-processing.

Backends are imported lazily so that the post-processing filter can be
used without ultralytics or torch installed.
"""

from ..config.schemas import DetectorConfig, InferenceConfig
from ..models import Detector
from .nms import filter_detections, non_max_suppression


def build_detector(
    detector_config: DetectorConfig, inference_config: InferenceConfig
) -> Detector:
    """Create the detector backend named by the config."""
    if detector_config.type == "cloud":
        from .cloud import CloudDetector

        return CloudDetector(
            endpoint=detector_config.endpoint,
            api_key=detector_config.api_key,
            inference_config=inference_config,
            timeout=detector_config.timeout_seconds,
        )

    from .yolo import YoloDetector

    return YoloDetector(
        model_file=detector_config.model_file,
        inference_config=inference_config,
        device=detector_config.device,
    )


__all__ = ["build_detector", "filter_detections", "non_max_suppression"]
