"""
Detection post-processing - confidence threshold, label filter, count cap
and greedy non-max suppression.

Order of operations:
    1. drop detections below confidence_threshold
    2. keep only label_filter labels (case-insensitive), if a filter is set
    3. cap to max_detections, keeping input order
    4. stable sort by confidence, highest first
    5. greedy IoU suppression

The cap is applied before sorting, so with more than max_detections
candidates the survivors are the first N in detector order, not the N most
confident. Output is sorted by confidence, highest first.
"""

from ..config.schemas import InferenceConfig
from ..models import DetectedObject


def filter_detections(
    raw: list[DetectedObject], config: InferenceConfig
) -> list[DetectedObject]:
    """
    Filter raw detector output.

    Args:
        raw: Detections in detector order
        config: Thresholds, cap and label filter

    Returns:
        Surviving detections, sorted by confidence descending
    """
    results = [d for d in raw if d.confidence >= config.confidence_threshold]

    if config.label_filter is not None:
        results = [d for d in results if d.has_label(config.label_filter)]

    if len(results) > config.max_detections:
        results = results[: config.max_detections]

    return non_max_suppression(results, config.nms_threshold)


def non_max_suppression(
    detections: list[DetectedObject], iou_threshold: float
) -> list[DetectedObject]:
    """
    Greedy NMS, class-agnostic.

    A kept detection suppresses every lower-ranked detection whose IoU with
    it is above the threshold. Suppressed detections never suppress others.
    Ties in confidence keep input order.
    """
    ranked = sorted(detections, key=lambda d: d.confidence, reverse=True)
    if len(ranked) <= 1:
        return ranked

    selected: list[DetectedObject] = []
    suppressed: set[int] = set()

    for i, candidate in enumerate(ranked):
        if i in suppressed:
            continue
        selected.append(candidate)

        for j in range(i + 1, len(ranked)):
            if j in suppressed:
                continue
            if candidate.bounding_box.iou(ranked[j].bounding_box) > iou_threshold:
                suppressed.add(j)

    return selected
