"""
Bounding box geometry in normalized [0, 1] frame coordinates.

Origin is the top-left corner of the upright frame (OpenCV / ultralytics
convention), so smaller y is higher in the image.
"""

import math
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class BoundingBox:
    """
    Axis-aligned rectangle in normalized coordinates.

    Attributes:
        x: Left edge
        y: Top edge
        width: Box width
        height: Box height
    """

    x: float
    y: float
    width: float
    height: float

    @property
    def min_x(self) -> float:
        return self.x

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def min_y(self) -> float:
        return self.y

    @property
    def max_y(self) -> float:
        return self.y + self.height

    @property
    def center_x(self) -> float:
        return self.x + self.width / 2

    @property
    def center_y(self) -> float:
        return self.y + self.height / 2

    @property
    def area(self) -> float:
        return self.width * self.height

    def iou(self, other: "BoundingBox") -> float:
        """Intersection over union; 0 when the boxes do not overlap."""
        inter_w = min(self.max_x, other.max_x) - max(self.min_x, other.min_x)
        inter_h = min(self.max_y, other.max_y) - max(self.min_y, other.min_y)
        if inter_w <= 0 or inter_h <= 0:
            return 0.0

        intersection = inter_w * inter_h
        union = self.area + other.area - intersection
        if union <= 0:
            return 0.0
        return intersection / union

    def distance(self, other: "BoundingBox") -> float:
        """Euclidean distance between box centers."""
        return math.hypot(self.center_x - other.center_x, self.center_y - other.center_y)

    def contains_point(self, x: float, y: float) -> bool:
        """Half-open containment: left/top edges inside, right/bottom edges outside."""
        return self.min_x <= x < self.max_x and self.min_y <= y < self.max_y

    def expanded(self, dx: float, dy: float) -> "BoundingBox":
        """Return a box grown by dx on the left and right and dy on top and bottom."""
        return BoundingBox(
            x=self.x - dx,
            y=self.y - dy,
            width=self.width + 2 * dx,
            height=self.height + 2 * dy,
        )

    def to_dict(self) -> dict[str, float]:
        return {"x": self.x, "y": self.y, "width": self.width, "height": self.height}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BoundingBox":
        return cls(
            x=float(data["x"]),
            y=float(data["y"]),
            width=float(data["width"]),
            height=float(data["height"]),
        )

    @classmethod
    def mean(cls, boxes: list["BoundingBox"]) -> "BoundingBox":
        """Component-wise arithmetic mean of (x, y, width, height)."""
        if not boxes:
            raise ValueError("Cannot average an empty list of boxes")
        count = len(boxes)
        return cls(
            x=sum(b.x for b in boxes) / count,
            y=sum(b.y for b in boxes) / count,
            width=sum(b.width for b in boxes) / count,
            height=sum(b.height for b in boxes) / count,
        )

    def __str__(self) -> str:
        return f"({self.x:.3f}, {self.y:.3f}, {self.width:.3f}x{self.height:.3f})"
