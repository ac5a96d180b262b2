"""Detection and classification result schemas.

Bounding boxes are expressed in integer pixel coordinates of the source image
as a half-open rectangle: ``x_min <= x < x_max`` and ``y_min <= y < y_max``.
Scores are model confidences expected in the inclusive range ``[0.0, 1.0]``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned pixel rectangle."""

    x_min: int
    y_min: int
    x_max: int
    y_max: int

    @property
    def width(self) -> int:
        return self.x_max - self.x_min

    @property
    def height(self) -> int:
        return self.y_max - self.y_min

    def is_empty(self) -> bool:
        """Return whether the rectangle covers no pixels."""

        return self.width <= 0 or self.height <= 0

    def padded(self, padding: int) -> "BoundingBox":
        """Return the rectangle grown by ``padding`` pixels on every edge."""

        return BoundingBox(
            x_min=self.x_min - padding,
            y_min=self.y_min - padding,
            x_max=self.x_max + padding,
            y_max=self.y_max + padding,
        )

    def intersect(self, other: "BoundingBox") -> "BoundingBox":
        return BoundingBox(
            x_min=max(self.x_min, other.x_min),
            y_min=max(self.y_min, other.y_min),
            x_max=min(self.x_max, other.x_max),
            y_max=min(self.y_max, other.y_max),
        )

    def as_box(self) -> tuple[int, int, int, int]:
        """Return the ``(left, upper, right, lower)`` tuple used by Pillow."""

        return (self.x_min, self.y_min, self.x_max, self.y_max)


@dataclass(frozen=True)
class Detection:
    """Single object detection result."""

    bounding_box: BoundingBox
    label: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Classification:
    """Single whole-image classification result."""

    label: str
    score: float
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        """Return a JSON-serializable representation."""

        return {"label": self.label, "score": self.score}
