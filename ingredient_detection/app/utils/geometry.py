"""Geometry helper utilities for bounding boxes."""
from __future__ import annotations

from ..models import Rectangle


def area(rect: Rectangle) -> float:
    """Return the area of a rectangle, zero for degenerate or inverted bounds."""

    return max(0.0, rect.right - rect.left) * max(0.0, rect.bottom - rect.top)


def intersection(first: Rectangle, second: Rectangle) -> Rectangle:
    """Return the overlap of two rectangles.

    Non-overlapping inputs yield an inverted rectangle whose area is zero.
    """

    return Rectangle(
        left=max(first.left, second.left),
        top=max(first.top, second.top),
        right=min(first.right, second.right),
        bottom=min(first.bottom, second.bottom),
    )


def iou(first: Rectangle, second: Rectangle) -> float:
    """Return intersection-over-union, or 0.0 when the union is empty."""

    inter_area = area(intersection(first, second))
    union = area(first) + area(second) - inter_area
    if union <= 0.0:
        return 0.0
    return inter_area / union

