"""Ingredient counting over final detections."""
from __future__ import annotations

from collections import defaultdict
from typing import Dict, Iterable, List

from ..models import Detection


def count_ingredients(detections: Iterable[Detection]) -> Dict[str, int]:
    """Count detections per label, one increment per detection."""

    counts: Dict[str, int] = defaultdict(int)
    for detection in detections:
        counts[detection.label] += 1
    return dict(counts)


def distinct_labels(detections: Iterable[Detection]) -> List[str]:
    """Return each detected label once, in order of first appearance."""

    labels: List[str] = []
    for detection in detections:
        if detection.label not in labels:
            labels.append(detection.label)
    return labels
