"""Class-aware greedy non-maximum suppression."""
from __future__ import annotations

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from ..models import Detection
from ..utils.geometry import iou

LOGGER = logging.getLogger(__name__)


class NonMaxSuppressor:
    """Collapses overlapping same-class detections to their highest-confidence member."""

    def __init__(self, iou_threshold: float = 0.45) -> None:
        if not 0.0 <= iou_threshold <= 1.0:
            raise ValueError("iou_threshold must be in [0, 1]")
        self.iou_threshold = iou_threshold

    def suppress(self, candidates: Iterable[Detection]) -> List[Detection]:
        """Return the kept detections ordered by confidence, ties in input order.

        Only accepted boxes suppress others, and boxes of different classes
        never suppress each other.
        """

        ranked = sorted(enumerate(candidates), key=lambda item: (-item[1].confidence, item[0]))

        buckets: Dict[int, List[Tuple[int, Detection]]] = defaultdict(list)
        for position, (_, detection) in enumerate(ranked):
            buckets[detection.class_id].append((position, detection))

        kept: List[Tuple[int, Detection]] = []
        for class_id, bucket in buckets.items():
            survivors = self._suppress_bucket(bucket)
            LOGGER.debug("Class %d kept %d of %d candidates", class_id, len(survivors), len(bucket))
            kept.extend(survivors)

        kept.sort(key=lambda item: item[0])
        return [detection for _, detection in kept]

    def _suppress_bucket(self, bucket: List[Tuple[int, Detection]]) -> List[Tuple[int, Detection]]:
        survivors: List[Tuple[int, Detection]] = []
        remaining = bucket
        while remaining:
            best = remaining[0]
            survivors.append(best)
            remaining = [
                item
                for item in remaining[1:]
                if iou(best[1].box, item[1].box) <= self.iou_threshold
            ]
        return survivors


def non_max_suppression(candidates: Iterable[Detection], iou_threshold: float = 0.45) -> List[Detection]:
    """Functional shortcut for ``NonMaxSuppressor(iou_threshold).suppress``."""

    return NonMaxSuppressor(iou_threshold).suppress(candidates)
