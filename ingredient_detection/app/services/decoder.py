"""Decoding of raw detector output into candidate detections."""
from __future__ import annotations

import logging
from typing import List, Sequence

import numpy as np

from ..models import Detection, Layout, Rectangle

LOGGER = logging.getLogger(__name__)


class LayoutMismatchError(ValueError):
    """Raised when an output buffer does not match the declared layout."""


class TensorDecoder:
    """Turns one raw output buffer into candidate detections above a confidence threshold.

    The layout is always supplied by configuration. The decoder never guesses
    it from the buffer, since two layouts can share the same element count.
    """

    def __init__(
        self,
        layout: Layout,
        num_anchors: int,
        labels: Sequence[str],
        input_size: int = 640,
        confidence_threshold: float = 0.5,
    ) -> None:
        if not 0.0 < confidence_threshold <= 1.0:
            raise ValueError("confidence_threshold must be in (0, 1]")
        if num_anchors <= 0:
            raise ValueError("num_anchors must be positive")
        if input_size <= 0:
            raise ValueError("input_size must be positive")
        if not labels:
            raise ValueError("label table must not be empty")

        self.layout = layout
        self.num_anchors = num_anchors
        self.labels = tuple(labels)
        self.input_size = input_size
        self.confidence_threshold = confidence_threshold

    @property
    def num_classes(self) -> int:
        return len(self.labels)

    @property
    def expected_size(self) -> int:
        return self.num_anchors * self.layout.row_width(self.num_classes)

    def decode(self, output: np.ndarray, original_width: int, original_height: int) -> List[Detection]:
        """Return one detection per anchor whose confidence reaches the threshold, in scan order."""

        if original_width <= 0 or original_height <= 0:
            raise ValueError("original image dimensions must be positive")

        table = self._as_table(output)
        boxes = self._box_params(table)
        scores = self._class_scores(table)

        if self.layout.has_objectness:
            objectness = self._objectness(table)
            # confidence <= objectness, so anchors below the threshold here can never pass
            anchors = np.flatnonzero(objectness >= self.confidence_threshold)
            class_ids = np.argmax(scores[anchors], axis=1)
            confidences = objectness[anchors] * scores[anchors, class_ids]
        else:
            anchors = np.arange(self.num_anchors)
            class_ids = np.argmax(scores, axis=1)
            confidences = scores[anchors, class_ids]

        keep = confidences >= self.confidence_threshold
        anchors = anchors[keep]
        class_ids = class_ids[keep]
        confidences = confidences[keep]

        scale_x = original_width / self.input_size
        scale_y = original_height / self.input_size

        detections: List[Detection] = []
        for anchor, class_id, confidence in zip(anchors, class_ids, confidences):
            cx, cy, width, height = boxes[anchor]
            box = Rectangle(
                left=float((cx - width / 2) * scale_x),
                top=float((cy - height / 2) * scale_y),
                right=float((cx + width / 2) * scale_x),
                bottom=float((cy + height / 2) * scale_y),
            )
            detections.append(
                Detection(
                    class_id=int(class_id),
                    label=self.labels[int(class_id)],
                    confidence=float(confidence),
                    box=box,
                )
            )

        LOGGER.debug(
            "Decoded %d candidates from %d anchors (layout=%s, threshold=%.2f)",
            len(detections),
            self.num_anchors,
            self.layout.value,
            self.confidence_threshold,
        )
        return detections

    def _as_table(self, output: np.ndarray) -> np.ndarray:
        values = np.asarray(output, dtype=np.float64)
        if values.ndim == 3 and values.shape[0] == 1:
            values = values[0]
        if values.size != self.expected_size:
            raise LayoutMismatchError(
                f"Output buffer has {values.size} values but layout {self.layout.value} with "
                f"{self.num_anchors} anchors and {self.num_classes} classes needs {self.expected_size}"
            )
        row_width = self.layout.row_width(self.num_classes)
        if self.layout is Layout.CHANNEL_MAJOR:
            shape = (row_width, self.num_anchors)
        else:
            shape = (self.num_anchors, row_width)
        if values.ndim != 1 and values.shape != shape:
            raise LayoutMismatchError(
                f"Output buffer has shape {values.shape} but layout {self.layout.value} needs {shape}"
            )
        table = values.reshape(shape)
        self._check_scores(table)
        return table

    def _check_scores(self, table: np.ndarray) -> None:
        # scores outside [0, 1] mean the model was not exported with sigmoid outputs
        channels = [self._class_scores(table)]
        if self.layout.has_objectness:
            channels.append(self._objectness(table))
        for values in channels:
            if not np.all((values >= 0.0) & (values <= 1.0)):
                raise LayoutMismatchError(
                    f"Score channels of layout {self.layout.value} must lie in [0, 1]"
                )

    def _box_params(self, table: np.ndarray) -> np.ndarray:
        """Return an (N, 4) array of cx, cy, w, h."""

        if self.layout is Layout.CHANNEL_MAJOR:
            return table[:4, :].T
        return table[:, :4]

    def _class_scores(self, table: np.ndarray) -> np.ndarray:
        """Return an (N, C) array of per-class scores."""

        if self.layout is Layout.CHANNEL_MAJOR:
            return table[4:, :].T
        return table[:, 5:]

    def _objectness(self, table: np.ndarray) -> np.ndarray:
        return table[:, 4]
