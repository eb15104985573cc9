"""Ingredient detection pipeline: preprocess, infer, decode, suppress, count."""
from __future__ import annotations

import logging
import sys
import time
from typing import List, Optional, Sequence

import numpy as np

from .config.settings import AppSettings
from .models import AnalysisResult, Detection, ModelVariant
from .services.aggregator import count_ingredients, distinct_labels
from .services.decoder import TensorDecoder
from .services.inference import InferenceUnavailableError, ModelRunner, OnnxModelRunner
from .services.preprocessor import preprocess_image, to_model_input
from .services.suppressor import NonMaxSuppressor

LOGGER = logging.getLogger(__name__)


def setup_logging(settings: AppSettings) -> None:
    """Route pipeline logs to stdout at the configured level, replacing earlier handlers."""

    if settings.log_format == "json":
        formatter = logging.Formatter(
            '{"time": "%(asctime)s", "logger": "%(name)s", "level": "%(levelname)s", "message": "%(message)s"}'
        )
    else:
        formatter = logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    logging.basicConfig(level=settings.log_level, handlers=[handler], force=True)


class IngredientDetector:
    """Runs the full per-image analysis for one model variant.

    The decoder and suppressor are built once from configuration; every call
    to :meth:`analyze` is independent and keeps no state between images.
    """

    def __init__(
        self,
        variant: ModelVariant,
        labels: Sequence[str],
        runner: ModelRunner,
        confidence_threshold: float = 0.5,
        iou_threshold: float = 0.45,
    ) -> None:
        self.variant = variant
        self.runner = runner
        self.decoder = TensorDecoder(
            layout=variant.layout,
            num_anchors=variant.num_anchors,
            labels=labels,
            input_size=variant.input_size,
            confidence_threshold=confidence_threshold,
        )
        self.suppressor = NonMaxSuppressor(iou_threshold)

    def detect(self, image: np.ndarray) -> List[Detection]:
        """Return the final detections for an RGB image."""

        buffer = preprocess_image(image, self.variant.input_size)
        height, width = image.shape[:2]
        output = self.runner.run(to_model_input(buffer, self.variant))
        candidates = self.decoder.decode(output, width, height)
        return self.suppressor.suppress(candidates)

    def analyze(self, image: np.ndarray) -> AnalysisResult:
        """Return detections plus ingredient counts for an RGB image.

        Raises :class:`InferenceUnavailableError` when the model cannot run.
        """

        started = time.perf_counter()
        detections = self.detect(image)
        counts = count_ingredients(detections)
        latency_ms = (time.perf_counter() - started) * 1000.0
        LOGGER.info("Detected %d objects %s in %.1f ms", len(detections), counts, latency_ms)
        return AnalysisResult(
            detections=detections,
            counts=counts,
            keywords=distinct_labels(detections),
            latency_ms=latency_ms,
        )

    def try_analyze(self, image: np.ndarray) -> Optional[AnalysisResult]:
        """Like :meth:`analyze`, but returns None when inference is unavailable."""

        try:
            return self.analyze(image)
        except InferenceUnavailableError as exc:
            LOGGER.warning("Inference unavailable, skipping analysis: %s", exc)
            return None

    def close(self) -> None:
        self.runner.close()


def build_detector(
    settings: AppSettings,
    labels: Sequence[str],
    runner: Optional[ModelRunner] = None,
) -> IngredientDetector:
    """Wire the configured model variant, thresholds and runner into a detector."""

    variant = settings.resolve_variant()
    if runner is None:
        runner = OnnxModelRunner(variant, num_threads=settings.num_threads, use_gpu=settings.use_gpu)
    LOGGER.info(
        "Using model variant %s (layout=%s, anchors=%d, classes=%d)",
        variant.name,
        variant.layout.value,
        variant.num_anchors,
        len(labels),
    )
    return IngredientDetector(
        variant,
        labels,
        runner,
        confidence_threshold=settings.confidence_threshold,
        iou_threshold=settings.iou_threshold,
    )
