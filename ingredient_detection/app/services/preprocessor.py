"""Image to input-tensor preprocessing."""
from __future__ import annotations

import logging

import cv2
import numpy as np

from ..models import ModelVariant

LOGGER = logging.getLogger(__name__)

# Channel order of every pixel in the input buffer; must match the bundled models.
CHANNEL_ORDER = ("R", "G", "B")


def preprocess_image(image: np.ndarray, input_size: int = 640) -> np.ndarray:
    """Convert an HxWx3 RGB raster into a flat, normalized float32 buffer.

    The raster is stretched to ``input_size`` x ``input_size`` without
    preserving aspect ratio, scanned row by row, and every channel value is
    divided by 255. The result has ``input_size * input_size * 3`` values in
    ``CHANNEL_ORDER`` per pixel.
    """

    if image is None or image.size == 0:
        raise ValueError("Empty image passed to preprocessor")
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError("image must be an HxWx3 RGB array")
    if image.dtype != np.uint8:
        raise ValueError(f"image must hold 8-bit channel values, got {image.dtype}")
    if input_size <= 0:
        raise ValueError("input_size must be positive")

    resized = cv2.resize(image, (input_size, input_size), interpolation=cv2.INTER_LINEAR)
    buffer = resized.astype(np.float32).reshape(-1) / np.float32(255.0)
    LOGGER.debug(
        "Preprocessed image %sx%s into %d values",
        image.shape[1],
        image.shape[0],
        buffer.size,
    )
    return buffer


def to_model_input(buffer: np.ndarray, variant: ModelVariant) -> np.ndarray:
    """Reshape a flat preprocessed buffer into the batch tensor a model expects."""

    size = variant.input_size
    tensor = np.asarray(buffer, dtype=np.float32).reshape(1, size, size, len(CHANNEL_ORDER))
    if variant.channels_first:
        tensor = np.ascontiguousarray(tensor.transpose(0, 3, 1, 2))
    return tensor
