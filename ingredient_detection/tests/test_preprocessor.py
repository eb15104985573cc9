from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest

from ingredient_detection.app.models import Layout, ModelVariant
from ingredient_detection.app.services.preprocessor import (
    CHANNEL_ORDER,
    preprocess_image,
    to_model_input,
)


def build_variant(channels_first: bool) -> ModelVariant:
    return ModelVariant(
        name="test",
        model_path=Path("model.onnx"),
        layout=Layout.CHANNEL_MAJOR,
        num_anchors=10,
        input_size=8,
        channels_first=channels_first,
    )


def test_output_has_fixed_size_regardless_of_input_shape() -> None:
    wide = np.zeros((30, 90, 3), dtype=np.uint8)
    tall = np.zeros((200, 17, 3), dtype=np.uint8)

    assert preprocess_image(wide, input_size=16).shape == (16 * 16 * 3,)
    assert preprocess_image(tall, input_size=16).shape == (16 * 16 * 3,)
    assert preprocess_image(wide).shape == (640 * 640 * 3,)


def test_values_are_normalized_float32() -> None:
    image = np.full((10, 10, 3), 255, dtype=np.uint8)
    image[:, :, 1] = 0
    image[:, :, 2] = 51

    buffer = preprocess_image(image, input_size=4)

    assert buffer.dtype == np.float32
    assert buffer.min() >= 0.0
    assert buffer.max() <= 1.0
    assert buffer[0] == pytest.approx(1.0)
    assert buffer[1] == pytest.approx(0.0)
    assert buffer[2] == pytest.approx(0.2)


def test_channels_are_interleaved_in_rgb_order() -> None:
    assert CHANNEL_ORDER == ("R", "G", "B")
    image = np.zeros((6, 6, 3), dtype=np.uint8)
    image[:, :, 0] = 255

    pixels = preprocess_image(image, input_size=3).reshape(-1, 3)

    assert np.allclose(pixels[:, 0], 1.0)
    assert np.allclose(pixels[:, 1:], 0.0)


def test_row_major_scan_order() -> None:
    image = np.zeros((4, 4, 3), dtype=np.uint8)
    image[0, :, :] = 255  # top row white

    pixels = preprocess_image(image, input_size=4).reshape(4, 4, 3)

    assert np.allclose(pixels[0], 1.0)
    assert np.allclose(pixels[3], 0.0)


@pytest.mark.parametrize(
    "image",
    [
        None,
        np.zeros((0, 0, 3), dtype=np.uint8),
        np.zeros((10, 10), dtype=np.uint8),
        np.zeros((10, 10, 4), dtype=np.uint8),
        np.full((4, 4, 3), 1000, dtype=np.uint16),
        np.full((4, 4, 3), 0.5, dtype=np.float32),
    ],
)
def test_malformed_images_are_rejected(image) -> None:
    with pytest.raises(ValueError):
        preprocess_image(image, input_size=8)


def test_to_model_input_channels_last() -> None:
    buffer = np.arange(8 * 8 * 3, dtype=np.float32)
    tensor = to_model_input(buffer, build_variant(channels_first=False))
    assert tensor.shape == (1, 8, 8, 3)
    assert tensor[0, 0, 1, 2] == buffer[5]


def test_to_model_input_channels_first() -> None:
    buffer = np.arange(8 * 8 * 3, dtype=np.float32)
    tensor = to_model_input(buffer, build_variant(channels_first=True))
    assert tensor.shape == (1, 3, 8, 8)
    assert tensor.flags["C_CONTIGUOUS"]
    assert tensor[0, 2, 0, 1] == buffer[5]
