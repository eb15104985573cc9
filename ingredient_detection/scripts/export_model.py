#!/usr/bin/env python3
"""Export Ultralytics YOLO weights to ONNX and print the matching manifest entry."""
from __future__ import annotations

import argparse
import shutil
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from ultralytics import YOLO

from ingredient_detection.app.models import Layout

DETECTION_STRIDES = (8, 16, 32)


def anchor_count(imgsz: int) -> int:
    """Number of prediction slots of an anchor-free head for a square input."""

    return sum((imgsz // stride) ** 2 for stride in DETECTION_STRIDES)


def export_weights(weights: Path, target: Path, imgsz: int = 640) -> Path:
    if not weights.exists():
        raise FileNotFoundError(f"Weights file not found: {weights}")
    model = YOLO(str(weights))
    generated = Path(model.export(format="onnx", imgsz=imgsz))
    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(generated), str(target))
    print(f"Model exported to {target}")
    return target


def manifest_entry(name: str, target: Path, imgsz: int) -> Dict[str, dict]:
    # Ultralytics ONNX exports emit [4 + C][N] without objectness
    return {
        "variants": {
            name: {
                "model_path": str(target),
                "layout": Layout.CHANNEL_MAJOR.value,
                "num_anchors": anchor_count(imgsz),
                "input_size": imgsz,
                "channels_first": True,
            }
        }
    }


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Export YOLO weights to ONNX")
    parser.add_argument("weights", type=Path, help="Ultralytics .pt weights file")
    parser.add_argument("--name", type=str, default=None, help="Variant name for the manifest")
    parser.add_argument("--output", type=Path, default=None, help="Destination .onnx path")
    parser.add_argument("--imgsz", type=int, default=640, help="Square input edge length")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> None:
    args = parse_args(argv)
    name = args.name or args.weights.stem
    target = args.output or Path("models") / f"{name}.onnx"
    export_weights(args.weights, target, imgsz=args.imgsz)
    print(yaml.safe_dump(manifest_entry(name, target, args.imgsz), sort_keys=False))


if __name__ == "__main__":
    main()
