"""Shared data models for ingredient detection."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional

import yaml


@dataclass(frozen=True)
class Rectangle:
    """Axis-aligned box in original-image pixel coordinates."""

    left: float
    top: float
    right: float
    bottom: float


@dataclass(frozen=True)
class Detection:
    """Represents a single detected ingredient."""

    class_id: int
    label: str
    confidence: float
    box: Rectangle

    def caption(self) -> str:
        """Return the overlay text drawn next to the box."""

        return f"{self.label} {self.confidence * 100:.1f}%"

    def __str__(self) -> str:
        return f"{self.label} ({self.confidence * 100:.2f}%)"


class Layout(Enum):
    """How a model variant encodes detections in its output buffer."""

    # [N anchors][4 box + 1 objectness + C class scores]
    ANCHOR_MAJOR_OBJECTNESS = "anchor_major_objectness"
    # [4 + C channels][N anchors], no objectness term
    CHANNEL_MAJOR = "channel_major"

    @property
    def has_objectness(self) -> bool:
        return self is Layout.ANCHOR_MAJOR_OBJECTNESS

    def row_width(self, num_classes: int) -> int:
        """Number of values describing one anchor."""

        return 4 + (1 if self.has_objectness else 0) + num_classes


@dataclass(frozen=True)
class ModelVariant:
    """A bundled model file paired with the layout of its output tensor."""

    name: str
    model_path: Path
    layout: Layout
    num_anchors: int
    input_size: int = 640
    channels_first: bool = False

    @classmethod
    def from_yaml(cls, path: Path, name: str) -> "ModelVariant":
        with path.open("r", encoding="utf-8") as handle:
            payload = yaml.safe_load(handle) or {}
        variants = payload.get("variants", {}) or {}
        entry = variants.get(name)
        if not isinstance(entry, dict):
            raise ValueError(f"Unknown model variant '{name}' in {path}")
        for key in ("model_path", "layout", "num_anchors"):
            if entry.get(key) is None:
                raise ValueError(f"Model variant '{name}' in {path} is missing '{key}'")

        raw_layout = str(entry.get("layout", ""))
        try:
            layout = Layout(raw_layout)
        except ValueError as exc:
            raise ValueError(f"Unsupported layout '{raw_layout}' for variant '{name}'") from exc

        model_path = Path(str(entry["model_path"])).expanduser()
        if not model_path.is_absolute():
            model_path = path.resolve().parent / model_path

        return cls(
            name=name,
            model_path=model_path,
            layout=layout,
            num_anchors=int(entry["num_anchors"]),
            input_size=int(entry.get("input_size", 640)),
            channels_first=bool(entry.get("channels_first", False)),
        )


@dataclass(frozen=True)
class AnalysisResult:
    """The two artifacts produced for one analyzed image."""

    detections: List[Detection] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)
    keywords: List[str] = field(default_factory=list)
    latency_ms: Optional[float] = None
