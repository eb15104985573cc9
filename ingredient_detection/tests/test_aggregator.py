from __future__ import annotations

from ingredient_detection.app.models import Detection, Rectangle
from ingredient_detection.app.services.aggregator import count_ingredients, distinct_labels


def build_detections() -> list[Detection]:
    box = Rectangle(0, 0, 10, 10)
    return [
        Detection(class_id=1, label="onion", confidence=0.55, box=box),
        Detection(class_id=0, label="tomato", confidence=0.9, box=box),
        Detection(class_id=0, label="tomato", confidence=0.31, box=Rectangle(50, 50, 51, 51)),
        Detection(class_id=2, label="garlic", confidence=0.99, box=box),
        Detection(class_id=0, label="tomato", confidence=0.6, box=box),
    ]


def test_counts_once_per_detection() -> None:
    counts = count_ingredients(build_detections())
    assert counts == {"tomato": 3, "onion": 1, "garlic": 1}


def test_total_matches_number_of_detections() -> None:
    detections = build_detections()
    assert sum(count_ingredients(detections).values()) == len(detections)


def test_empty_input_yields_empty_mapping() -> None:
    assert count_ingredients([]) == {}
    assert distinct_labels([]) == []


def test_distinct_labels_in_first_seen_order() -> None:
    assert distinct_labels(build_detections()) == ["onion", "tomato", "garlic"]
