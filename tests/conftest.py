"""Shared fakes for pipeline tests."""

from __future__ import annotations

from typing import Any

import pytest
from PIL import Image

from config.controller import ConfigController
from vision.detections import BoundingBox, Classification, Detection


class FakeDetector:
    def __init__(self, detections: list[Detection] | None = None, error: Exception | None = None) -> None:
        self.detections_to_return = list(detections or [])
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def detections(self, image, extra=None, *, cancel=None) -> list[Detection]:
        self.calls.append({"image": image, "extra": extra, "cancel": cancel})
        if self.error is not None:
            raise self.error
        return list(self.detections_to_return)


class FakeClassifier:
    def __init__(
        self,
        results: list[Classification] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.results = list(results or [])
        self.error = error
        self.calls: list[dict[str, Any]] = []

    def classifications(self, image, n, extra=None, *, cancel=None) -> list[Classification]:
        self.calls.append({"image": image, "n": n, "extra": extra, "cancel": cancel})
        if self.error is not None:
            raise self.error
        return list(self.results[:n])


class FakeFrameSource:
    def __init__(self, image: Image.Image | None = None, error: Exception | None = None) -> None:
        self.image = image if image is not None else Image.new("RGB", (64, 48), (10, 20, 30))
        self.error = error
        self.released = 0
        self.closed = False

    def next_frame(self):
        if self.error is not None:
            raise self.error
        return self.image, self._release

    def _release(self) -> None:
        self.released += 1

    def close(self) -> None:
        self.closed = True


def detection(
    label: str,
    score: float,
    box: tuple[int, int, int, int] = (10, 10, 20, 20),
) -> Detection:
    return Detection(bounding_box=BoundingBox(*box), label=label, score=score)


def classification(label: str, score: float) -> Classification:
    return Classification(label=label, score=score)


@pytest.fixture
def gradient_image() -> Image.Image:
    """64x48 RGB image whose pixel values encode their coordinates."""

    image = Image.new("RGB", (64, 48))
    image.putdata([(x * 4, y * 5, 128) for y in range(48) for x in range(64)])
    return image


@pytest.fixture
def reset_config_controller():
    ConfigController._instance = None
    yield
    ConfigController._instance = None
