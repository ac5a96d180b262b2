"""Collaborator contracts consumed by the pipeline."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
import threading
from typing import Any, Protocol, runtime_checkable

from PIL import Image

from core.errors import PipelineCancelledError, PipelineStageError
from core.logging import logger
from vision.detections import Classification, Detection


class CancellationToken:
    """Caller-owned cancellation flag passed through every collaborator call."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or ``timeout`` elapses."""

        return self._event.wait(timeout)

    def raise_if_cancelled(self, stage: str = "") -> None:
        if self._event.is_set():
            where = f" before {stage}" if stage else ""
            raise PipelineCancelledError(f"Invocation cancelled{where}")


@runtime_checkable
class Detector(Protocol):
    """Object detector backend."""

    def detections(
        self,
        image: Image.Image,
        extra: dict[str, Any] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Detection]:
        """Return labeled, scored bounding boxes found in ``image``."""


@runtime_checkable
class Classifier(Protocol):
    """Whole-image classifier backend."""

    def classifications(
        self,
        image: Image.Image,
        n: int,
        extra: dict[str, Any] | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[Classification]:
        """Return up to ``n`` classifications for ``image``."""


@runtime_checkable
class FrameSource(Protocol):
    """Camera or stream delivering one frame at a time."""

    def next_frame(self) -> tuple[Image.Image, Callable[[], None]]:
        """Return the current frame and a callable releasing it."""


@contextmanager
def acquire_frame(source: FrameSource, name: str | None = None) -> Iterator[Image.Image]:
    """Yield one frame from ``source`` and release it on exit, even on error.

    Raises:
        PipelineStageError: with stage ``"capture"`` if no frame is delivered.
    """

    try:
        frame, release = source.next_frame()
    except Exception as exc:
        raise PipelineStageError("capture", f"camera {name!r} failed: {exc}") from exc
    try:
        yield frame
    finally:
        try:
            release()
        except Exception:
            logger.exception("[CAMERA] Failed to release frame")
