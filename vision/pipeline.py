"""Detect-and-classify vision service.

Runs an object detector over an image, keeps the best scoring detections with
an allowed label, crops the image to each of them and hands every crop to the
configured classifiers. The merged classifier output is returned ranked by
score.
"""

from __future__ import annotations

from dataclasses import dataclass
import threading
from typing import Any

from PIL import Image

from core.errors import (
    ConfigurationError,
    PipelineCancelledError,
    PipelineStageError,
    UnimplementedError,
)
from core.logging import logger
from storage.image_log import ImageLogger
from vision.detections import Classification, Detection
from vision.geometry import crop_image, padded_rectangle
from vision.providers import (
    CancellationToken,
    Classifier,
    Detector,
    FrameSource,
    acquire_frame,
)
from vision.ranking import merge_classifications, rank_and_filter
from vision.registry import ProviderRegistry
from vision.settings import ClassifierSettings, PipelineSettings


PRETTY_NAME = "Detect and classify vision service"


@dataclass(frozen=True)
class ClassifierBinding:
    """A resolved classifier paired with its fan-out settings."""

    settings: ClassifierSettings
    classifier: Classifier


@dataclass(frozen=True)
class PipelineSnapshot:
    """Settings and resolved collaborators used by one invocation."""

    settings: PipelineSettings
    detector: Detector
    classifiers: tuple[ClassifierBinding, ...]
    frame_source: FrameSource | None = None
    image_logger: ImageLogger | None = None

    @classmethod
    def resolve(cls, settings: PipelineSettings, registry: ProviderRegistry) -> "PipelineSnapshot":
        """Look up every referenced provider.

        Raises:
            ConfigurationError: if a reference cannot be resolved.
        """

        detector = registry.detector(settings.detector)
        classifiers = tuple(
            ClassifierBinding(settings=entry, classifier=registry.classifier(entry.name))
            for entry in settings.classifiers
        )
        frame_source = registry.frame_source(settings.camera) if settings.camera else None
        image_logger = None
        if settings.log_image and settings.image_path:
            image_logger = ImageLogger(settings.image_path)
        return cls(
            settings=settings,
            detector=detector,
            classifiers=classifiers,
            frame_source=frame_source,
            image_logger=image_logger,
        )


def _check_cancel(cancel: CancellationToken | None, stage: str) -> None:
    if cancel is not None:
        cancel.raise_if_cancelled(stage)


def classify_crop(
    crop: Image.Image,
    classifiers: tuple[ClassifierBinding, ...],
    cancel: CancellationToken | None = None,
) -> list[Classification]:
    """Run every classifier against ``crop`` and concatenate their outputs."""

    results: list[Classification] = []
    for binding in classifiers:
        _check_cancel(cancel, "classify")
        try:
            output = binding.classifier.classifications(
                crop,
                binding.settings.count,
                dict(binding.settings.attributes),
                cancel=cancel,
            )
        except PipelineCancelledError:
            raise
        except Exception as exc:
            raise PipelineStageError(
                "classify",
                f"classifier {binding.settings.name!r} failed: {exc}",
            ) from exc
        results.extend(output or [])
    return results


def detect_and_classify(
    snapshot: PipelineSnapshot,
    image: Image.Image,
    cancel: CancellationToken | None = None,
) -> list[Classification]:
    """Run one detect, crop, classify and merge pass against ``snapshot``."""

    settings = snapshot.settings

    _check_cancel(cancel, "detect")
    try:
        raw_detections = snapshot.detector.detections(image, None, cancel=cancel)
    except PipelineCancelledError:
        raise
    except Exception as exc:
        raise PipelineStageError(
            "detect",
            f"detector {settings.detector!r} failed: {exc}",
        ) from exc

    detections = rank_and_filter(
        raw_detections or [],
        settings.max_detections,
        settings.detector_confidence,
        settings.detector_labels,
    )
    logger.info(
        "[PIPELINE] Detections #: %s/%s (max %s)",
        len(detections),
        len(raw_detections or []),
        settings.max_detections,
    )
    logger.debug("[PIPELINE] Detection details: %s", detections)

    collected: list[Classification] = []
    for detection in detections:
        crop = _crop_detection(image, detection, settings.padding)

        if snapshot.image_logger is not None:
            try:
                snapshot.image_logger.log_image(crop)
            except Exception as exc:
                raise PipelineStageError("log", f"image logging failed: {exc}") from exc

        collected.extend(classify_crop(crop, snapshot.classifiers, cancel))

    result = merge_classifications(collected, settings.max_classifications)
    logger.debug("[PIPELINE] Classifications: %s", result)
    return result


def _crop_detection(image: Image.Image, detection: Detection, padding: int) -> Image.Image:
    rectangle = padded_rectangle(detection, padding)
    try:
        return crop_image(image, rectangle)
    except Exception as exc:
        raise PipelineStageError(
            "crop",
            f"unable to crop {detection.label!r} at {rectangle.as_box()}: {exc}",
        ) from exc


class DetectClassifyService:
    """Vision service cropping to detections before classifying them.

    Configuration is held as one immutable snapshot. ``reconfigure`` swaps it
    under an exclusive lock; invocations copy the reference once and run
    against it to completion.
    """

    def __init__(self, name: str = "detect-and-classify") -> None:
        self.name = name
        self._lock = threading.RLock()
        self._snapshot: PipelineSnapshot | None = None

    @classmethod
    def from_settings(
        cls,
        settings: PipelineSettings,
        registry: ProviderRegistry,
        name: str = "detect-and-classify",
    ) -> "DetectClassifyService":
        service = cls(name=name)
        service.reconfigure(settings, registry)
        return service

    def reconfigure(self, settings: PipelineSettings, registry: ProviderRegistry) -> None:
        """Validate ``settings`` against ``registry`` and install them.

        The previous configuration stays active if resolution fails.
        """

        logger.debug("[PIPELINE] Reconfiguring %s", PRETTY_NAME)
        snapshot = PipelineSnapshot.resolve(settings, registry)
        with self._lock:
            self._snapshot = snapshot
        logger.info(
            "[PIPELINE] Reconfigured %s (detector=%s classifiers=%s camera=%s)",
            self.name,
            settings.detector,
            ",".join(entry.name for entry in settings.classifiers),
            settings.camera,
        )

    def snapshot(self) -> PipelineSnapshot:
        with self._lock:
            snapshot = self._snapshot
        if snapshot is None:
            raise ConfigurationError(f"{self.name} has not been configured")
        return snapshot

    def classifications(
        self,
        image: Image.Image,
        n: int = 0,
        extra: dict[str, Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[Classification]:
        """Classify the detected regions of ``image``.

        ``n`` and ``extra`` are accepted for interface parity; the result size
        is governed by ``max_classifications``.
        """

        return detect_and_classify(self.snapshot(), image, cancel)

    def classifications_from_camera(
        self,
        camera_name: str | None = None,
        n: int = 0,
        extra: dict[str, Any] | None = None,
        cancel: CancellationToken | None = None,
    ) -> list[Classification]:
        """Grab one frame from the configured camera and classify it."""

        snapshot = self.snapshot()
        if snapshot.frame_source is None:
            raise ConfigurationError(f"{self.name} has no camera configured")
        if camera_name and camera_name != snapshot.settings.camera:
            logger.debug(
                "[PIPELINE] Ignoring camera %s; using configured camera %s",
                camera_name,
                snapshot.settings.camera,
            )

        _check_cancel(cancel, "capture")
        with acquire_frame(snapshot.frame_source, snapshot.settings.camera) as frame:
            return detect_and_classify(snapshot, frame, cancel)

    def detections(
        self,
        image: Image.Image,
        extra: dict[str, Any] | None = None,
    ) -> list[Detection]:
        raise UnimplementedError("detections are not supported by this service")

    def detections_from_camera(
        self,
        camera_name: str,
        extra: dict[str, Any] | None = None,
    ) -> list[Detection]:
        raise UnimplementedError("detections are not supported by this service")

    def get_object_point_clouds(
        self,
        camera_name: str,
        extra: dict[str, Any] | None = None,
    ) -> list[Any]:
        raise UnimplementedError("object point clouds are not supported by this service")

    def do_command(self, command: dict[str, Any]) -> dict[str, Any]:
        raise UnimplementedError("do_command is not supported by this service")

    def close(self) -> None:
        """Release the configured camera."""

        logger.debug("[PIPELINE] Shutting down %s", PRETTY_NAME)
        with self._lock:
            snapshot = self._snapshot
        if snapshot is None or snapshot.frame_source is None:
            return
        close = getattr(snapshot.frame_source, "close", None)
        if callable(close):
            close()
