"""Validated settings for the detect-and-classify pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from core.errors import ConfigurationError
from core.logging import logger


@dataclass(frozen=True)
class ClassifierSettings:
    """One entry of the classifier fan-out list."""

    name: str
    count: int = 1
    attributes: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class PipelineSettings:
    """Tunables governing detection filtering, cropping and fan-out."""

    detector: str
    detector_confidence: float
    classifiers: tuple[ClassifierSettings, ...]
    camera: str | None = None
    max_detections: int = 0
    detector_labels: tuple[str, ...] = ()
    padding: int = 0
    max_classifications: int = 0
    log_image: bool = False
    image_path: str | None = None

    @classmethod
    def from_config(cls, section: Mapping[str, Any] | None) -> "PipelineSettings":
        """Build settings from the ``vision`` configuration section.

        Raises:
            ConfigurationError: if a required value is missing or invalid.
        """

        section = dict(section or {})

        detector = _optional_str(section.get("detector"))
        if detector is None:
            raise ConfigurationError("detector is required")

        try:
            detector_confidence = float(section.get("detector_confidence", 0.0))
            max_detections = int(section.get("max_detections", 0) or 0)
            padding = int(section.get("padding", 0) or 0)
            max_classifications = int(section.get("max_classifications", 0) or 0)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid numeric vision setting: {exc}") from exc

        if not 0.0 < detector_confidence <= 1.0:
            raise ConfigurationError("detector_confidence must be in (0.0, 1.0]")
        if max_detections < 0:
            raise ConfigurationError("max_detections must be >= 0")
        if max_classifications < 0:
            raise ConfigurationError("max_classifications must be >= 0")

        classifiers = tuple(
            _parse_classifier(entry) for entry in (section.get("classifiers") or [])
        )
        if not classifiers:
            raise ConfigurationError("at least one classifier is required")

        labels = section.get("detector_labels") or []
        if isinstance(labels, str):
            labels = [labels]
        detector_labels = tuple(str(label) for label in labels)
        if not detector_labels:
            logger.warning("[CONFIG] detector_labels is empty; every detection will be rejected")

        log_image = section.get("log_image")
        if log_image is None:
            log_image = False
        if not isinstance(log_image, bool):
            raise ConfigurationError(f"log_image must be true or false, got {log_image!r}")
        image_path = _optional_str(section.get("image_path"))
        if log_image and image_path is None:
            raise ConfigurationError("image_path is required when log_image is enabled")

        return cls(
            detector=detector,
            detector_confidence=detector_confidence,
            classifiers=classifiers,
            camera=_optional_str(section.get("camera")),
            max_detections=max_detections,
            detector_labels=detector_labels,
            padding=padding,
            max_classifications=max_classifications,
            log_image=log_image,
            image_path=image_path,
        )

    def dependencies(self) -> list[str]:
        """Return every provider reference these settings require."""

        names = [self.detector]
        if self.camera:
            names.append(self.camera)
        names.extend(classifier.name for classifier in self.classifiers)
        return names


def _optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_classifier(entry: Any) -> ClassifierSettings:
    if isinstance(entry, str):
        entry = {"classifier": entry}
    if not isinstance(entry, Mapping):
        raise ConfigurationError(f"Invalid classifier entry: {entry!r}")

    name = _optional_str(entry.get("classifier"))
    if name is None:
        raise ConfigurationError("classifier entry is missing its classifier name")

    try:
        count = int(entry.get("count", 1))
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid count for classifier {name}: {exc}") from exc
    if count < 1:
        raise ConfigurationError(f"count for classifier {name} must be >= 1")

    attributes = entry.get("attributes") or {}
    if not isinstance(attributes, Mapping):
        raise ConfigurationError(f"attributes for classifier {name} must be a mapping")

    return ClassifierSettings(name=name, count=count, attributes=dict(attributes))
