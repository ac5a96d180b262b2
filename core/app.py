"""Application runtime entry points and lifecycle helpers."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any

from PIL import Image

from config import ConfigController
from core.logging import enable_file_logging, log_classifications, set_level
from vision.detections import Classification
from vision.pipeline import DetectClassifyService
from vision.registry import ProviderRegistry
from vision.settings import PipelineSettings


LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AppConfig:
    """Configuration for one command-line run.

    Attributes:
        image_path: Image file to classify, if any.
        use_camera: Classify a frame from the configured camera instead.
        log_level: Optional override of the configured logging level.
    """

    image_path: Path | None = None
    use_camera: bool = False
    log_level: str | None = None


def build_service(
    config: dict[str, Any],
    registry: ProviderRegistry | None = None,
) -> DetectClassifyService:
    """Create a configured service from a loaded configuration mapping.

    Providers declared under ``providers`` are instantiated unless an explicit
    registry is given.
    """

    settings = PipelineSettings.from_config(config.get("vision"))
    if registry is None:
        registry = ProviderRegistry.from_config(config.get("providers"))
    return DetectClassifyService.from_settings(settings, registry)


def configure_runtime(config: dict[str, Any], log_level: str | None = None) -> None:
    """Apply logging settings from configuration."""

    set_level(log_level or config.get("logging_level", "INFO"))
    if config.get("file_logging_enabled", False):
        enable_file_logging(Path(config.get("log_file", "./log/detect_classify.log")))


def run(app_config: AppConfig, registry: ProviderRegistry | None = None) -> list[Classification]:
    """Run the pipeline once and return its ranked classifications.

    Args:
        app_config: What to classify.
        registry: Optional pre-built provider registry.

    Returns:
        Ranked classifications.
    """

    config = ConfigController.get_instance().get_config()
    configure_runtime(config, app_config.log_level)

    owns_registry = registry is None
    if registry is None:
        registry = ProviderRegistry.from_config(config.get("providers"))

    try:
        service = build_service(config, registry)
        try:
            if app_config.use_camera:
                LOGGER.info("Classifying frame from camera %s", service.snapshot().settings.camera)
                results = service.classifications_from_camera()
            elif app_config.image_path is not None:
                LOGGER.info("Classifying image %s", app_config.image_path)
                with Image.open(app_config.image_path) as image:
                    image.load()
                    results = service.classifications(image)
            else:
                raise ValueError("either an image path or the camera must be selected")
        finally:
            service.close()
    finally:
        if owns_registry:
            registry.close()

    log_classifications(results)
    return results
