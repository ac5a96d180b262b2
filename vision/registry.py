"""Named provider lookup for detectors, classifiers and frame sources."""

from __future__ import annotations

from collections.abc import Mapping
import importlib
from typing import Any, Callable

from core.errors import ConfigurationError
from core.logging import logger
from vision.providers import Classifier, Detector, FrameSource


PROVIDER_KINDS = ("detector", "classifier", "camera")
BUILTIN_FACTORIES = {
    "picamera2": "hardware.camera_controller:PicameraFrameSource",
}


def load_factory(path: str) -> Callable[..., Any]:
    """Resolve a ``"package.module:attribute"`` path to a callable."""

    path = BUILTIN_FACTORIES.get(path, path)
    module_name, sep, attribute = path.partition(":")
    if not sep or not module_name or not attribute:
        raise ConfigurationError(f"Provider factory must look like 'module:callable', got {path!r}")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Unable to import provider module {module_name!r}: {exc}") from exc

    factory: Any = module
    for part in attribute.split("."):
        factory = getattr(factory, part, None)
        if factory is None:
            raise ConfigurationError(f"Provider factory {path!r} not found")
    if not callable(factory):
        raise ConfigurationError(f"Provider factory {path!r} is not callable")
    return factory


class ProviderRegistry:
    """Registry of collaborators addressed by configured reference names."""

    def __init__(self) -> None:
        self._detectors: dict[str, Detector] = {}
        self._classifiers: dict[str, Classifier] = {}
        self._frame_sources: dict[str, FrameSource] = {}

    @classmethod
    def from_config(cls, providers: Mapping[str, Any] | None) -> "ProviderRegistry":
        """Instantiate providers declared in the ``providers`` config section.

        Each entry maps a reference name to ``kind``, ``factory`` and optional
        ``attributes`` passed to the factory as keyword arguments.
        """

        registry = cls()
        for name, entry in (providers or {}).items():
            if not isinstance(entry, Mapping):
                raise ConfigurationError(f"Provider {name!r} must be a mapping")
            kind = str(entry.get("kind", "")).strip().lower()
            if kind not in PROVIDER_KINDS:
                raise ConfigurationError(
                    f"Provider {name!r} has unknown kind {kind!r}; expected one of {PROVIDER_KINDS}"
                )
            factory_path = entry.get("factory")
            if not factory_path:
                raise ConfigurationError(f"Provider {name!r} is missing its factory")
            attributes = entry.get("attributes") or {}
            if not isinstance(attributes, Mapping):
                raise ConfigurationError(f"attributes for provider {name!r} must be a mapping")

            factory = load_factory(str(factory_path))
            try:
                provider = factory(**attributes)
            except Exception as exc:
                raise ConfigurationError(f"Unable to build provider {name!r}: {exc}") from exc

            registry.register(kind, str(name), provider)
            logger.info("[CONFIG] Loaded %s provider %s from %s", kind, name, factory_path)
        return registry

    def register(self, kind: str, name: str, provider: Any) -> None:
        if kind == "detector":
            self.register_detector(name, provider)
        elif kind == "classifier":
            self.register_classifier(name, provider)
        elif kind == "camera":
            self.register_frame_source(name, provider)
        else:
            raise ConfigurationError(f"Unknown provider kind {kind!r}")

    def register_detector(self, name: str, detector: Detector) -> None:
        if not isinstance(detector, Detector):
            raise ConfigurationError(f"Provider {name!r} does not implement detections()")
        self._detectors[name] = detector

    def register_classifier(self, name: str, classifier: Classifier) -> None:
        if not isinstance(classifier, Classifier):
            raise ConfigurationError(f"Provider {name!r} does not implement classifications()")
        self._classifiers[name] = classifier

    def register_frame_source(self, name: str, source: FrameSource) -> None:
        if not isinstance(source, FrameSource):
            raise ConfigurationError(f"Provider {name!r} does not implement next_frame()")
        self._frame_sources[name] = source

    def detector(self, name: str) -> Detector:
        try:
            return self._detectors[name]
        except KeyError:
            raise ConfigurationError(f"unable to get object detector {name!r}") from None

    def classifier(self, name: str) -> Classifier:
        try:
            return self._classifiers[name]
        except KeyError:
            raise ConfigurationError(f"unable to get classifier {name!r}") from None

    def frame_source(self, name: str) -> FrameSource:
        try:
            return self._frame_sources[name]
        except KeyError:
            raise ConfigurationError(f"unable to get source camera {name!r}") from None

    def names(self) -> dict[str, list[str]]:
        return {
            "detector": sorted(self._detectors),
            "classifier": sorted(self._classifiers),
            "camera": sorted(self._frame_sources),
        }

    def close(self) -> None:
        """Close every registered provider exposing ``close()``."""

        providers: list[Any] = [
            *self._frame_sources.values(),
            *self._detectors.values(),
            *self._classifiers.values(),
        ]
        for provider in providers:
            close = getattr(provider, "close", None)
            if callable(close):
                try:
                    close()
                except Exception:
                    logger.exception("[CONFIG] Failed to close provider %r", provider)
