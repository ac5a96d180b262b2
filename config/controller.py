"""Configuration controller for YAML-based settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
import threading
from typing import Any

import yaml

from core.logging import logger


VISION_KEYS = (
    "camera",
    "detector",
    "detector_confidence",
    "max_detections",
    "detector_labels",
    "padding",
    "classifiers",
    "classifier1",
    "classifier2",
    "max_classifications",
    "log_image",
    "image_path",
)


@dataclass(frozen=True)
class ConfigPaths:
    """Filesystem paths for configuration files."""

    config_dir: Path
    config_file: Path
    override_file: Path


class ConfigController:
    """Singleton controller for loading and updating configuration."""

    _instance: "ConfigController | None" = None

    def __init__(self, config_file: str = "default.yaml", config_dir: str | Path = "config") -> None:
        if ConfigController._instance is not None:
            raise RuntimeError("You cannot create another ConfigController class")

        config_dir = Path(config_dir).expanduser()
        self.paths = ConfigPaths(
            config_dir=config_dir,
            config_file=config_dir / config_file,
            override_file=config_dir / "override.yaml",
        )
        self._lock = threading.RLock()
        self.config: dict[str, Any] = {}
        self.load_config()
        ConfigController._instance = self

    @classmethod
    def get_instance(cls, **kwargs: Any) -> "ConfigController":
        """Return the singleton instance of the controller.

        Keyword arguments are only used when the instance is first created.
        """

        if cls._instance is None:
            cls._instance = cls(**kwargs)
        return cls._instance

    def load_config(self) -> None:
        """Load configuration from default and override YAML files."""

        with self.paths.config_file.open("r", encoding="utf-8") as file:
            config = yaml.safe_load(file) or {}

        if self.paths.override_file.exists():
            with self.paths.override_file.open("r", encoding="utf-8") as file:
                override_config = yaml.safe_load(file) or {}
            if override_config:
                config = self._deep_merge(config, override_config)

        with self._lock:
            self.config = self._normalize_legacy_config(config)
        logger.debug("[CONFIG] Loaded configuration from %s", self.paths.config_file)

    def save_config(self, config: dict[str, Any]) -> None:
        """Persist configuration to override.yaml, archiving previous overrides."""

        if self.paths.override_file.exists():
            archive_index = 1
            archive_file = self._archive_path(archive_index)
            while archive_file.exists():
                archive_index += 1
                archive_file = self._archive_path(archive_index)
            self.paths.override_file.rename(archive_file)

        with self.paths.override_file.open("w", encoding="utf-8") as file:
            yaml.safe_dump(config, file)

    def get_config(self) -> dict[str, Any]:
        """Return the currently loaded configuration."""

        with self._lock:
            return dict(self.config)

    def get_vision_config(self) -> dict[str, Any]:
        """Return the ``vision`` pipeline section."""

        with self._lock:
            return dict(self.config.get("vision") or {})

    def set_config(self, config: dict[str, Any]) -> None:
        """Set and persist configuration values."""

        with self._lock:
            self.config = self._normalize_legacy_config(dict(config))
        self.save_config(dict(config))

    def _archive_path(self, index: int) -> Path:
        """Return the archive path for a given override index."""

        filename = f"override_{index:04d}.yaml"
        return self.paths.config_dir / filename

    def _deep_merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Deep merge dictionaries, overriding base values with override values."""

        merged = dict(base)
        for key, value in override.items():
            if (
                key in merged
                and isinstance(merged[key], dict)
                and isinstance(value, dict)
            ):
                merged[key] = self._deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged

    def _normalize_legacy_config(self, config: dict[str, Any]) -> dict[str, Any]:
        """Normalize config while preserving backwards-compatible vision keys.

        Flat top-level pipeline keys move into the ``vision`` section, and the
        fixed ``classifier1``/``classifier2`` pair becomes a ``classifiers``
        list.
        """

        normalized = dict(config)
        vision_cfg = dict(normalized.get("vision") or {})

        for key in VISION_KEYS:
            if key in normalized:
                vision_cfg.setdefault(key, normalized.pop(key))

        classifiers = list(vision_cfg.get("classifiers") or [])
        for legacy_key in ("classifier1", "classifier2"):
            legacy_name = vision_cfg.pop(legacy_key, None)
            if not legacy_name:
                continue
            known = {
                entry.get("classifier") if isinstance(entry, dict) else entry
                for entry in classifiers
            }
            if legacy_name not in known:
                classifiers.append({"classifier": legacy_name, "count": 1})
        if classifiers:
            vision_cfg["classifiers"] = classifiers

        normalized["vision"] = vision_cfg
        normalized["providers"] = dict(normalized.get("providers") or {})
        normalized["logging_level"] = str(normalized.get("logging_level", "INFO"))
        normalized["file_logging_enabled"] = bool(normalized.get("file_logging_enabled", False))
        normalized["log_file"] = str(normalized.get("log_file", "./log/detect_classify.log"))
        return normalized
