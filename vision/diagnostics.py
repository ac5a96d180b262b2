"""Diagnostics routines for the vision pipeline configuration."""

from __future__ import annotations

from typing import Any

from core.errors import ConfigurationError
from diagnostics.models import DiagnosticResult, DiagnosticStatus
from vision.registry import load_factory
from vision.settings import PipelineSettings


def probe(config: dict[str, Any] | None = None) -> DiagnosticResult:
    """Validate pipeline settings and provider declarations without building them.

    Args:
        config: Optional full configuration mapping for offline testing.

    Returns:
        Diagnostic result indicating pipeline readiness.
    """

    name = "vision"
    if config is None:
        from config import ConfigController

        config = ConfigController.get_instance().get_config()

    try:
        settings = PipelineSettings.from_config(config.get("vision"))
    except ConfigurationError as exc:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Invalid vision settings: {exc}",
        )

    providers = config.get("providers") or {}
    missing = [ref for ref in settings.dependencies() if ref not in providers]
    unloadable: list[str] = []
    for ref, entry in providers.items():
        if ref not in settings.dependencies():
            continue
        try:
            load_factory(str((entry or {}).get("factory", "")))
        except ConfigurationError:
            unloadable.append(ref)

    if unloadable:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details=f"Provider factories not importable: {', '.join(sorted(unloadable))}",
        )
    if missing:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.WARN,
            details=f"Providers must be registered at runtime: {', '.join(missing)}",
        )
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Pipeline ready ({len(settings.classifiers)} classifier(s))",
    )
