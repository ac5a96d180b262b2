"""Diagnostics routines for the core subsystem."""

from __future__ import annotations

import importlib.util
import logging

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe() -> DiagnosticResult:
    """Check that the pipeline logger is configured.

    Returns:
        PASS with the logger name, level and handler backend, or FAIL when the
        logger has no handlers.
    """

    name = "core"
    from core import logging as core_logging

    logger = core_logging.logger
    if logger is None or not logger.handlers:
        return DiagnosticResult(
            name=name,
            status=DiagnosticStatus.FAIL,
            details="Pipeline logger has no handlers",
        )
    backend = "rich" if importlib.util.find_spec("rich") is not None else "stream"
    level = logging.getLevelName(logger.getEffectiveLevel())
    return DiagnosticResult(
        name=name,
        status=DiagnosticStatus.PASS,
        details=f"Logger '{logger.name}' at {level} ({backend} handler)",
    )
