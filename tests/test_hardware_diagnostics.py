"""Tests for hardware diagnostics."""

from __future__ import annotations

from diagnostics.models import DiagnosticStatus
from hardware.diagnostics import HardwareProbeConfig, probe


def test_hardware_probe_warns_on_missing_camera() -> None:
    """Hardware probe should warn when only the camera stack is missing."""

    result = probe(
        config=HardwareProbeConfig(require_camera=False),
        available_modules={"PIL", "numpy"},
    )
    assert result.status is DiagnosticStatus.WARN
    assert "picamera2" in result.details


def test_hardware_probe_fails_when_camera_required() -> None:
    """Hardware probe should fail when the camera is required but missing."""

    result = probe(
        config=HardwareProbeConfig(require_camera=True),
        available_modules={"PIL", "numpy"},
    )
    assert result.status is DiagnosticStatus.FAIL


def test_hardware_probe_fails_without_pillow() -> None:
    result = probe(available_modules={"numpy", "picamera2"})
    assert result.status is DiagnosticStatus.FAIL
    assert "PIL" in result.details


def test_hardware_probe_passes_with_all_modules() -> None:
    result = probe(available_modules={"PIL", "numpy", "picamera2"})
    assert result.status is DiagnosticStatus.PASS
