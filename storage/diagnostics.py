"""Diagnostics routines for the crop image store."""

from __future__ import annotations

from pathlib import Path

from diagnostics.models import DiagnosticResult, DiagnosticStatus


def probe(base_dir: Path | None = None) -> DiagnosticResult:
    """Run a storage probe to validate the image log directory.

    Args:
        base_dir: Optional image directory for offline testing.

    Returns:
        Diagnostic result indicating storage readiness.
    """

    name = "storage"
    try:
        if base_dir is None:
            from config import ConfigController

            vision_config = ConfigController.get_instance().get_vision_config()
            if not vision_config.get("log_image", False):
                return DiagnosticResult(
                    name=name,
                    status=DiagnosticStatus.PASS,
                    details="Image logging disabled",
                )
            image_dir = Path(vision_config.get("image_path") or "./var/crops").expanduser()
        else:
            image_dir = base_dir

        image_dir.mkdir(parents=True, exist_ok=True)
        sentinel = image_dir / "diagnostics_probe.txt"
        sentinel.write_text("ok", encoding="utf-8")
        sentinel.unlink(missing_ok=True)

        details = f"Image directory writable at {image_dir}"
        return DiagnosticResult(name=name, status=DiagnosticStatus.PASS, details=details)
    except OSError as exc:
        details = f"Filesystem access failed: {exc}"
        return DiagnosticResult(name=name, status=DiagnosticStatus.FAIL, details=details)
