"""Run subsystem probes and render their report."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sequence

from core.logging import logger as LOGGER
from diagnostics.models import DiagnosticResult, DiagnosticStatus

Probe = Callable[[], DiagnosticResult]


def format_results(results: Sequence[DiagnosticResult]) -> str:
    """Return a plain-text report with one line per probe and a summary."""

    width = max((len(result.name) for result in results), default=0)
    lines = ["Diagnostics report", "-" * 60]
    for result in results:
        lines.append(f"[{result.status.value}] {result.name.ljust(width)}  {result.details}")
    lines.append("-" * 60)
    counts = {status: 0 for status in DiagnosticStatus}
    for result in results:
        counts[result.status] += 1
    lines.append(", ".join(f"{status.value}: {count}" for status, count in counts.items()))
    return "\n".join(lines)


def run_diagnostics(probes: Iterable[Probe]) -> list[DiagnosticResult]:
    """Run every probe; a probe that raises is reported as FAIL."""

    results: list[DiagnosticResult] = []
    for probe in probes:
        name = getattr(probe, "__module__", None) or getattr(probe, "__name__", "probe")
        try:
            result = probe()
        except Exception as exc:  # noqa: BLE001 - remaining probes still run
            LOGGER.exception("[DIAGNOSTICS] Probe %s raised", name)
            result = DiagnosticResult(
                name=name,
                status=DiagnosticStatus.FAIL,
                details=f"Probe raised exception: {exc}",
            )
        LOGGER.debug("[DIAGNOSTICS] %s -> %s", result.name, result.status.value)
        results.append(result)
    return results


def exit_code(results: Iterable[DiagnosticResult]) -> int:
    """Return 1 when any probe failed, else 0. Warnings do not fail the run."""

    return 1 if any(result.failed for result in results) else 0
