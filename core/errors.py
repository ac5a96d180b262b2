"""Error types raised by the detect-and-classify pipeline."""

from __future__ import annotations


PIPELINE_STAGES = ("capture", "detect", "crop", "log", "classify")


class ConfigurationError(ValueError):
    """Raised when pipeline settings or provider references are invalid."""


class GeometryError(ValueError):
    """Raised when a crop rectangle has no area."""


class ImageLogError(OSError):
    """Raised when a cropped image cannot be persisted."""


class UnimplementedError(NotImplementedError):
    """Raised by vision queries this service does not support."""


class PipelineCancelledError(RuntimeError):
    """Raised when an invocation is cancelled by its caller."""


class PipelineStageError(RuntimeError):
    """Failure of a single pipeline stage.

    The original collaborator exception is chained as ``__cause__``.
    """

    def __init__(self, stage: str, message: str) -> None:
        if stage not in PIPELINE_STAGES:
            raise ValueError(f"Unknown pipeline stage: {stage}")
        super().__init__(f"[{stage}] {message}")
        self.stage = stage
