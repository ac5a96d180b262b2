"""Storage package utilities."""

__all__ = ["ImageLogger", "probe"]


def __getattr__(name: str):
    if name == "ImageLogger":
        from storage.image_log import ImageLogger

        return ImageLogger
    if name == "probe":
        from storage.diagnostics import probe

        return probe
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
