"""Hardware frame source package."""

__all__ = ["PicameraFrameSource"]


def __getattr__(name: str):
    if name == "PicameraFrameSource":
        from hardware.camera_controller import PicameraFrameSource

        return PicameraFrameSource
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
