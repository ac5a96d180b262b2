"""Picamera2 frame source for classifying camera frames."""

from __future__ import annotations

import threading
from typing import Any, Callable

from core.logging import logger


def _require_camera_deps() -> tuple[Any, Any, Any]:
    import importlib
    import importlib.util

    if importlib.util.find_spec("picamera2") is None:
        raise RuntimeError("picamera2 is required for PicameraFrameSource")
    if importlib.util.find_spec("numpy") is None:
        raise RuntimeError("numpy is required for PicameraFrameSource")
    if importlib.util.find_spec("PIL") is None:
        raise RuntimeError("Pillow is required for PicameraFrameSource")

    picamera2 = importlib.import_module("picamera2")
    numpy = importlib.import_module("numpy")
    pil_image = importlib.import_module("PIL.Image")
    return picamera2.Picamera2, numpy, pil_image


class PicameraFrameSource:
    """Frame source backed by a Picamera2 main stream.

    Each frame is taken from a capture request; the request buffer is handed
    back to the camera when the returned release callable runs.
    """

    def __init__(
        self,
        width: int = 640,
        height: int = 480,
        rotation: int = 90,
        swap_rb: bool = True,
        camera_num: int = 0,
    ) -> None:
        Picamera2, numpy, pil_image = _require_camera_deps()
        self._np = numpy
        self._pil_image = pil_image

        if rotation % 90 != 0:
            raise ValueError("rotation must be a multiple of 90 degrees")
        self._rotation_k = (rotation // 90) % 4
        self._swap_rb = swap_rb
        self._main_size = (int(width), int(height))
        self._lock = threading.Lock()
        self._closed = False

        self.picam2 = Picamera2(camera_num)
        self.camera_configuration = self.picam2.create_still_configuration(
            main={"size": self._main_size, "format": "RGB888"},
            buffer_count=2,
        )
        self.picam2.configure(self.camera_configuration)
        self.picam2.start()
        logger.info(
            "[CAMERA] Picamera2 started (size=%sx%s rotation=%s)",
            self._main_size[0],
            self._main_size[1],
            rotation,
        )

    def next_frame(self) -> tuple[Any, Callable[[], None]]:
        with self._lock:
            if self._closed:
                raise RuntimeError("camera is closed")
            request = self.picam2.capture_request()

        try:
            frame = request.make_array("main")
            if self._swap_rb:
                frame = frame[:, :, ::-1]
            if self._rotation_k:
                # rot90 turns counter-clockwise; rotation is clockwise.
                frame = self._np.rot90(frame, k=4 - self._rotation_k)
            image = self._pil_image.fromarray(self._np.ascontiguousarray(frame))
        except Exception:
            request.release()
            raise

        return image, request.release

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
        for method_name in ("stop", "close"):
            method = getattr(self.picam2, method_name, None)
            if callable(method):
                try:
                    method()
                except Exception:
                    logger.exception("[CAMERA] Failed to %s camera", method_name)
        logger.info("[CAMERA] Picamera2 closed")
