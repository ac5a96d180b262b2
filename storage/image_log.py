"""Content-addressed persistence of cropped images."""

from __future__ import annotations

import hashlib
import io
from pathlib import Path
import uuid

from PIL import Image

from core.errors import ImageLogError
from core.logging import logger


JPEG_QUALITY = 90


def encode_jpeg(image: Image.Image, quality: int = JPEG_QUALITY) -> bytes:
    """Encode ``image`` as JPEG bytes, dropping any alpha band."""

    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")
    buffer = io.BytesIO()
    image.save(buffer, format="JPEG", quality=quality)
    return buffer.getvalue()


class ImageLogger:
    """Writes crops to ``<directory>/<sha256 of jpeg bytes>.jpg``."""

    def __init__(self, directory: str | Path, quality: int = JPEG_QUALITY) -> None:
        self.directory = Path(directory).expanduser()
        self.quality = quality

    def filename_for(self, payload: bytes) -> str:
        return f"{hashlib.sha256(payload).hexdigest()}.jpg"

    def log_image(self, image: Image.Image) -> Path:
        """Persist ``image`` and return its path.

        Identical pixel content maps to the same file, which is written only
        once. Concurrent writers of the same content each use their own
        temporary file, so the last rename wins with identical bytes.

        Raises:
            ImageLogError: if encoding or writing fails.
        """

        try:
            payload = encode_jpeg(image, self.quality)
        except (OSError, ValueError) as exc:
            raise ImageLogError(f"Failed to encode image: {exc}") from exc

        path = self.directory / self.filename_for(payload)
        if path.exists():
            logger.debug("[IMAGE_LOG] %s already stored", path.name)
            return path

        tmp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex}.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            tmp_path.replace(path)
        except OSError as exc:
            if tmp_path.exists():
                tmp_path.unlink()
            raise ImageLogError(f"Failed to save image to {path}: {exc}") from exc

        logger.debug("[IMAGE_LOG] Saved crop %s", path)
        return path
