"""Crop rectangle geometry and image cropping."""

from __future__ import annotations

from PIL import Image

from core.errors import GeometryError
from vision.detections import BoundingBox, Detection


def padded_rectangle(detection: Detection, padding: int) -> BoundingBox:
    """Return the crop rectangle for a detection grown by ``padding`` pixels."""

    return detection.bounding_box.padded(int(padding))


def crop_image(image: Image.Image, rectangle: BoundingBox) -> Image.Image:
    """Copy ``rectangle`` out of ``image`` into a new image.

    The result always has the rectangle's size. Parts of the rectangle that
    fall outside the source are left at zero (black, or fully transparent for
    images with an alpha band). Palette images are expanded to RGB, or RGBA
    when they carry transparency. The source image is not modified.

    Raises:
        GeometryError: if the rectangle is empty or inverted.
    """

    if rectangle.is_empty():
        raise GeometryError(
            f"Crop rectangle {rectangle.as_box()} has no area "
            f"({rectangle.width}x{rectangle.height})"
        )

    if image.mode in ("P", "PA"):
        # Palette indices are meaningless without the palette.
        has_alpha = image.mode == "PA" or "transparency" in image.info
        image = image.convert("RGBA" if has_alpha else "RGB")

    cropped = Image.new(image.mode, (rectangle.width, rectangle.height))
    source_bounds = BoundingBox(0, 0, image.width, image.height)
    visible = rectangle.intersect(source_bounds)
    if visible.is_empty():
        return cropped

    region = image.crop(visible.as_box())
    offset = (visible.x_min - rectangle.x_min, visible.y_min - rectangle.y_min)
    cropped.paste(region, offset)
    return cropped
