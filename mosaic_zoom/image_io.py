"""Image decoding, encoding and resizing on top of Pillow."""

from __future__ import annotations

import io
from pathlib import Path

from PIL import Image, ImageOps

# Pillow format names keyed by the lower-case names used in DZI descriptors
_PIL_FORMATS = {"jpeg": "JPEG", "jpg": "JPEG", "png": "PNG", "webp": "WEBP"}


def compute_target_size(
    original_width: int,
    original_height: int,
    max_side: int,
) -> tuple[int, int]:
    """Compute downscaled (w, h) preserving aspect ratio.

    The longest side becomes *max_side*; the other is scaled
    proportionally (rounded to the nearest integer, minimum 1).
    """
    if original_width >= original_height:
        w = max_side
        h = max(1, round(original_height * max_side / original_width))
    else:
        h = max_side
        w = max(1, round(original_width * max_side / original_height))
    return w, h


def decode_image(data: bytes) -> Image.Image:
    """Decode *data* into an EXIF-oriented RGB image.

    Raises:
        OSError: The bytes are not a readable image.
    """
    with Image.open(io.BytesIO(data)) as img:
        img.load()
        return ImageOps.exif_transpose(img).convert("RGB")


def load_image(path: str | Path) -> Image.Image:
    return decode_image(Path(path).read_bytes())


def encode_image(img: Image.Image, fmt: str = "jpeg", quality: int = 90) -> bytes:
    """Encode *img* in *fmt* ("jpeg", "png", "webp")."""
    pil_format = _PIL_FORMATS.get(fmt.lower())
    if pil_format is None:
        msg = f"Unsupported image format '{fmt}'. Available: {', '.join(_PIL_FORMATS)}"
        raise ValueError(msg)
    buf = io.BytesIO()
    if pil_format == "PNG":
        img.save(buf, format=pil_format)
    else:
        img.save(buf, format=pil_format, quality=quality)
    return buf.getvalue()


def image_dimensions(data: bytes) -> tuple[int, int]:
    """(width, height) of encoded image *data* after EXIF orientation."""
    with Image.open(io.BytesIO(data)) as img:
        w, h = img.size
        # orientations 5-8 swap the axes
        if img.getexif().get(0x0112, 1) in (5, 6, 7, 8):
            w, h = h, w
    return w, h


def fit_within(img: Image.Image, max_side: int | None) -> Image.Image:
    """Downscale *img* so its longest side is at most *max_side*."""
    if max_side is None or max(img.size) <= max_side:
        return img
    w, h = compute_target_size(img.width, img.height, max_side)
    return img.resize((w, h), Image.LANCZOS)


def resize_cover(img: Image.Image, width: int, height: int) -> Image.Image:
    """Scale and centre-crop *img* to exactly ``width x height``."""
    return ImageOps.fit(img, (max(1, width), max(1, height)), Image.LANCZOS)
