"""Image inspection helpers backed by Pillow."""

from __future__ import annotations

import base64
import mimetypes
from pathlib import Path

from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel

PNG_MAGIC = bytes([0x89, 0x50, 0x4E, 0x47, 0x0D, 0x0A, 0x1A, 0x0A])

VIEWPORT_ASPECT_RATIOS: dict[str, str] = {
    "mobile": "9:16",
    "tablet": "3:4",
    "desktop": "16:9",
    "desktop-xl": "16:9",
}


class ImageInfo(BaseModel):
    """Dimensions, format and size of an image file."""

    width: int
    height: int
    format: str
    size_bytes: int

    @property
    def aspect_ratio(self) -> float:
        """Width over height (0.0 for degenerate images)."""
        return self.width / self.height if self.height else 0.0


def read_image_info(path: Path) -> ImageInfo | None:
    """Read image header data; None when missing or not a decodable image."""
    if not path.is_file():
        return None
    try:
        with Image.open(path) as image:
            width, height = image.size
            fmt = (image.format or "").lower()
    except (UnidentifiedImageError, OSError):
        return None
    return ImageInfo(
        width=width,
        height=height,
        format=fmt,
        size_bytes=path.stat().st_size,
    )


def has_png_signature(path: Path) -> bool:
    """True when the file starts with the 8-byte PNG magic number."""
    if not path.is_file():
        return False
    with path.open("rb") as handle:
        return handle.read(len(PNG_MAGIC)) == PNG_MAGIC


def aspect_ratio_for_viewport(viewport: str) -> str:
    """Generation aspect ratio for a viewport (portrait by default)."""
    return VIEWPORT_ASPECT_RATIOS.get(viewport, "9:16")


def to_data_url(path: Path) -> str:
    """Encode an image file as a base64 data URL for request payloads."""
    mime, _ = mimetypes.guess_type(path.name)
    encoded = base64.b64encode(path.read_bytes()).decode("ascii")
    return f"data:{mime or 'image/png'};base64,{encoded}"
