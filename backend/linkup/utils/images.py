"""Storage of images attached to posts.

Uploaded bytes are checked with Pillow before anything touches disk; files
are written under the configured upload directory with a random name and
served back by the application at `/uploads/<name>`.
"""

from __future__ import annotations

import io
import logging
import uuid
from pathlib import Path

from PIL import Image

PUBLIC_PREFIX = "/uploads/"

_EXTENSIONS = {
    "PNG": ".png",
    "JPEG": ".jpg",
    "GIF": ".gif",
    "WEBP": ".webp",
}
_LOGGER = logging.getLogger("linkup.uploads")


class UnsupportedImageError(ValueError):
    """Raised when an upload is not an image format we accept."""


def validate_filename(filename: str) -> None:
    if not filename or len(filename) > 200:
        raise ValueError("invalid filename")
    if "/" in filename or "\\" in filename:
        raise ValueError("invalid filename path")


def sniff_image_format(payload: bytes) -> str:
    """Return the Pillow format name of `payload` or raise `UnsupportedImageError`."""
    try:
        with Image.open(io.BytesIO(payload)) as img:
            fmt = img.format
            img.verify()
    except Exception as exc:
        raise UnsupportedImageError("unsupported file content; expected an image") from exc
    if fmt not in _EXTENSIONS:
        raise UnsupportedImageError(f"unsupported image format: {fmt}")
    return fmt


def save_image(payload: bytes, filename: str, upload_dir: Path) -> str:
    """Verify and store an uploaded image, returning its public path."""
    validate_filename(filename)
    fmt = sniff_image_format(payload)
    upload_dir.mkdir(parents=True, exist_ok=True)
    name = f"{uuid.uuid4().hex}{_EXTENSIONS[fmt]}"
    (upload_dir / name).write_bytes(payload)
    _LOGGER.info("image_saved name=%s bytes=%d", name, len(payload))
    return PUBLIC_PREFIX + name


def remove_image(public_path: str, upload_dir: Path) -> bool:
    """Delete a previously stored image. Returns True when a file was removed."""
    if not public_path or not public_path.startswith(PUBLIC_PREFIX):
        return False
    target = upload_dir / Path(public_path).name
    if not target.exists():
        return False
    target.unlink()
    return True
