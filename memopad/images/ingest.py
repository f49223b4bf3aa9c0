"""
Decode pasted or dropped image data into a normalized, size-bounded data URL.
"""

import base64
import io
import logging
import re
from dataclasses import dataclass, field
from typing import Optional

from PIL import Image, UnidentifiedImageError

from memopad.core.config import EditorConfig

logger = logging.getLogger(__name__)

SOURCE_PASTE = 'paste'
SOURCE_DROP = 'drop'
SOURCES = (SOURCE_PASTE, SOURCE_DROP)

GIF_MIME = 'image/gif'
JPEG_MIME_RE = re.compile(r'jpe?g', re.IGNORECASE)


class ImageError(ValueError):
    """An image could not be accepted. message is safe to show to the user."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ImageTooLargeError(ImageError):
    def __init__(self, size: int, limit: int, source: str):
        super().__init__(
            f"Image is too large ({size / 1024 / 1024:.2f} MB). "
            f"Max {limit / 1024 / 1024:.0f} MB for {source}."
        )
        self.size = size
        self.limit = limit
        self.source = source


class UnsupportedImageError(ImageError):
    pass


class ImageDecodeError(ImageError):
    pass


@dataclass
class FileItem:
    """One file-like entry from a clipboard or drop payload."""
    type: str
    data: bytes = field(repr=False)
    name: str = ''
    size: Optional[int] = None

    def __post_init__(self):
        if self.size is None:
            self.size = len(self.data)

    @property
    def is_image(self) -> bool:
        return (self.type or '').lower().startswith('image/')


@dataclass(frozen=True)
class NormalizedImage:
    data_url: str = field(repr=False)
    mime: str
    width: int
    height: int


def size_limit_for(source: str, config: EditorConfig) -> int:
    if source == SOURCE_PASTE:
        return config.paste_size_limit
    if source == SOURCE_DROP:
        return config.drop_size_limit
    raise ValueError(f"Unknown image source: {source!r}")


def check_size(item: FileItem, source: str, config: EditorConfig) -> None:
    """Reject an item whose original size is over the limit for its source."""
    limit = size_limit_for(source, config)
    if item.size > limit:
        logger.warning(f"Rejected {source} image '{item.name}': {item.size} bytes > {limit}")
        raise ImageTooLargeError(item.size, limit, source)


def to_data_url(data: bytes, mime: str) -> str:
    encoded = base64.b64encode(data).decode('ascii')
    return f"data:{mime};base64,{encoded}"


def scaled_size(width: int, height: int, max_dimension: int):
    """Uniform downscale so neither side exceeds max_dimension. Never upscales."""
    scale = min(1.0, max_dimension / max(width, height))
    return max(1, round(width * scale)), max(1, round(height * scale))


def _read_gif_size(data: bytes):
    try:
        with Image.open(io.BytesIO(data)) as im:
            return im.size
    except Exception as e:
        logger.debug(f"Could not read GIF dimensions: {e}")
        return 0, 0


def normalize_image(item: FileItem, config: EditorConfig) -> NormalizedImage:
    """
    Re-encode an image for embedding.

    - GIF: passed through byte-for-byte so animation survives
    - JPEG: downscaled, re-encoded as JPEG at the configured quality
    - Everything else: downscaled, re-encoded as PNG (lossless)
    """
    mime = (item.type or '').lower()

    if mime == GIF_MIME:
        width, height = _read_gif_size(item.data)
        return NormalizedImage(to_data_url(item.data, GIF_MIME), GIF_MIME, width, height)

    try:
        with Image.open(io.BytesIO(item.data)) as im:
            im.load()
            width, height = scaled_size(im.width, im.height, config.max_image_dimension)

            is_jpeg = bool(JPEG_MIME_RE.search(mime))
            out_mime = 'image/jpeg' if is_jpeg else 'image/png'

            frame = im
            if is_jpeg and frame.mode not in ('RGB', 'L'):
                frame = frame.convert('RGB')
            elif not is_jpeg and frame.mode not in ('RGB', 'RGBA', 'L', 'LA', '1', 'P'):
                frame = frame.convert('RGBA')

            if (width, height) != frame.size:
                frame = frame.resize((width, height), Image.Resampling.LANCZOS)

            buffer = io.BytesIO()
            if is_jpeg:
                frame.save(buffer, format='JPEG', quality=config.jpeg_quality)
            else:
                frame.save(buffer, format='PNG')
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        logger.error(f"Failed to decode image '{item.name}' ({mime}): {e}")
        raise ImageDecodeError("Image could not be processed.") from e

    logger.info(f"Normalized image '{item.name}': {mime} -> {out_mime} {width}x{height}")
    return NormalizedImage(to_data_url(buffer.getvalue(), out_mime), out_mime, width, height)


def ingest_image(item: FileItem, source: str, config: EditorConfig) -> NormalizedImage:
    """Apply the size policy for the source, then normalize the image."""
    check_size(item, source, config)
    if not item.is_image:
        raise UnsupportedImageError(f"Not an image: {item.type or 'unknown type'}")
    return normalize_image(item, config)
