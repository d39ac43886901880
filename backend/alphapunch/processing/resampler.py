# backend/alphapunch/processing/resampler.py

import io
from typing import Optional

from PIL import Image

from ..exceptions import DecodeError, EncodeError
from ..models import Dimensions
from .buffer import PixelBuffer

OUTPUT_FORMAT = "PNG"

# Pillow filters RGBA with the same kernel on every band (premultiplied),
# the same smoothing a browser canvas applies on drawImage.
DEFAULT_FILTER = Image.Resampling.BILINEAR


def _check(buffer: PixelBuffer) -> None:
    if buffer.is_empty:
        raise DecodeError(f"Cannot resample an empty buffer ({buffer.width}x{buffer.height}).")


def needs_resize(buffer: PixelBuffer, target: Optional[Dimensions]) -> bool:
    return target is not None and target.as_tuple() != buffer.size


def resize_buffer(
    buffer: PixelBuffer,
    target: Optional[Dimensions],
    resample: Image.Resampling = DEFAULT_FILTER,
) -> PixelBuffer:
    """
    Scale a buffer to `target`.

    When target is absent or already equal to the buffer size, the
    buffer is returned as-is.
    """
    _check(buffer)
    if not needs_resize(buffer, target):
        return buffer

    img = buffer.to_image().resize(target.as_tuple(), resample=resample)
    return PixelBuffer.from_image(img)


def encode_png(buffer: PixelBuffer) -> bytes:
    """Serialize a buffer to PNG, keeping the 8-bit alpha channel."""
    _check(buffer)
    out = io.BytesIO()
    try:
        buffer.to_image().save(out, format=OUTPUT_FORMAT)
    except (OSError, ValueError, TypeError) as e:
        raise EncodeError(f"Could not encode result image: {e}", cause=e)
    return out.getvalue()


def resample(
    buffer: PixelBuffer,
    target: Optional[Dimensions] = None,
    resample: Image.Resampling = DEFAULT_FILTER,
) -> bytes:
    """Resize to the original input dimensions (when they differ) and encode to PNG."""
    return encode_png(resize_buffer(buffer, target, resample=resample))
