# backend/alphapunch/processing/buffer.py

import io
from dataclasses import dataclass
from typing import List, Sequence, Tuple

import numpy as np
from PIL import Image, ImageOps, UnidentifiedImageError

from ..exceptions import DecodeError
from ..models import Dimensions

RgbaColor = Tuple[int, int, int, int]


@dataclass
class PixelBuffer:
    """
    Decoded RGBA image: a (height, width, 4) uint8 array.

    The flat byte length is always 4 * width * height.
    """

    width: int
    height: int
    data: np.ndarray

    def __post_init__(self):
        if self.width < 0 or self.height < 0:
            raise ValueError(f"Negative buffer size: {self.width}x{self.height}")
        if self.data.dtype != np.uint8:
            self.data = np.clip(self.data, 0, 255).astype(np.uint8)
        expected = (self.height, self.width, 4)
        if self.data.shape != expected:
            raise ValueError(f"Buffer shape {self.data.shape} does not match {expected}")

    @classmethod
    def from_pixels(cls, width: int, height: int, pixels: Sequence[Sequence[int]]) -> "PixelBuffer":
        """Build a buffer from row-major (r, g, b, a) tuples, clamping each channel to 0..255."""
        if len(pixels) != width * height:
            raise ValueError(f"Expected {width * height} pixels, got {len(pixels)}")
        arr = np.array(pixels, dtype=np.int64).reshape((height, width, 4))
        return cls(width, height, np.clip(arr, 0, 255).astype(np.uint8))

    @classmethod
    def from_image(cls, img: Image.Image) -> "PixelBuffer":
        rgba = img.convert("RGBA")
        w, h = rgba.size
        return cls(w, h, np.array(rgba, dtype=np.uint8).reshape((h, w, 4)))

    @property
    def size(self) -> Tuple[int, int]:
        return (self.width, self.height)

    @property
    def is_empty(self) -> bool:
        return self.width == 0 or self.height == 0 or self.data.size == 0

    def to_image(self) -> Image.Image:
        return Image.fromarray(np.ascontiguousarray(self.data))

    def pixels(self) -> List[RgbaColor]:
        return [tuple(int(c) for c in px) for px in self.data.reshape(-1, 4)]

    def tobytes(self) -> bytes:
        return self.data.tobytes()

    def copy(self) -> "PixelBuffer":
        return PixelBuffer(self.width, self.height, self.data.copy())


def _open(image_bytes: bytes) -> Image.Image:
    if not image_bytes:
        raise DecodeError("Image data is empty.")
    try:
        img = Image.open(io.BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
        raise DecodeError(f"Could not decode image: {e}", cause=e)
    # Browsers display photos upright, so the target size must match that too.
    return ImageOps.exif_transpose(img)


def decode_image(image_bytes: bytes) -> PixelBuffer:
    """Decode encoded image bytes into an RGBA PixelBuffer."""
    buffer = PixelBuffer.from_image(_open(image_bytes))
    if buffer.is_empty:
        raise DecodeError("Decoded image has zero width or height.")
    return buffer


def read_dimensions(image_bytes: bytes) -> Dimensions:
    """Native (width, height) of an encoded image, as it would be displayed."""
    img = _open(image_bytes)
    w, h = img.size
    if w <= 0 or h <= 0:
        raise DecodeError("Decoded image has zero width or height.")
    return Dimensions(width=w, height=h)
