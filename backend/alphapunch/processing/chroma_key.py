# backend/alphapunch/processing/chroma_key.py

import numpy as np

from ..models import KeyColorPolicy
from .buffer import PixelBuffer

DEFAULT_POLICY = KeyColorPolicy()


def key_mask(buffer: PixelBuffer, policy: KeyColorPolicy = DEFAULT_POLICY) -> np.ndarray:
    """
    Boolean (height, width) mask of key-colored pixels.

    A pixel is key when green beats both red and blue by more than the
    dominance margin and is itself above the minimum green value.
    """
    # int16 so that r + margin cannot wrap at 255
    rgb = buffer.data[..., :3].astype(np.int16)
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    margin = policy.dominance_margin

    return (g > r + margin) & (g > b + margin) & (g > policy.min_green_value)


def extract(buffer: PixelBuffer, policy: KeyColorPolicy = DEFAULT_POLICY) -> PixelBuffer:
    """
    Make key-colored pixels fully transparent.

    Only the alpha of key pixels changes; their RGB and every other
    pixel are left untouched. Returns a new buffer.
    """
    out = buffer.copy()
    if out.is_empty:
        return out

    out.data[key_mask(buffer, policy), 3] = 0
    return out


def key_coverage(buffer: PixelBuffer, policy: KeyColorPolicy = DEFAULT_POLICY) -> float:
    """Fraction of pixels classified as key (0.0 for an empty buffer)."""
    if buffer.is_empty:
        return 0.0
    return float(key_mask(buffer, policy).mean())
