# backend/alphapunch/processing/pipeline.py

from typing import NamedTuple, Optional

from ..logging_config import Timer, log
from ..models import Dimensions, KeyColorPolicy
from .buffer import decode_image
from .chroma_key import DEFAULT_POLICY, extract, key_coverage
from .resampler import needs_resize, resample


class ProcessedImage(NamedTuple):
    png: bytes
    key_coverage: float
    elapsed_ms: float


def run_pipeline(
    image_bytes: bytes,
    target: Optional[Dimensions] = None,
    policy: KeyColorPolicy = DEFAULT_POLICY,
) -> ProcessedImage:
    """
    Post-process an edited image: key color -> alpha 0, then scale back
    to the source dimensions and encode as PNG.

    Runs in a worker thread, so it returns its figures instead of
    recording metrics. Raises DecodeError / EncodeError.
    """
    with Timer() as timer:
        buffer = decode_image(image_bytes)
        coverage = key_coverage(buffer, policy)
        keyed = extract(buffer, policy)

        if needs_resize(keyed, target):
            log.info(
                "Resizing result %sx%s -> %sx%s",
                keyed.width, keyed.height, target.width, target.height,
            )
        png = resample(keyed, target)

    log.info(f"Chroma key removed {coverage:.1%} of pixels")
    return ProcessedImage(png, coverage, timer.elapsed_ms)


def process_generated_image(
    image_bytes: bytes,
    target: Optional[Dimensions] = None,
    policy: KeyColorPolicy = DEFAULT_POLICY,
) -> bytes:
    return run_pipeline(image_bytes, target, policy).png
