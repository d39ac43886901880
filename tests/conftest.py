"""
Pytest configuration and shared fixtures for AlphaPunch tests.

Provides image factories and in-memory stand-ins for the Gemini
edit and analysis collaborators.
"""

import asyncio
import io
import struct
import zlib

import pytest
from PIL import Image

from backend.alphapunch.exceptions import AnalysisServiceError, EditServiceError
from backend.alphapunch.logging_config import reset_metrics

KEY_GREEN = (0, 255, 0, 255)
WHITE = (255, 255, 255, 255)


def make_png(width, height, color=(200, 200, 200, 255), fmt="PNG"):
    """Encode a solid-color image."""
    mode = "RGBA" if fmt == "PNG" else "RGB"
    img = Image.new(mode, (width, height), color[: len(mode)])
    out = io.BytesIO()
    img.save(out, format=fmt)
    return out.getvalue()


def make_keyed_png(width, height):
    """Left half key green, right half gray."""
    img = Image.new("RGBA", (width, height), (120, 120, 120, 255))
    for y in range(height):
        for x in range(width // 2):
            img.putpixel((x, y), KEY_GREEN)
    out = io.BytesIO()
    img.save(out, format="PNG")
    return out.getvalue()


def make_oversized_png(width=40000, height=40000):
    """A tiny PNG whose header declares a huge canvas."""

    def chunk(kind, payload):
        crc = zlib.crc32(kind + payload) & 0xFFFFFFFF
        return struct.pack(">I", len(payload)) + kind + payload + struct.pack(">I", crc)

    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + chunk(b"IHDR", header)
        + chunk(b"IDAT", zlib.compress(b"\x00" * 16))
        + chunk(b"IEND", b"")
    )


def open_png(data):
    img = Image.open(io.BytesIO(data))
    img.load()
    return img


class FakeEditService:
    """
    Records calls and returns `result` (or raises `error`).

    With `hold=True` every call waits until release() is called, which
    lets a test change the source while an edit is in flight.
    """

    def __init__(self, result=None, error=None, hold=False):
        self.result = result if result is not None else make_keyed_png(8, 4)
        self.error = error
        self.hold = hold
        self.calls = []
        self._gate = asyncio.Event()

    def release(self):
        self._gate.set()

    def hold_again(self):
        """Make the next call wait for another release()."""
        self._gate.clear()

    async def edit(self, image, mime_type, prompt, high_quality):
        self.calls.append((image, mime_type, prompt, high_quality))
        if self.hold:
            await self._gate.wait()
        if self.error is not None:
            raise self.error
        return self.result


class FakeAnalysisService:
    def __init__(self, text="A living room with two large windows.", error=None):
        self.text = text
        self.error = error
        self.calls = 0

    async def analyze(self, image, mime_type):
        self.calls += 1
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return self.text


@pytest.fixture(autouse=True)
def clean_metrics():
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def sample_rgba_colors():
    """
    Provide a list of sample RGBA color tuples for testing.
    """
    return [
        (255, 0, 0, 255),      # Red
        (0, 255, 0, 255),      # Green
        (0, 0, 255, 255),      # Blue
        (255, 255, 255, 255),  # White
        (0, 0, 0, 255),        # Black
        (128, 128, 128, 255),  # Gray
    ]


@pytest.fixture
def source_png():
    return make_png(16, 8)


@pytest.fixture
def edit_service():
    return FakeEditService()


@pytest.fixture
def failing_edit_service():
    return FakeEditService(error=EditServiceError("Quota exceeded"))


@pytest.fixture
def analysis_service():
    return FakeAnalysisService()


@pytest.fixture
def failing_analysis_service():
    return FakeAnalysisService(error=AnalysisServiceError("Scene analysis failed"))
