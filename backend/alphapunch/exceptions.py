"""
Exception hierarchy for the AlphaPunch pipeline.

Everything raised on purpose by the pixel pipeline, the Gemini adapters
or the configuration layer derives from AlphaPunchError, so the
orchestrator can turn any of them into a displayable error message.
"""

from typing import Optional


class AlphaPunchError(Exception):
    """Base exception for all AlphaPunch errors"""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


# === Pixel pipeline ===

class DecodeError(AlphaPunchError):
    """Input image is malformed, empty or has zero width/height"""
    pass


class EncodeError(AlphaPunchError):
    """Processed buffer could not be serialized"""
    pass


# === External collaborators ===

class EditServiceError(AlphaPunchError):
    """Image edit call failed or returned no usable image"""
    pass


class AnalysisServiceError(AlphaPunchError):
    """Scene analysis failed (never surfaced to the application state)"""
    pass


class ConfigurationError(AlphaPunchError):
    """Required configuration (e.g. API key) is missing"""
    pass
