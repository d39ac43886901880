"""
Runtime configuration for AlphaPunch.

Values come from the environment (a `.env` file is loaded by main.py
before the first call to get_settings()).
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from .models import KeyColorPolicy


def _api_key() -> Optional[str]:
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY") or None


@dataclass
class GeminiConfig:
    """Gemini model selection and timeouts"""
    api_key: Optional[str] = field(default_factory=_api_key)
    edit_model: str = field(default_factory=lambda: os.getenv('ALPHAPUNCH_EDIT_MODEL', 'gemini-2.5-flash-image'))
    edit_model_pro: str = field(default_factory=lambda: os.getenv('ALPHAPUNCH_EDIT_MODEL_PRO', 'gemini-3-pro-image-preview'))
    analysis_model: str = field(default_factory=lambda: os.getenv('ALPHAPUNCH_ANALYSIS_MODEL', 'gemini-2.5-flash'))
    edit_timeout: float = field(default_factory=lambda: float(os.getenv('ALPHAPUNCH_EDIT_TIMEOUT', '120')))
    analysis_timeout: float = field(default_factory=lambda: float(os.getenv('ALPHAPUNCH_ANALYSIS_TIMEOUT', '20')))


@dataclass
class KeyingConfig:
    """Chroma-key classification thresholds"""
    min_green_value: int = field(default_factory=lambda: int(os.getenv('ALPHAPUNCH_MIN_GREEN', '40')))
    dominance_margin: int = field(default_factory=lambda: int(os.getenv('ALPHAPUNCH_DOMINANCE_MARGIN', '10')))

    def to_policy(self) -> KeyColorPolicy:
        return KeyColorPolicy(
            min_green_value=self.min_green_value,
            dominance_margin=self.dominance_margin,
        )


@dataclass
class Settings:
    gemini: GeminiConfig = field(default_factory=GeminiConfig)
    keying: KeyingConfig = field(default_factory=KeyingConfig)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
