# backend/alphapunch/agents/analysis_agent.py

import asyncio
import logging
from typing import Optional

from ..config import GeminiConfig, get_settings
from ..exceptions import AnalysisServiceError
from ..gemini_client import describe_image

log = logging.getLogger("alphapunch")

ANALYSIS_PROMPT = """
Describe this image in one or two short sentences for a compositor.
Mention the kind of scene, whether there are windows and what is seen through them,
and the main foreground subject. Plain text only, no lists or markdown.
"""


class GeminiAnalysisService:
    """Best-effort scene description; every failure becomes AnalysisServiceError."""

    def __init__(self, config: Optional[GeminiConfig] = None):
        self.config = config or get_settings().gemini

    async def analyze(self, image: bytes, mime_type: str) -> str:
        log.info(f"🔎 Scene analysis → {self.config.analysis_model}")
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(
                    describe_image,
                    image,
                    mime_type,
                    ANALYSIS_PROMPT.strip(),
                    self.config.analysis_model,
                ),
                timeout=self.config.analysis_timeout,
            )
        except AnalysisServiceError:
            raise
        except asyncio.TimeoutError as e:
            raise AnalysisServiceError("Scene analysis timed out.", cause=e)
        except Exception as e:
            raise AnalysisServiceError(f"Scene analysis failed: {e}", cause=e)
