# backend/alphapunch/agents/edit_agent.py

import asyncio
import logging
from typing import Optional

from ..config import GeminiConfig, get_settings
from ..exceptions import AlphaPunchError, EditServiceError
from ..gemini_client import edit_image
from ..logging_config import inc_metric

log = logging.getLogger("alphapunch")


class GeminiEditService:
    """
    Edit collaborator backed by a Gemini image model.

    - Standard tier uses the flash image model, high quality the pro model.
    - The blocking SDK call runs in a worker thread so the event loop can time out.
    - No retries: a failure is reported once as EditServiceError.
    """

    def __init__(self, config: Optional[GeminiConfig] = None):
        self.config = config or get_settings().gemini

    def model_for(self, high_quality: bool) -> str:
        return self.config.edit_model_pro if high_quality else self.config.edit_model

    async def edit(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        high_quality: bool,
    ) -> bytes:
        model = self.model_for(high_quality)
        log.info(f"🎨 Edit request → {model}")
        inc_metric("gemini_edit_calls")

        try:
            return await asyncio.wait_for(
                asyncio.to_thread(edit_image, image, mime_type, prompt, model),
                timeout=self.config.edit_timeout,
            )
        except asyncio.TimeoutError as e:
            raise EditServiceError(
                f"Gemini edit timed out after {self.config.edit_timeout:.0f}s.", cause=e
            )
        except AlphaPunchError:
            raise
        except Exception as e:
            raise EditServiceError(f"Gemini edit failed: {e}", cause=e)
