# backend/alphapunch/agents/base.py

from typing import Protocol


class EditService(Protocol):
    async def edit(
        self,
        image: bytes,
        mime_type: str,
        prompt: str,
        high_quality: bool,
    ) -> bytes:
        """Return an encoded image with removed regions painted in the key color."""
        ...


class AnalysisService(Protocol):
    async def analyze(self, image: bytes, mime_type: str) -> str:
        """Return a short scene description (best effort)."""
        ...
