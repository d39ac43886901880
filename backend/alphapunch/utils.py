# backend/alphapunch/utils.py
import base64
from typing import Optional


def to_data_url(image_bytes: Optional[bytes], mime_type: str = "image/png") -> Optional[str]:
    """
    Returns a base64 data URL (string) for easy embedding in a frontend.
    """
    if image_bytes is None:
        return None
    b64 = base64.b64encode(image_bytes).decode("utf-8")
    return f"data:{mime_type};base64,{b64}"
