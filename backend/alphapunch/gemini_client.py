from functools import lru_cache
from typing import Any, Dict, List

from google import genai

from .config import get_settings
from .exceptions import AnalysisServiceError, ConfigurationError, EditServiceError


# --- Setup ---

@lru_cache(maxsize=1)
def get_client() -> genai.Client:
    """
    Create the shared Gemini client on first use.
    Raises ConfigurationError when no API key is configured.
    """
    api_key = get_settings().gemini.api_key
    if not api_key:
        raise ConfigurationError("Missing GOOGLE_API_KEY or GEMINI_API_KEY environment variable.")
    return genai.Client(api_key=api_key)


# --- Helpers ---

def _image_contents(prompt: str, image: bytes, mime_type: str) -> List[Dict[str, Any]]:
    return [
        {
            "inline_data": {
                "mime_type": mime_type,
                "data": image,
            }
        },
        {"text": prompt},
    ]


def _parts(resp) -> List[Any]:
    candidates = getattr(resp, "candidates", None) or []
    if not candidates:
        return []
    content = getattr(candidates[0], "content", None)
    return list(getattr(content, "parts", None) or [])


# --- Image edit call ---

def edit_image(image: bytes, mime_type: str, prompt: str, model: str) -> bytes:
    """
    Send the source image and edit instruction to Gemini and return the
    first image part of the reply (encoded bytes).
    """
    try:
        resp = get_client().models.generate_content(
            model=model,
            contents=_image_contents(prompt, image, mime_type),
            config={"response_modalities": ["TEXT", "IMAGE"]},
        )
    except ConfigurationError:
        raise
    except Exception as e:
        raise EditServiceError(f"Gemini edit request failed: {e}", cause=e)

    texts = []
    for part in _parts(resp):
        inline = getattr(part, "inline_data", None)
        if inline is not None and inline.data:
            return inline.data
        if getattr(part, "text", None):
            texts.append(part.text.strip())

    # The model sometimes answers with text only (refusals, clarifications)
    if texts:
        raise EditServiceError(f"Gemini returned no image: {' '.join(texts)[:300]}")
    raise EditServiceError("Gemini returned no image.")


# --- Image description call ---

def describe_image(image: bytes, mime_type: str, prompt: str, model: str) -> str:
    """
    Ask Gemini for a short text description of the image.
    """
    try:
        resp = get_client().models.generate_content(
            model=model,
            contents=_image_contents(prompt, image, mime_type),
        )
    except ConfigurationError:
        raise
    except Exception as e:
        raise AnalysisServiceError(f"Gemini analysis request failed: {e}", cause=e)

    text = (getattr(resp, "text", None) or "").strip()
    if not text:
        raise AnalysisServiceError("Empty Gemini response")
    return text
