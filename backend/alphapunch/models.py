# backend/alphapunch/models.py

import time
import uuid
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class AppStatus(str, Enum):
    IDLE = "IDLE"
    PROCESSING = "PROCESSING"
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"


class KeyColorPolicy(BaseModel):
    model_config = ConfigDict(frozen=True)

    min_green_value: int = Field(40, ge=0, le=255)
    dominance_margin: int = Field(10, ge=0, le=255)


class Dimensions(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: int = Field(gt=0)
    height: int = Field(gt=0)

    def as_tuple(self) -> Tuple[int, int]:
        return (self.width, self.height)


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    image: bytes
    mime_type: str
    prompt: str
    high_quality: bool = False


def _new_entry_id() -> str:
    return uuid.uuid4().hex


class HistoryEntry(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_entry_id)
    timestamp: float = Field(default_factory=time.time)
    original: bytes
    original_mime_type: str = "image/png"
    generated: bytes
    prompt_used: str
    thumbnail: bytes


class ApplicationState(BaseModel):
    status: AppStatus = AppStatus.IDLE
    source_image: Optional[bytes] = None
    source_mime_type: Optional[str] = None
    target_dimensions: Optional[Dimensions] = None
    generated_image: Optional[bytes] = None
    error: Optional[str] = None
    analysis: Optional[str] = None


class PresetPrompt(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    label: str
    description: str
    text: str


# --- API responses ---

class StateResponse(BaseModel):
    status: AppStatus
    source_image: Optional[str] = None
    target_dimensions: Optional[Dimensions] = None
    generated_image: Optional[str] = None
    error: Optional[str] = None
    analysis: Optional[str] = None
    prompt: str
    high_quality: bool


class HistoryItemResponse(BaseModel):
    id: str
    timestamp: float
    prompt_used: str
    thumbnail: str


class HistoryResponse(BaseModel):
    items: List[HistoryItemResponse]
    capacity: int
