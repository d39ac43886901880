# backend/alphapunch/main.py
from dotenv import load_dotenv

load_dotenv()  # Loads .env automatically

import time
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from .agents.analysis_agent import GeminiAnalysisService
from .agents.edit_agent import GeminiEditService
from .config import get_settings
from .exceptions import DecodeError
from .jobs.orchestrator import GenerationOrchestrator
from .logging_config import get_metrics_snapshot, log
from .models import (
    AppStatus,
    HistoryItemResponse,
    HistoryResponse,
    PresetPrompt,
    StateResponse,
)
from .presets import PRESETS
from .utils import to_data_url

_orchestrator: Optional[GenerationOrchestrator] = None


def get_orchestrator() -> GenerationOrchestrator:
    """One orchestrator (and so one ApplicationState + history) per process."""
    global _orchestrator
    if _orchestrator is None:
        settings = get_settings()
        _orchestrator = GenerationOrchestrator(
            edit_service=GeminiEditService(settings.gemini),
            analysis_service=GeminiAnalysisService(settings.gemini),
            policy=settings.keying.to_policy(),
        )
    return _orchestrator


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    if _orchestrator is not None:
        await _orchestrator.aclose()


app = FastAPI(title="AlphaPunch", version="2.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _state_response(orch: GenerationOrchestrator) -> StateResponse:
    state = orch.state
    return StateResponse(
        status=state.status,
        source_image=to_data_url(state.source_image, state.source_mime_type or "image/png"),
        target_dimensions=state.target_dimensions,
        generated_image=to_data_url(state.generated_image),
        error=state.error,
        analysis=state.analysis,
        prompt=orch.prompt,
        high_quality=orch.high_quality,
    )


# ==========================================================
#                    SOURCE + SETTINGS
# ==========================================================


@app.get("/api/v1/presets", response_model=List[PresetPrompt])
async def list_presets():
    return PRESETS


@app.post("/api/v1/source", response_model=StateResponse)
async def select_source(
    file: UploadFile = File(...),
    orch: GenerationOrchestrator = Depends(get_orchestrator),
):
    """Select a new source image; resets the result and starts scene analysis."""
    img_bytes = await file.read()
    try:
        orch.select_source(img_bytes, file.content_type or "image/png")
    except DecodeError as e:
        log.warning(f"Rejected source upload: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return _state_response(orch)


@app.put("/api/v1/settings", response_model=StateResponse)
async def update_settings(
    prompt: Optional[str] = Form(None),
    preset_id: Optional[str] = Form(None),
    high_quality: Optional[bool] = Form(None),
    orch: GenerationOrchestrator = Depends(get_orchestrator),
):
    if preset_id is not None and not orch.select_preset(preset_id):
        raise HTTPException(status_code=404, detail=f"Unknown preset: {preset_id}")
    if prompt is not None:
        try:
            orch.set_prompt(prompt)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if high_quality is not None:
        orch.set_high_quality(high_quality)
    return _state_response(orch)


# ==========================================================
#                       GENERATION
# ==========================================================


def _check_can_generate(orch: GenerationOrchestrator) -> None:
    state = orch.state
    if state.source_image is None:
        raise HTTPException(status_code=400, detail="Select a source image first.")
    if state.status is AppStatus.PROCESSING:
        raise HTTPException(status_code=409, detail="A generation is already running.")


@app.post("/api/v1/generate", response_model=StateResponse)
async def generate(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    """
    Run edit -> chroma key -> resize and return the resulting state.
    Generation failures come back as status=ERROR, not as HTTP errors.
    """
    _check_can_generate(orch)
    await orch.generate()
    return _state_response(orch)


@app.post("/api/v1/generate_async", response_model=StateResponse)
async def generate_async(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    """Schedule a generation; poll /api/v1/state for the outcome."""
    _check_can_generate(orch)
    orch.start_generation()
    return _state_response(orch)


@app.get("/api/v1/state", response_model=StateResponse)
async def get_state(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    return _state_response(orch)


@app.get("/api/v1/result.png")
async def download_result(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    generated = orch.state.generated_image
    if generated is None:
        raise HTTPException(status_code=404, detail="No generated image yet.")
    filename = f"alphapunch-{int(time.time() * 1000)}.png"
    return Response(
        content=generated,
        media_type="image/png",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


# ==========================================================
#                         HISTORY
# ==========================================================


@app.get("/api/v1/history", response_model=HistoryResponse)
async def list_history(orch: GenerationOrchestrator = Depends(get_orchestrator)):
    items = [
        HistoryItemResponse(
            id=entry.id,
            timestamp=entry.timestamp,
            prompt_used=entry.prompt_used,
            thumbnail=to_data_url(entry.thumbnail),
        )
        for entry in orch.list_history()
    ]
    return HistoryResponse(items=items, capacity=orch.history.capacity)


@app.post("/api/v1/history/{entry_id}/select", response_model=StateResponse)
async def select_history(
    entry_id: str,
    orch: GenerationOrchestrator = Depends(get_orchestrator),
):
    if not orch.select_history(entry_id):
        raise HTTPException(status_code=404, detail="History entry not found")
    return _state_response(orch)


# ==========================================================
#                     METRICS + HEALTH
# ==========================================================


@app.get("/metrics")
async def metrics():
    return get_metrics_snapshot()


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("backend.alphapunch.main:app", host="127.0.0.1", port=8000, reload=True)
