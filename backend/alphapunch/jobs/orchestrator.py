# backend/alphapunch/jobs/orchestrator.py

"""
Generation state machine.

One GenerationOrchestrator owns the ApplicationState, the HistoryCache and
the token counters. It is driven from a single asyncio event loop: every
method must be called on the loop thread, which is what keeps the state
consistent without locks.

Two counters guard the asynchronous results:
- the generation token is bumped for every new attempt and whenever the
  source changes; an edit result is applied only if its token is current.
- the source token is bumped whenever the source changes; a scene
  analysis is applied only if the source it described is still current.
"""

import asyncio
from typing import Coroutine, List, Optional, Set, Tuple

from ..agents.base import AnalysisService, EditService
from ..exceptions import AlphaPunchError, EditServiceError
from ..logging_config import inc_metric, log, record_timing, set_metric
from ..memory.history import HistoryCache
from ..models import (
    AppStatus,
    ApplicationState,
    Dimensions,
    GenerationRequest,
    HistoryEntry,
    KeyColorPolicy,
)
from ..presets import DEFAULT_PROMPT, get_preset
from ..processing.buffer import read_dimensions
from ..processing.chroma_key import DEFAULT_POLICY
from ..processing.pipeline import run_pipeline

DEFAULT_MIME_TYPE = "image/png"
FALLBACK_ERROR = "Failed to process image."

_Pending = Tuple[int, GenerationRequest, Optional[Dimensions]]


class GenerationOrchestrator:
    def __init__(
        self,
        edit_service: EditService,
        analysis_service: Optional[AnalysisService] = None,
        history: Optional[HistoryCache] = None,
        policy: KeyColorPolicy = DEFAULT_POLICY,
        prompt: str = DEFAULT_PROMPT,
        high_quality: bool = False,
    ):
        self.edit_service = edit_service
        self.analysis_service = analysis_service
        self.history = history if history is not None else HistoryCache()
        self.policy = policy
        self.prompt = prompt
        self.high_quality = high_quality

        self._state = ApplicationState()
        self._generation_token = 0
        self._source_token = 0
        self._tasks: Set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    @property
    def state(self) -> ApplicationState:
        """Snapshot of the current state; mutating it has no effect here."""
        return self._state.model_copy()

    @property
    def is_processing(self) -> bool:
        return self._state.status is AppStatus.PROCESSING

    @property
    def generation_token(self) -> int:
        return self._generation_token

    def list_history(self) -> List[HistoryEntry]:
        return self.history.list()

    # ------------------------------------------------------------------
    # Request settings
    # ------------------------------------------------------------------

    def set_prompt(self, text: str) -> None:
        text = (text or "").strip()
        if not text:
            raise ValueError("Prompt must not be empty")
        self.prompt = text

    def select_preset(self, preset_id: str) -> bool:
        preset = get_preset(preset_id)
        if preset is None:
            return False
        self.prompt = preset.text
        return True

    def set_high_quality(self, enabled: bool) -> None:
        self.high_quality = bool(enabled)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def select_source(self, image: bytes, mime_type: str = DEFAULT_MIME_TYPE) -> None:
        """
        Any -> IDLE with a new source image.

        Raises DecodeError (state untouched) if the image cannot be read.
        """
        target = read_dimensions(image)

        self._source_token += 1
        self._generation_token += 1
        self._state = ApplicationState(
            status=AppStatus.IDLE,
            source_image=image,
            source_mime_type=mime_type or DEFAULT_MIME_TYPE,
            target_dimensions=target,
        )
        log.info(f"🖼️ New source image {target.width}x{target.height} ({mime_type})")

        if self.analysis_service is not None:
            self._spawn(self._run_analysis(self._source_token, image, self._state.source_mime_type))

    def select_history(self, entry_id: str) -> bool:
        """Any -> SUCCESS from a history entry. Unknown ids are a no-op."""
        entry = self.history.select(entry_id)
        if entry is None:
            log.info(f"History entry {entry_id} not found")
            return False

        self._source_token += 1
        self._generation_token += 1
        self._state = ApplicationState(
            status=AppStatus.SUCCESS,
            source_image=entry.original,
            source_mime_type=entry.original_mime_type,
            target_dimensions=read_dimensions(entry.original),
            generated_image=entry.generated,
        )
        log.info(f"Restored history entry {entry_id}")
        return True

    async def generate(self) -> bool:
        """
        Run one generation to completion.

        Returns True when its outcome (SUCCESS or ERROR) was applied, False
        when the request was a no-op or its result went stale.
        """
        pending = self._begin()
        if pending is None:
            return False
        return await self._complete(*pending)

    def start_generation(self) -> bool:
        """Like generate(), but schedules the work and returns right away."""
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            log.warning("No running event loop; generation not started")
            return False
        pending = self._begin()
        if pending is None:
            return False
        self._spawn(self._complete(*pending))
        return True

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Wait for all background work (generations, analyses) to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        """Cancel background work. An interrupted generation leaves the state IDLE."""
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self._tasks.clear()
        # A task cancelled before its first step never reached its own handler.
        self._abandon()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _begin(self) -> Optional[_Pending]:
        state = self._state
        if state.source_image is None:
            log.info("Generate ignored: no source image")
            return None
        if state.status is AppStatus.PROCESSING:
            log.info("Generate ignored: a generation is already in flight")
            return None

        self._generation_token += 1
        request = GenerationRequest(
            image=state.source_image,
            mime_type=state.source_mime_type or DEFAULT_MIME_TYPE,
            prompt=self.prompt,
            high_quality=self.high_quality,
        )
        self._state = state.model_copy(
            update={"status": AppStatus.PROCESSING, "error": None, "generated_image": None}
        )
        inc_metric("generations_started")
        log.info(
            f"🚀 Generation #{self._generation_token} started "
            f"(quality={'pro' if request.high_quality else 'standard'})"
        )
        return self._generation_token, request, state.target_dimensions

    async def _complete(
        self,
        token: int,
        request: GenerationRequest,
        target: Optional[Dimensions],
    ) -> bool:
        try:
            raw = await self.edit_service.edit(
                request.image, request.mime_type, request.prompt, request.high_quality
            )
            if not raw:
                raise EditServiceError("Edit service returned an empty image.")
            if token != self._generation_token:
                return self._drop_stale(token)

            processed = await asyncio.to_thread(run_pipeline, raw, target, self.policy)
        except asyncio.CancelledError:
            if token == self._generation_token:
                self._abandon()
            raise
        except Exception as e:
            if token != self._generation_token:
                return self._drop_stale(token)
            if isinstance(e, AlphaPunchError):
                log.error(f"❌ Generation #{token} failed: {e}")
            else:
                log.exception(f"💥 Generation #{token} crashed")
            self._fail(str(e) or FALLBACK_ERROR)
            return True

        record_timing("pixel_pipeline", processed.elapsed_ms)
        set_metric("last_key_coverage", round(processed.key_coverage, 4))
        result = processed.png

        if token != self._generation_token:
            return self._drop_stale(token)

        # History push and the SUCCESS transition happen together, with no await between.
        self.history.push(
            HistoryEntry(
                original=request.image,
                original_mime_type=request.mime_type,
                generated=result,
                prompt_used=request.prompt,
                thumbnail=result,
            )
        )
        self._state = self._state.model_copy(
            update={"status": AppStatus.SUCCESS, "generated_image": result, "error": None}
        )
        inc_metric("generations_succeeded")
        log.info(f"✅ Generation #{token} complete ({len(result)} bytes)")
        return True

    def _fail(self, message: str) -> None:
        self._state = self._state.model_copy(
            update={"status": AppStatus.ERROR, "error": message, "generated_image": None}
        )
        inc_metric("generations_failed")

    def _abandon(self) -> None:
        if not self.is_processing:
            return
        self._generation_token += 1
        self._state = self._state.model_copy(update={"status": AppStatus.IDLE})
        log.info("In-flight generation cancelled")

    def _drop_stale(self, token: int) -> bool:
        inc_metric("generations_stale")
        log.info(f"Dropping stale result of generation #{token} (current #{self._generation_token})")
        return False

    async def _run_analysis(self, token: int, image: bytes, mime_type: str) -> None:
        try:
            text = await self.analysis_service.analyze(image, mime_type)
        except Exception as e:
            inc_metric("analysis_failed")
            log.warning(f"Analysis failed: {e}")
            return

        if token != self._source_token:
            log.info("Dropping scene analysis for a replaced source image")
            return
        self._state = self._state.model_copy(update={"analysis": text})

    def _spawn(self, coro: Coroutine) -> Optional[asyncio.Task]:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coro.close()
            log.warning("No running event loop; background task skipped")
            return None

        task = loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
