"""
Translation orchestrator: the two-phase job pipeline.

Phase 1 (``generate_blueprint``) runs keyword extraction, grounding and
blueprint assembly, then pauses the job for human approval. Phase 2
(``execute_translation``) runs transcreate -> edit -> QA -> phantom sync over
fixed-size batches, strictly in order, and reassembles the subtitle document.
Any failure moves the job to ``failed``; there is no partial completion.
"""

import asyncio
import logging
from collections.abc import Coroutine, Sequence
from typing import Any, Optional, Union

from pydantic import ValidationError
from tqdm import tqdm

from .agents import EDIT_BATCH, PHANTOM_SYNC, QA_BATCH, TRANSCREATE_BATCH, AgentSet
from .batching import START_CONTEXT, build_rolling_context, partition
from .config import AppConfig
from .decoding import split_lines
from .errors import AgentContractViolation, ConflictError, InputError, JobNotFoundError, TranscreatorError
from .glossary_index import GlossaryIndex, NullGlossaryIndex
from .models import (
    BlueprintDraft,
    JobStatus,
    SubtitleLine,
    SyncSuggestion,
    TranslationJob,
    TranslationResult,
    TranslationSettings,
)
from .pacing import chars_per_second, exceeds_threshold, split_sync_marker
from .repository import JobRepository
from .schemas import Blueprint
from .srt_utils import parse_srt_text, serialize_srt

logger = logging.getLogger("transcreator")

# States from which phase 2 may (re)start
EXECUTABLE_STATES = {JobStatus.PENDING_APPROVAL, JobStatus.FAILED, JobStatus.COMPLETE}


class TranslationOrchestrator:
    """Drives translation jobs through their lifecycle.

    All collaborators are injected; the orchestrator keeps no per-job state
    between calls, so independent jobs can run concurrently.
    """

    def __init__(
        self,
        agents: AgentSet,
        repository: JobRepository,
        glossary_index: Optional[GlossaryIndex] = None,
        *,
        batch_size: int = 10,
        context_lines: int = 3,
        context_max_chars: int = 600,
        cps_threshold: float = 22.0,
        target_language: str = "Persian",
        show_progress: bool = True,
    ):
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self.agents = agents
        self.repository = repository
        self.glossary_index = glossary_index or NullGlossaryIndex()
        self.batch_size = batch_size
        self.context_lines = context_lines
        self.context_max_chars = context_max_chars
        self.cps_threshold = cps_threshold
        self.target_language = target_language
        self.show_progress = show_progress
        self._background: set[asyncio.Task] = set()

    @classmethod
    def from_config(
        cls,
        agents: AgentSet,
        repository: JobRepository,
        glossary_index: Optional[GlossaryIndex],
        config: AppConfig,
    ) -> "TranslationOrchestrator":
        return cls(
            agents,
            repository,
            glossary_index,
            batch_size=config.batch_size,
            context_lines=config.context_lines,
            context_max_chars=config.context_max_chars,
            cps_threshold=config.cps_threshold,
            target_language=config.target_language,
            show_progress=config.show_progress,
        )

    # --- Phase 1 ---

    async def generate_blueprint(
        self, source_text: str, settings: Union[TranslationSettings, dict]
    ) -> BlueprintDraft:
        """Create a job and produce its blueprint, leaving it pending approval."""
        settings = self._resolve_settings(settings)
        lines = parse_srt_text(source_text)
        job_id = self.repository.create_job(source_text, settings)
        logger.info(f"Job {job_id}: generating blueprint for {len(lines)} lines")

        script = "\n".join(line.text for line in lines)
        try:
            keywords = await self.agents.extract_keywords(script)
            grounded = await self.agents.ground_translations(keywords, settings.target_language)
            blueprint = await self.agents.assemble_blueprint(
                script, settings.tone, grounded, settings.target_language
            )
            self.repository.save_blueprint(job_id, blueprint)
        except Exception as e:
            self._fail(job_id, JobStatus.PROCESSING_BLUEPRINT, e)
            raise

        logger.info(
            f"Job {job_id}: blueprint ready ({len(blueprint.glossary)} glossary entries), "
            f"awaiting approval"
        )
        self._spawn(
            self.glossary_index.upsert_glossary_embeddings(job_id, blueprint.glossary),
            f"glossary upsert for job {job_id}",
        )
        return BlueprintDraft(job_id=job_id, blueprint=blueprint)

    # --- Phase 2 ---

    async def execute_translation(
        self,
        job_id: str,
        confirmed_blueprint: Union[Blueprint, dict],
        settings: Union[TranslationSettings, dict, None] = None,
    ) -> TranslationResult:
        """Translate the job's subtitles with the confirmed blueprint."""
        blueprint = self._coerce_blueprint(confirmed_blueprint)
        job = self.get_job(job_id)
        settings = self._resolve_settings(settings if settings is not None else job.settings)
        if job.status not in EXECUTABLE_STATES:
            raise ConflictError(f"Job {job_id} is {job.status.value}; cannot start translation")

        self.repository.transition(
            job_id, job.status, JobStatus.TRANSLATING, blueprint=blueprint, error=None
        )
        logger.info(f"Job {job_id}: translation started")
        try:
            lines = parse_srt_text(job.source_text)
            result = await self._translate_lines(lines, blueprint, settings)
            self.repository.save_final_result(job_id, result)
        except Exception as e:
            self._fail(job_id, JobStatus.TRANSLATING, e)
            raise

        logger.info(
            f"Job {job_id}: complete ({len(lines)} lines, "
            f"{len(result.sync_suggestions)} sync suggestions)"
        )
        return result

    async def _translate_lines(
        self,
        lines: Sequence[SubtitleLine],
        blueprint: Blueprint,
        settings: TranslationSettings,
    ) -> TranslationResult:
        batches = partition(lines, self.batch_size)
        tone, language = settings.tone, settings.target_language
        context = START_CONTEXT
        synced: list[str] = []

        progress = tqdm(batches, desc="Translating batches", unit="batch", disable=not self.show_progress)
        for index, batch in enumerate(progress, 1):
            logger.info(
                f"Batch {index}/{len(batches)}: lines {batch[0].sequence}-{batch[-1].sequence}"
            )
            # Cues without text stay empty and are never sent to the agents
            spoken = [line for line in batch if line.text]
            if not spoken:
                synced.extend("" for _ in batch)
                continue
            translated = await self.agents.transcreate_batch(spoken, context, blueprint, tone, language)
            self._expect_lines(TRANSCREATE_BATCH, translated, spoken)
            edited = await self.agents.edit_batch(spoken, translated, blueprint, tone, language)
            self._expect_lines(EDIT_BATCH, edited, spoken)
            approved = await self.agents.qa_batch(spoken, edited, blueprint, tone, language)
            self._expect_lines(QA_BATCH, approved, spoken)
            synced_text = await self.agents.phantom_sync(spoken, approved, language)
            done = iter(self._expect_lines(PHANTOM_SYNC, synced_text, spoken))
            synced.extend(next(done) if line.text else "" for line in batch)
            context = build_rolling_context(
                spoken, approved, max_lines=self.context_lines, max_chars=self.context_max_chars
            )

        return self._reassemble(lines, synced)

    def _reassemble(self, lines: Sequence[SubtitleLine], synced: Sequence[str]) -> TranslationResult:
        texts: list[str] = []
        suggestions: list[SyncSuggestion] = []
        for line, text in zip(lines, synced):
            clean, note = split_sync_marker(text)
            if note:
                suggestions.append(SyncSuggestion(sequence=line.sequence, suggestion=note))
            elif exceeds_threshold(clean, line.duration_seconds, self.cps_threshold):
                cps = chars_per_second(clean, line.duration_seconds)
                suggestions.append(
                    SyncSuggestion(
                        sequence=line.sequence,
                        suggestion=(
                            f"Reading speed {cps:.1f} CPS exceeds {self.cps_threshold:g} CPS; "
                            f"consider shortening."
                        ),
                    )
                )
            texts.append(clean)
        return TranslationResult(final_text=serialize_srt(lines, texts), sync_suggestions=suggestions)

    @staticmethod
    def _expect_lines(agent_name: str, text: str, batch: Sequence[SubtitleLine]) -> list[str]:
        lines = split_lines(text)
        if len(lines) != len(batch):
            raise AgentContractViolation(agent_name, len(batch), len(lines))
        return lines

    # --- Jobs ---

    def get_job(self, job_id: str) -> TranslationJob:
        job = self.repository.get_job(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _fail(self, job_id: str, expected: JobStatus, error: BaseException) -> None:
        logger.error(f"Job {job_id}: failed during {expected.value}: {error}", exc_info=error)
        try:
            self.repository.transition(job_id, expected, JobStatus.FAILED, error=str(error))
        except TranscreatorError as e:
            logger.error(f"Job {job_id}: could not record failure: {e}")

    def _resolve_settings(self, settings: Union[TranslationSettings, dict]) -> TranslationSettings:
        if isinstance(settings, dict):
            settings = TranslationSettings.from_dict(settings)
        tone = (settings.tone or "").strip()
        if not tone:
            raise InputError("Tone is required.")
        return TranslationSettings(
            tone=tone, target_language=settings.target_language or self.target_language
        )

    @staticmethod
    def _coerce_blueprint(value: Union[Blueprint, dict]) -> Blueprint:
        if isinstance(value, Blueprint):
            return value
        try:
            return Blueprint.model_validate(value)
        except ValidationError as e:
            raise InputError(f"Confirmed blueprint is invalid: {e}") from e

    # --- Background work ---

    def _spawn(self, coro: Coroutine[Any, Any, None], name: str) -> None:
        task = asyncio.create_task(self._run_background(coro, name))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    @staticmethod
    async def _run_background(coro: Coroutine[Any, Any, None], name: str) -> None:
        logger.info(f"Starting background task: {name}")
        try:
            await coro
        except Exception:
            logger.exception(f"Background task failed: {name}")
            return
        logger.info(f"Background task completed: {name}")

    async def drain(self) -> None:
        """Wait for pending background tasks (call before shutdown)."""
        if self._background:
            await asyncio.gather(*list(self._background))
