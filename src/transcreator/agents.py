"""
Prompt-driven agents for both translation phases.

Blueprint agents return validated schema objects; batch agents return
newline-delimited subtitle text whose line count is checked by the caller.
"""

import json
import logging
from collections.abc import Sequence
from typing import Optional

from .config import AppConfig
from .decoding import decode_structured, normalize_batch_text, split_lines
from .errors import AgentContractViolation
from .gateway import ModelGateway
from .models import SubtitleLine
from .pacing import add_sync_marker, exceeds_threshold, max_chars_for
from .schemas import (
    Blueprint,
    GlossaryEntry,
    GroundedKeyword,
    GroundedKeywordList,
    Keyword,
    KeywordList,
)
from .srt_utils import to_prompt_format

logger = logging.getLogger("transcreator")

EXTRACT_KEYWORDS = "extract_keywords"
GROUND_TRANSLATIONS = "ground_translations"
ASSEMBLE_BLUEPRINT = "assemble_blueprint"
TRANSCREATE_BATCH = "transcreate_batch"
EDIT_BATCH = "edit_batch"
QA_BATCH = "qa_batch"
PHANTOM_SYNC = "phantom_sync"


class AgentSet:
    """The seven agents, sharing one gateway and no per-call state."""

    def __init__(
        self,
        gateway: ModelGateway,
        *,
        blueprint_model: str = "gpt-4o",
        translation_model: str = "gpt-4o-mini",
        sync_model: str = "gpt-4o-mini",
        temperature: float = 0.5,
        target_language: str = "Persian",
        cps_threshold: float = 22.0,
    ):
        self.gateway = gateway
        self.blueprint_model = blueprint_model
        self.translation_model = translation_model
        self.sync_model = sync_model
        self.temperature = temperature
        self.target_language = target_language
        self.cps_threshold = cps_threshold

    @classmethod
    def from_config(cls, gateway: ModelGateway, config: AppConfig) -> "AgentSet":
        return cls(
            gateway,
            blueprint_model=config.blueprint_model,
            translation_model=config.translation_model,
            sync_model=config.sync_model,
            temperature=config.temperature,
            target_language=config.target_language,
            cps_threshold=config.cps_threshold,
        )

    async def _call(self, prompt: str, model: str, *, structured: bool = False) -> str:
        return await self.gateway.invoke(
            prompt,
            model_name=model,
            expect_structured=structured,
            temperature=self.temperature,
        )

    # --- Phase 1: blueprint ---

    async def extract_keywords(self, source_text: str) -> list[Keyword]:
        logger.info(f"Agent [{EXTRACT_KEYWORDS}] activated.")
        prompt = f"""You are a lexical analyst. Extract technical terms, jargon, named entities and
culturally specific idioms from the subtitle script below.
Return a single JSON object: {{"keywords": [{{"term": "...", "definition": "short, context-relevant definition"}}]}}.
If nothing notable is present, return {{"keywords": []}}.

Script:
---
{source_text}
---"""
        raw = await self._call(prompt, self.blueprint_model, structured=True)
        return decode_structured(raw, EXTRACT_KEYWORDS, KeywordList).keywords

    async def ground_translations(
        self, keywords: Sequence[Keyword], target_language: Optional[str] = None
    ) -> list[GroundedKeyword]:
        logger.info(f"Agent [{GROUND_TRANSLATIONS}] activated ({len(keywords)} keywords).")
        if not keywords:
            return []
        language = target_language or self.target_language
        terms = json.dumps([k.to_json_dict() for k in keywords], ensure_ascii=False, indent=2)
        prompt = f"""You are a lexicographer. For every term below give at least three distinct,
high-quality {language} translations, best first.
Return a single JSON object: {{"groundedKeywords": [{{"term": "...", "translations": ["...", "..."]}}]}}.

Terms (with definitions):
---
{terms}
---"""
        raw = await self._call(prompt, self.blueprint_model, structured=True)
        grounded = decode_structured(raw, GROUND_TRANSLATIONS, GroundedKeywordList).grounded_keywords
        for g in grounded:
            if not g.translations:
                logger.warning(f"No candidate translations for term {g.term!r}")
        return grounded

    async def assemble_blueprint(
        self,
        source_text: str,
        tone: str,
        grounded_keywords: Sequence[GroundedKeyword],
        target_language: Optional[str] = None,
    ) -> Blueprint:
        logger.info(f"Agent [{ASSEMBLE_BLUEPRINT}] activated.")
        language = target_language or self.target_language
        grounded = json.dumps(
            [g.to_json_dict() for g in grounded_keywords], ensure_ascii=False, indent=2
        )
        prompt = f"""You are a pre-production strategist preparing a {language} subtitle translation.
Build a translation blueprint for the script below in a "{tone}" tone.
Return a single JSON object with:
- "summary": concise plot summary
- "keyPoints": list of key themes
- "characterProfiles": list of {{"personaName", "speakingStyle"}}
- "culturalAdaptations": list of {{"original", "adaptation", "justification"}} for idioms
- "glossary": exactly one entry per keyword below, {{"term", "proposedTranslation", "justification"}},
  where proposedTranslation is the single best candidate and the justification cites the script
  and the requested tone. Use an empty list when there are no keywords.

Keywords with candidate translations:
---
{grounded}
---
Script:
---
{source_text}
---"""
        raw = await self._call(prompt, self.blueprint_model, structured=True)
        blueprint = decode_structured(raw, ASSEMBLE_BLUEPRINT, Blueprint)
        blueprint.glossary = self._reconcile_glossary(blueprint, grounded_keywords)
        return blueprint

    @staticmethod
    def _reconcile_glossary(blueprint: Blueprint, grounded_keywords: Sequence[GroundedKeyword]):
        """Keep exactly one glossary entry per grounded term.

        The model's entries come first, in its order. A grounded term the model
        left out falls back to its first candidate, or to the term itself when
        grounding found none.
        """
        candidates = {g.term.casefold(): g.translations for g in grounded_keywords}
        seen = set()
        glossary = []
        for entry in blueprint.glossary:
            key = entry.term.casefold()
            if key not in candidates or key in seen:
                logger.warning(f"Dropping glossary entry {entry.term!r} (unknown or duplicate term)")
                continue
            if candidates[key] and entry.proposed_translation not in candidates[key]:
                logger.warning(
                    f"Glossary entry {entry.term!r} proposes {entry.proposed_translation!r}, "
                    f"not one of the grounded candidates"
                )
            seen.add(key)
            glossary.append(entry)
        for g in grounded_keywords:
            key = g.term.casefold()
            if key in seen:
                continue
            seen.add(key)
            if g.translations:
                fallback, why = g.translations[0], "first grounded candidate"
            else:
                fallback, why = g.term, "no grounded candidates, kept untranslated"
            logger.warning(f"Glossary is missing term {g.term!r}; using {fallback!r}")
            glossary.append(
                GlossaryEntry(term=g.term, proposed_translation=fallback, justification=f"Fallback: {why}.")
            )
        return glossary

    # --- Phase 2: batch chain ---

    async def transcreate_batch(
        self,
        batch: Sequence[SubtitleLine],
        rolling_context: str,
        blueprint: Blueprint,
        tone: str,
        target_language: Optional[str] = None,
    ) -> str:
        logger.info(f"Agent [{TRANSCREATE_BATCH}] activated (batch size {len(batch)}).")
        language = target_language or self.target_language
        prompt = f"""You are a master transcreator. Following the blueprint strictly, transcreate the
subtitle batch below into fluent {language} in a "{tone}" tone.
Output exactly {len(batch)} lines, one per input entry, in order, without sequence numbers.

Previous context: {rolling_context}
Blueprint: {blueprint.model_dump_json(by_alias=True)}

Batch (format "sequence | text"):
---
{to_prompt_format(batch)}
---"""
        return normalize_batch_text(await self._call(prompt, self.translation_model))

    async def edit_batch(
        self,
        batch: Sequence[SubtitleLine],
        translated_text: str,
        blueprint: Blueprint,
        tone: str,
        target_language: Optional[str] = None,
    ) -> str:
        logger.info(f"Agent [{EDIT_BATCH}] activated (batch size {len(batch)}).")
        language = target_language or self.target_language
        prompt = f"""You are a senior editor. Polish the {language} translation so it is faithful to the
original, uses the blueprint glossary and personas, and keeps a "{tone}" tone.
Output exactly {len(batch)} lines, one per subtitle, in order.

Blueprint: {blueprint.model_dump_json(by_alias=True)}

Original batch:
---
{to_prompt_format(batch)}
---
Translation to edit:
---
{translated_text}
---"""
        return normalize_batch_text(await self._call(prompt, self.translation_model))

    async def qa_batch(
        self,
        batch: Sequence[SubtitleLine],
        edited_text: str,
        blueprint: Blueprint,
        tone: str,
        target_language: Optional[str] = None,
    ) -> str:
        logger.info(f"Agent [{QA_BATCH}] activated (batch size {len(batch)}).")
        language = target_language or self.target_language
        prompt = f"""You are head of QA. Review the edited {language} translation for accuracy against the
original and compliance with the blueprint and the "{tone}" tone. Fix only real errors.
Output exactly {len(batch)} lines, one per subtitle, in order.

Blueprint: {blueprint.model_dump_json(by_alias=True)}

Original batch:
---
{to_prompt_format(batch)}
---
Edited translation:
---
{edited_text}
---"""
        return normalize_batch_text(await self._call(prompt, self.translation_model))

    async def phantom_sync(
        self,
        batch: Sequence[SubtitleLine],
        approved_text: str,
        target_language: Optional[str] = None,
    ) -> str:
        """Compress lines that read faster than the CPS threshold.

        Lines within the threshold are returned unchanged; when none exceed it
        no model call is made.
        """
        logger.info(f"Agent [{PHANTOM_SYNC}] activated (batch size {len(batch)}).")
        lines = split_lines(approved_text)
        if len(lines) != len(batch):
            raise AgentContractViolation(PHANTOM_SYNC, len(batch), len(lines))

        flagged = [
            i
            for i, (line, text) in enumerate(zip(batch, lines))
            if exceeds_threshold(text, line.duration_seconds, self.cps_threshold)
        ]
        if not flagged:
            return approved_text

        language = target_language or self.target_language
        data = "\n".join(
            f"L{batch[i].sequence}: duration {batch[i].duration_seconds:.2f}s, "
            f"max {max_chars_for(batch[i].duration_seconds, self.cps_threshold)} characters\n"
            f"  {lines[i]}"
            for i in flagged
        )
        prompt = f"""You are a subtitle pacing analyst. Each {language} line below reads faster than
{self.cps_threshold:g} characters per second. Rewrite each one to fit its character budget while
preserving its full meaning.
Output exactly {len(flagged)} lines, one rewritten line per entry, in order, with no labels.

---
{data}
---"""
        raw = await self._call(prompt, self.sync_model)
        compressed = split_lines(normalize_batch_text(raw))
        if len(compressed) != len(flagged):
            raise AgentContractViolation(PHANTOM_SYNC, len(flagged), len(compressed))

        for i, short in zip(flagged, compressed):
            lines[i] = add_sync_marker(short, lines[i])
        return "\n".join(lines)
