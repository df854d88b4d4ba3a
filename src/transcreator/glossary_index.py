"""
Glossary embedding store, enriched in the background after phase 1.
"""

import asyncio
import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

from openai import AsyncOpenAI

from .schemas import GlossaryEntry

logger = logging.getLogger("transcreator")


class GlossaryIndex(Protocol):
    async def upsert_glossary_embeddings(
        self, job_id: str, glossary: Sequence[GlossaryEntry]
    ) -> None: ...


class NullGlossaryIndex:
    """Index that only records what would have been embedded."""

    async def upsert_glossary_embeddings(self, job_id: str, glossary: Sequence[GlossaryEntry]) -> None:
        logger.info(f"Glossary index disabled; skipping {len(glossary)} entries for job {job_id}")


def glossary_document(entry: GlossaryEntry) -> str:
    return f"{entry.term} => {entry.proposed_translation}. {entry.justification}".strip()


class OpenAIGlossaryIndex:
    """Embed glossary entries with the OpenAI embeddings API and store vectors as JSON."""

    def __init__(self, client: AsyncOpenAI, root: Path, model: str = "text-embedding-3-small"):
        self.client = client
        self.model = model
        self.dir = Path(root) / "glossary"

    async def upsert_glossary_embeddings(self, job_id: str, glossary: Sequence[GlossaryEntry]) -> None:
        if not glossary:
            logger.info(f"Empty glossary for job {job_id}; nothing to embed")
            return
        response = await self.client.embeddings.create(
            model=self.model,
            input=[glossary_document(e) for e in glossary],
        )
        records = [
            {"id": f"{job_id}:{i}", **entry.to_json_dict(), "embedding": item.embedding}
            for i, (entry, item) in enumerate(zip(glossary, response.data))
        ]
        await asyncio.to_thread(self._write, job_id, records)
        logger.info(f"Upserted {len(records)} glossary vectors for job {job_id}")

    def _write(self, job_id: str, records: list[dict]) -> None:
        self.dir.mkdir(parents=True, exist_ok=True)
        path = self.dir / f"{job_id}.json"
        path.write_text(json.dumps({"model": self.model, "vectors": records}), encoding="utf-8")
