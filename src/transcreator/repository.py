"""
Job persistence with compare-and-swap status transitions.
"""

import json
import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Protocol

from .errors import ConflictError, JobNotFoundError, PersistenceError
from .models import JobStatus, TranslationJob, TranslationResult, TranslationSettings
from .schemas import Blueprint

logger = logging.getLogger("transcreator")

_MUTABLE_FIELDS = {"blueprint", "final_result", "error"}


class JobRepository(Protocol):
    def create_job(self, source_text: str, settings: TranslationSettings) -> str: ...

    def get_job(self, job_id: str) -> Optional[TranslationJob]: ...

    def transition(
        self, job_id: str, expected: JobStatus, new: JobStatus, **fields
    ) -> TranslationJob: ...

    def save_blueprint(self, job_id: str, blueprint: Blueprint) -> TranslationJob: ...

    def save_final_result(self, job_id: str, result: TranslationResult) -> TranslationJob: ...


def _now() -> datetime:
    return datetime.now(timezone.utc)


class BaseJobRepository:
    """Shared create/transition logic over a snapshot store.

    Jobs are stored as JSON-compatible dicts, so callers always receive copies
    and a job only changes through ``transition``.
    """

    def __init__(self):
        self._lock = threading.Lock()

    def _load(self, job_id: str) -> Optional[dict]:
        raise NotImplementedError

    def _store(self, data: dict) -> None:
        raise NotImplementedError

    def create_job(self, source_text: str, settings: TranslationSettings) -> str:
        now = _now()
        job = TranslationJob(
            id=uuid.uuid4().hex,
            status=JobStatus.PROCESSING_BLUEPRINT,
            source_text=source_text,
            settings=settings,
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._store(job.to_dict())
        logger.debug(f"Created job {job.id}")
        return job.id

    def get_job(self, job_id: str) -> Optional[TranslationJob]:
        with self._lock:
            data = self._load(job_id)
        return TranslationJob.from_dict(data) if data else None

    def transition(
        self, job_id: str, expected: JobStatus, new: JobStatus, **fields
    ) -> TranslationJob:
        """Move a job from ``expected`` to ``new``, updating ``fields`` atomically."""
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update job fields: {sorted(unknown)}")
        with self._lock:
            data = self._load(job_id)
            if data is None:
                raise JobNotFoundError(job_id)
            job = TranslationJob.from_dict(data)
            if job.status != expected:
                raise ConflictError(
                    f"Job {job_id} is {job.status.value}, expected {expected.value} "
                    f"for transition to {new.value}"
                )
            for name, value in fields.items():
                setattr(job, name, value)
            job.status = new
            job.updated_at = _now()
            self._store(job.to_dict())
        logger.debug(f"Job {job_id}: {expected.value} -> {new.value}")
        return job

    def save_blueprint(self, job_id: str, blueprint: Blueprint) -> TranslationJob:
        return self.transition(
            job_id, JobStatus.PROCESSING_BLUEPRINT, JobStatus.PENDING_APPROVAL, blueprint=blueprint
        )

    def save_final_result(self, job_id: str, result: TranslationResult) -> TranslationJob:
        return self.transition(
            job_id, JobStatus.TRANSLATING, JobStatus.COMPLETE, final_result=result, error=None
        )


class InMemoryJobRepository(BaseJobRepository):
    """Process-local job store."""

    def __init__(self):
        super().__init__()
        self._jobs: dict[str, str] = {}

    def _load(self, job_id: str) -> Optional[dict]:
        raw = self._jobs.get(job_id)
        return json.loads(raw) if raw else None

    def _store(self, data: dict) -> None:
        self._jobs[data["id"]] = json.dumps(data, ensure_ascii=False)


class JsonJobRepository(BaseJobRepository):
    """One JSON document per job under ``<root>/jobs``."""

    def __init__(self, root: Path):
        super().__init__()
        self.jobs_dir = Path(root) / "jobs"

    def _path(self, job_id: str) -> Path:
        if not job_id or not job_id.isalnum():
            raise JobNotFoundError(job_id)
        return self.jobs_dir / f"{job_id}.json"

    def _load(self, job_id: str) -> Optional[dict]:
        path = self._path(job_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to read job {job_id}: {e}") from e

    def _store(self, data: dict) -> None:
        path = self._path(data["id"])
        tmp = path.with_suffix(".json.tmp")
        try:
            self.jobs_dir.mkdir(parents=True, exist_ok=True)
            tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            raise PersistenceError(f"Failed to write job {data['id']}: {e}") from e
