"""
Data models for the subtitle translation pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from .schemas import Blueprint


@dataclass(frozen=True)
class SubtitleLine:
    """A single parsed subtitle cue."""

    sequence: int
    start_time: str  # HH:MM:SS,mmm
    end_time: str  # HH:MM:SS,mmm
    duration_seconds: float
    text: str


@dataclass
class TranslationSettings:
    """Per-job settings supplied by the client."""

    tone: str
    target_language: Optional[str] = None

    def to_dict(self) -> dict:
        return {"tone": self.tone, "target_language": self.target_language}

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationSettings":
        return cls(tone=data.get("tone", ""), target_language=data.get("target_language"))


class JobStatus(str, Enum):
    PROCESSING_BLUEPRINT = "processing_blueprint"
    PENDING_APPROVAL = "pending_approval"
    TRANSLATING = "translating"
    COMPLETE = "complete"
    FAILED = "failed"


@dataclass
class SyncSuggestion:
    """Pacing note for one subtitle line."""

    sequence: int
    suggestion: str


@dataclass
class TranslationResult:
    """Reassembled subtitle document plus pacing notes."""

    final_text: str
    sync_suggestions: list[SyncSuggestion] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "finalText": self.final_text,
            "syncSuggestions": [
                {"sequence": s.sequence, "suggestion": s.suggestion} for s in self.sync_suggestions
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationResult":
        return cls(
            final_text=data["finalText"],
            sync_suggestions=[
                SyncSuggestion(sequence=int(s["sequence"]), suggestion=s["suggestion"])
                for s in data.get("syncSuggestions", [])
            ],
        )


@dataclass
class TranslationJob:
    """Snapshot of a translation job as stored by a repository."""

    id: str
    status: JobStatus
    source_text: str
    settings: TranslationSettings
    created_at: datetime
    updated_at: datetime
    blueprint: Optional[Blueprint] = None
    final_result: Optional[TranslationResult] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "sourceText": self.source_text,
            "settings": self.settings.to_dict(),
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
            "blueprint": self.blueprint.to_json_dict() if self.blueprint else None,
            "finalResult": self.final_result.to_dict() if self.final_result else None,
            "error": self.error,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "TranslationJob":
        blueprint = data.get("blueprint")
        final_result = data.get("finalResult")
        return cls(
            id=data["id"],
            status=JobStatus(data["status"]),
            source_text=data["sourceText"],
            settings=TranslationSettings.from_dict(data.get("settings", {})),
            created_at=datetime.fromisoformat(data["createdAt"]),
            updated_at=datetime.fromisoformat(data["updatedAt"]),
            blueprint=Blueprint.model_validate(blueprint) if blueprint else None,
            final_result=TranslationResult.from_dict(final_result) if final_result else None,
            error=data.get("error"),
        )


@dataclass
class BlueprintDraft:
    """Blueprint produced by phase 1, with the job it belongs to."""

    job_id: str
    blueprint: Blueprint
