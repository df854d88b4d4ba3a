"""
Pydantic schemas for structured agent outputs and the translation blueprint.

Agents exchange camelCase JSON with the model; snake_case field names are
accepted too so hand-edited blueprints can use either form.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    def to_json_dict(self) -> dict:
        return self.model_dump(by_alias=True)


class Keyword(AgentModel):
    term: str
    definition: str = ""


class GroundedKeyword(AgentModel):
    term: str
    translations: list[str] = Field(default_factory=list)


class GlossaryEntry(AgentModel):
    term: str
    proposed_translation: str
    justification: str = ""


class CharacterProfile(AgentModel):
    persona_name: str
    speaking_style: str = ""


class CulturalAdaptation(AgentModel):
    original: str
    adaptation: str
    justification: str = ""


class Blueprint(AgentModel):
    """Translation plan reviewed by a human before phase 2."""

    summary: str
    key_points: list[str] = Field(default_factory=list)
    character_profiles: list[CharacterProfile] = Field(default_factory=list)
    cultural_adaptations: list[CulturalAdaptation] = Field(default_factory=list)
    glossary: list[GlossaryEntry] = Field(default_factory=list)


# Response envelopes


class KeywordList(AgentModel):
    keywords: list[Keyword]


class GroundedKeywordList(AgentModel):
    grounded_keywords: list[GroundedKeyword]
