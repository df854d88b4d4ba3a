"""
Tests for the agent set, driven through a fake gateway.
"""

import asyncio
import json

import pytest

from transcreator.agents import AgentSet
from transcreator.errors import AgentContractViolation, MalformedAgentResponse, ModelUnavailable
from transcreator.models import SubtitleLine
from transcreator.schemas import Blueprint, GroundedKeyword, Keyword

BLUEPRINT_JSON = {
    "summary": "Two friends plan a heist.",
    "keyPoints": ["friendship"],
    "characterProfiles": [{"personaName": "Sam", "speakingStyle": "laconic"}],
    "culturalAdaptations": [
        {"original": "break a leg", "adaptation": "movafagh bashi", "justification": "idiom"}
    ],
    "glossary": [
        {"term": "vault", "proposedTranslation": "gav-sandogh", "justification": "formal"},
        {"term": "vault", "proposedTranslation": "duplicate", "justification": ""},
        {"term": "invented", "proposedTranslation": "x", "justification": ""},
    ],
}


def _line(seq, text, duration=2.0):
    return SubtitleLine(seq, "00:00:00,000", "00:00:02,000", duration, text)


def test_extract_keywords_empty(fake_gateway_cls):
    gateway = fake_gateway_cls(['{"keywords": []}'])
    agents = AgentSet(gateway, blueprint_model="bp-model")

    assert asyncio.run(agents.extract_keywords("Hello")) == []
    assert gateway.calls[0]["expect_structured"] is True
    assert gateway.calls[0]["model_name"] == "bp-model"


def test_extract_keywords_malformed(fake_gateway_cls):
    agents = AgentSet(fake_gateway_cls(["not json"]))

    with pytest.raises(MalformedAgentResponse) as exc_info:
        asyncio.run(agents.extract_keywords("Hello"))
    assert exc_info.value.agent_name == "extract_keywords"


def test_ground_translations_skips_call_without_keywords(fake_gateway_cls):
    gateway = fake_gateway_cls([])
    agents = AgentSet(gateway)

    assert asyncio.run(agents.ground_translations([])) == []
    assert gateway.calls == []


def test_ground_translations_passes_sparse_candidates_through(fake_gateway_cls):
    reply = {"groundedKeywords": [{"term": "vault", "translations": []}]}
    gateway = fake_gateway_cls([json.dumps(reply)])
    agents = AgentSet(gateway, target_language="German")

    grounded = asyncio.run(agents.ground_translations([Keyword(term="vault", definition="safe")]))

    assert grounded == [GroundedKeyword(term="vault", translations=[])]
    assert "German" in gateway.calls[0]["prompt"]


def test_assemble_blueprint_keeps_one_entry_per_grounded_term(fake_gateway_cls):
    gateway = fake_gateway_cls([json.dumps(BLUEPRINT_JSON)])
    agents = AgentSet(gateway)
    grounded = [GroundedKeyword(term="Vault", translations=["gav-sandogh", "khazane"])]

    blueprint = asyncio.run(agents.assemble_blueprint("script", "Professional", grounded))

    assert [e.term for e in blueprint.glossary] == ["vault"]
    assert blueprint.glossary[0].proposed_translation == "gav-sandogh"
    assert blueprint.character_profiles[0].persona_name == "Sam"
    assert "Professional" in gateway.calls[0]["prompt"]


def test_extract_keywords_wrong_envelope_is_malformed(fake_gateway_cls):
    gateway = fake_gateway_cls([json.dumps({"terms": [{"term": "vault", "definition": "safe"}]})])
    agents = AgentSet(gateway)

    with pytest.raises(MalformedAgentResponse) as exc_info:
        asyncio.run(agents.extract_keywords("Crack the vault."))
    assert exc_info.value.agent_name == "extract_keywords"


def test_assemble_blueprint_fills_terms_the_model_left_out(fake_gateway_cls):
    """Every grounded term gets exactly one glossary entry."""
    gateway = fake_gateway_cls([json.dumps({"summary": "A heist.", "glossary": []})])
    agents = AgentSet(gateway)
    grounded = [
        GroundedKeyword(term="vault", translations=["a", "b"]),
        GroundedKeyword(term="Heisenberg", translations=[]),
    ]

    blueprint = asyncio.run(agents.assemble_blueprint("script", "Casual", grounded))

    assert [(e.term, e.proposed_translation) for e in blueprint.glossary] == [
        ("vault", "a"),
        ("Heisenberg", "Heisenberg"),
    ]
    assert all(e.justification.startswith("Fallback") for e in blueprint.glossary)


def test_batch_agents_return_normalized_text(fake_gateway_cls):
    gateway = fake_gateway_cls(["```\n1 | Salam\n2 | Khodahafez\n```", "A\nB", "C\nD"])
    agents = AgentSet(gateway, translation_model="tr-model")
    batch = [_line(1, "Hello"), _line(2, "Goodbye")]
    blueprint = Blueprint(summary="s")

    translated = asyncio.run(agents.transcreate_batch(batch, "prior lines", blueprint, "Casual"))
    edited = asyncio.run(agents.edit_batch(batch, translated, blueprint, "Casual"))
    approved = asyncio.run(agents.qa_batch(batch, edited, blueprint, "Casual"))

    assert translated == "Salam\nKhodahafez"
    assert edited == "A\nB"
    assert approved == "C\nD"
    first = gateway.calls[0]
    assert first["model_name"] == "tr-model"
    assert "prior lines" in first["prompt"]
    assert "1 | Hello" in first["prompt"]
    assert "Salam\nKhodahafez" in gateway.calls[1]["prompt"]


def test_batch_agent_gateway_failure_propagates(fake_gateway_cls):
    agents = AgentSet(fake_gateway_cls([ModelUnavailable("m", 3)]))

    with pytest.raises(ModelUnavailable):
        asyncio.run(agents.transcreate_batch([_line(1, "x")], "", Blueprint(summary=""), "t"))


def test_phantom_sync_passes_through_without_call(fake_gateway_cls):
    """Lines within the CPS threshold come back byte-for-byte, no model call."""
    gateway = fake_gateway_cls([])
    agents = AgentSet(gateway, cps_threshold=22.0)
    approved = "Short  line \nAnother"

    result = asyncio.run(agents.phantom_sync([_line(1, "a"), _line(2, "b")], approved))

    assert result == approved
    assert gateway.calls == []


def test_phantom_sync_compresses_fast_lines(fake_gateway_cls):
    gateway = fake_gateway_cls(["Compact text"])
    agents = AgentSet(gateway, sync_model="sync-model", cps_threshold=22.0)
    batch = [_line(1, "a", duration=1.0), _line(2, "b", duration=2.0)]
    long_line = "x" * 30

    result = asyncio.run(agents.phantom_sync(batch, f"{long_line}\n{long_line}"))
    lines = result.split("\n")

    assert len(lines) == 2
    assert lines[0].startswith("Compact text [PS Sync: Compressed from")
    assert lines[1] == long_line
    assert gateway.calls[0]["model_name"] == "sync-model"
    assert "L1:" in gateway.calls[0]["prompt"]
    assert "L2:" not in gateway.calls[0]["prompt"]


def test_phantom_sync_line_count_mismatch(fake_gateway_cls):
    agents = AgentSet(fake_gateway_cls(["one\ntwo"]))
    batch = [_line(1, "a", duration=1.0)]

    with pytest.raises(AgentContractViolation) as exc_info:
        asyncio.run(agents.phantom_sync(batch, "y" * 40))
    assert exc_info.value.agent_name == "phantom_sync"
    assert (exc_info.value.expected, exc_info.value.actual) == (1, 2)

    with pytest.raises(AgentContractViolation):
        asyncio.run(agents.phantom_sync(batch, "a\nb"))
