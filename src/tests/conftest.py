"""
Shared fakes for the OpenAI client, the model gateway and the agent set.
"""

from types import SimpleNamespace

import pytest

from transcreator.schemas import Blueprint

THREE_LINE_SRT = """1
00:00:01,000 --> 00:00:04,000
Hello there.

2
00:00:05,000 --> 00:00:08,500
<i>How are you today?</i>

3
00:00:09,000 --> 00:00:12,000
Fine, thanks.
"""


class FakeChatClient:
    """Stands in for AsyncOpenAI; each outcome is a reply string or an exception."""

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.requests = []
        self.embedding_requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.embeddings = SimpleNamespace(create=self._embed)

    async def _create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])

    async def _embed(self, *, model, input):
        self.embedding_requests.append({"model": model, "input": input})
        return SimpleNamespace(
            data=[SimpleNamespace(embedding=[float(i), 0.5]) for i in range(len(input))]
        )


class FakeGateway:
    """Returns queued replies in order and records every prompt."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def invoke(self, prompt, *, model_name, expect_structured=False, temperature=0.5):
        self.calls.append(
            {"prompt": prompt, "model_name": model_name, "expect_structured": expect_structured}
        )
        reply = self.responses.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return reply


class EchoAgents:
    """Agent set whose batch agents echo the source text unchanged."""

    def __init__(self):
        self.calls = []
        self.contexts = []

    async def extract_keywords(self, source_text):
        self.calls.append(("extract_keywords", None))
        return []

    async def ground_translations(self, keywords, target_language=None):
        self.calls.append(("ground_translations", None))
        return []

    async def assemble_blueprint(self, source_text, tone, grounded_keywords, target_language=None):
        self.calls.append(("assemble_blueprint", None))
        return Blueprint(summary=f"{tone} summary")

    async def transcreate_batch(self, batch, rolling_context, blueprint, tone, target_language=None):
        self.calls.append(("transcreate_batch", batch[0].sequence))
        self.contexts.append(rolling_context)
        return "\n".join(line.text for line in batch)

    async def edit_batch(self, batch, translated_text, blueprint, tone, target_language=None):
        self.calls.append(("edit_batch", batch[0].sequence))
        return translated_text

    async def qa_batch(self, batch, edited_text, blueprint, tone, target_language=None):
        self.calls.append(("qa_batch", batch[0].sequence))
        return edited_text

    async def phantom_sync(self, batch, approved_text, target_language=None):
        self.calls.append(("phantom_sync", batch[0].sequence))
        return approved_text


class RecordingGlossaryIndex:
    def __init__(self):
        self.upserts = []

    async def upsert_glossary_embeddings(self, job_id, glossary):
        self.upserts.append((job_id, list(glossary)))


@pytest.fixture
def three_line_srt():
    return THREE_LINE_SRT


@pytest.fixture
def fake_client_cls():
    return FakeChatClient


@pytest.fixture
def fake_gateway_cls():
    return FakeGateway


@pytest.fixture
def echo_agents_cls():
    return EchoAgents


@pytest.fixture
def glossary_index():
    return RecordingGlossaryIndex()
