"""Shared fixtures for the HydroDoc test suite."""

import asyncio
import json

import pytest
from unittest.mock import patch

from hydrodoc.agents.drafter import EXTRACT_SYSTEM_PROMPT
from hydrodoc.engine import PipelineEngine
from hydrodoc.retrieval import Corpus, CorpusBlock, RetrievalScorer
from hydrodoc.state import new_session_state
from hydrodoc.store import ArtifactStore, CheckpointStore
from hydrodoc.tools import StageTools

# Matches two Water Law lines and nothing else.
MATCHING_INPUT = "water abstraction licence"
UNMATCHED_INPUT = "dumping gravel in the reservoir"


class FakeCompletion:
    """Scripted completion collaborator.

    Extraction calls return `fields` as JSON. Draft calls return `draft` if
    given, otherwise echo the user prompt, which contains every citation
    line verbatim, so verification passes.
    """

    def __init__(self, fields=None, draft=None, error=None):
        self.fields = fields if fields is not None else {}
        self.draft = draft
        self.error = error
        self.calls = []

    async def complete(self, messages):
        self.calls.append(messages)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if messages[0]["content"] == EXTRACT_SYSTEM_PROMPT:
            return json.dumps(self.fields)
        if self.draft is not None:
            return self.draft
        return messages[-1]["content"]


class FakeRenderer:
    def __init__(self, delay=0.0, error=None):
        self.delay = delay
        self.error = error
        self.rendered = []

    async def render(self, state):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        self.rendered.append(state)
        return state["document_content"].encode("utf-8")


def collect(events):
    """Drain an async event iterator into a list."""
    async def _drain():
        return [event async for event in events]

    return asyncio.run(_drain())


@pytest.fixture(autouse=True)
def mock_config():
    """Patch the config singleton with test-friendly values."""
    test_config = {
        "llm_provider": "anthropic",
        "llm_model": "test-model",
        "llm_temperature": 0,
        "llm_max_retries": 2,
        "llm_retry_min_wait": 0,
        "llm_retry_max_wait": 0,
        "max_revisions": 3,
        "retrieval_top_k": 5,
        "query_fields": ["violation", "place"],
        "export_timeout_seconds": 15,
        "default_document_type": "Notice of Payment Deadline",
        "superseded_markers": ["(superseded)"],
        "pending_markers": ["(pending revision)"],
        "corpus_dir": "./data/corpus",
        "output_dir": "./output",
    }
    with patch("hydrodoc.config._config", test_config):
        yield test_config


@pytest.fixture
def corpus():
    return Corpus([
        CorpusBlock("Water Law", [
            "Article 48 Units that abstract water shall apply for a water abstraction licence.",
            "",
            "Article 69 Abstracting without a water abstraction licence is fined; "
            "the water abstraction licence may be revoked.",
            "Article 65 Obstructions in a river channel shall be removed.",
        ]),
        CorpusBlock("Water Resources Fee Regulations", [
            "Article 12 The water resources fee shall be paid within the time limit.",
        ]),
        CorpusBlock("River Regulations (1988)", [
            "Article 3 A water abstraction licence is issued every year.",
        ], superseded=True),
    ])


@pytest.fixture
def completion():
    return FakeCompletion()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def tools(completion, corpus, renderer):
    return StageTools(
        completion=completion,
        scorer=RetrievalScorer(corpus),
        renderer=renderer,
        artifacts=ArtifactStore(),
    )


@pytest.fixture
def engine(tools):
    return PipelineEngine(tools, CheckpointStore())


@pytest.fixture
def base_state():
    """Fresh session state with fixed id."""
    return new_session_state(MATCHING_INPUT, session_id="session-1")
