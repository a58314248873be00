"""Collaborators shared by the stage functions of one engine."""

from dataclasses import dataclass
from typing import Protocol

from hydrodoc.retrieval import RetrievalScorer
from hydrodoc.state import SessionState
from hydrodoc.store import ArtifactStore


class CompletionClient(Protocol):
    """Text-completion interface used by the Draft stage."""

    async def complete(self, messages: list[dict]) -> str:
        ...


class DocumentRenderer(Protocol):
    """Turns a finished session into document bytes for Export."""

    async def render(self, state: SessionState) -> bytes:
        ...


@dataclass
class StageTools:
    completion: CompletionClient
    scorer: RetrievalScorer
    renderer: DocumentRenderer
    artifacts: ArtifactStore
