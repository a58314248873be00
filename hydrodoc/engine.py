"""Pipeline engine — runs sessions stage by stage with checkpoints and an event stream.

Each call to start(), resubmit() or resume() returns a SessionStream for one
session. The session itself runs as its own asyncio task and feeds the
stream through a queue, so a consumer that stops reading never stops the
stages. Stages run strictly in order; the checkpoint for a stage is written
before the next stage begins. After the review interrupt the checkpoint is
left paused and the stream ends until resume() is called.
"""

import asyncio
import sys
from typing import Awaitable, Callable

from hydrodoc.config import get_config, resolve_path
from hydrodoc.errors import SessionNotPausedError
from hydrodoc.events import Event, EventPublisher
from hydrodoc.graph import INTERRUPT_AFTER, Stage, next_stage, run_single_step
from hydrodoc.llm import ChatModelClient, create_chat_model
from hydrodoc.retrieval import Corpus, RetrievalScorer
from hydrodoc.state import SessionState, new_session_state
from hydrodoc.store import ArtifactStore, Checkpoint, CheckpointStore
from hydrodoc.tools import StageTools
from hydrodoc.utils.formatter import MarkdownRenderer
from hydrodoc.utils.validator import ResumeRequest

Emit = Callable[[object], None]

_END = object()  # Queue sentinel: the session task has finished.


class SessionStream:
    """Async iterator over the events of one running session.

    The session task is started as soon as the stream is created inside a
    running event loop, or on the first read otherwise. aclose() only
    detaches the reader.
    """

    def __init__(self, engine: "PipelineEngine", runner: Callable[[Emit], Awaitable[None]]):
        self._engine = engine
        self._runner = runner
        self._queue: asyncio.Queue = asyncio.Queue()
        self._task: asyncio.Task | None = None
        self._closed = False
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            pass
        else:
            self._launch()

    @property
    def task(self) -> asyncio.Task | None:
        return self._task

    def _launch(self) -> None:
        self._task = self._engine._spawn(self._runner(self._queue.put_nowait))

    def __aiter__(self) -> "SessionStream":
        return self

    async def __anext__(self) -> Event:
        if self._closed:
            raise StopAsyncIteration
        if self._task is None:
            self._launch()
        item = await self._queue.get()
        if item is _END:
            self._closed = True
            raise StopAsyncIteration
        return item

    async def aclose(self) -> None:
        self._closed = True


class PipelineEngine:
    """Owns the stage state machine for any number of concurrent sessions."""

    def __init__(
        self,
        tools: StageTools,
        checkpoints: CheckpointStore | None = None,
    ):
        self.tools = tools
        self.checkpoints = checkpoints if checkpoints is not None else CheckpointStore()
        self._tasks: set[asyncio.Task] = set()

    @property
    def artifacts(self) -> ArtifactStore:
        return self.tools.artifacts

    def start(
        self,
        raw_input: str,
        document_type: str | None = None,
        session_id: str | None = None,
    ) -> SessionStream:
        """Create a fresh session and stream it from the Draft stage.

        A caller-supplied session_id that already exists is replaced by the
        new session, artifact included.
        """
        state = new_session_state(raw_input, document_type, session_id)
        self.artifacts.discard(state["session_id"])
        return self._stream(state, Stage.DRAFT)

    def resubmit(self, session_id: str) -> SessionStream:
        """Run another Draft → Verify → Audit pass over a checkpointed session.

        raw_input, revision_count and the review flag carry over. A session
        paused for review may be resubmitted instead of resumed; this
        discards the pending draft. The artifact of an earlier cycle is
        dropped. Raises SessionNotFoundError for unknown ids.
        """
        checkpoint = self.checkpoints.get(session_id)
        self.artifacts.discard(session_id)
        return self._stream(checkpoint.state, Stage.DRAFT)

    def resume(self, request: ResumeRequest) -> SessionStream:
        """Continue a session paused at the review interrupt.

        Raises SessionNotFoundError for unknown ids and SessionNotPausedError
        when the session is not paused; neither mutates any state. A content
        override is applied only when the draft was not approved. If the
        resumed run fails or is cancelled before its first checkpoint, the
        paused checkpoint is put back so the session can be resumed again.
        """
        checkpoint = self.checkpoints.get(request.session_id)
        if not checkpoint.paused:
            raise SessionNotPausedError(
                f"Session '{request.session_id}' is not waiting for review."
            )

        state = checkpoint.state
        if not request.approved and request.document_content is not None:
            state = {**state, "document_content": request.document_content}

        # Claim the session so a second resume for the same id is rejected.
        self.checkpoints.put(
            request.session_id,
            Checkpoint(state=state, stage=checkpoint.stage, paused=False),
        )
        print(
            f"[Flow] Resume | Session: {request.session_id} | approved={request.approved}",
            file=sys.stderr,
        )
        return self._stream(
            state, _stage_after_interrupt(checkpoint.stage), restore=checkpoint
        )

    def get_state(self, session_id: str) -> SessionState:
        """Return the checkpointed state. Raises SessionNotFoundError for unknown ids."""
        return self.checkpoints.get(session_id).state

    def fetch_artifact(self, session_id: str) -> bytes:
        """Return the exported document. Raises SessionNotFoundError if none was stored."""
        return self.artifacts.get(session_id)

    async def join(self) -> None:
        """Wait until every session task started by this engine has finished."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def _spawn(self, coro: Awaitable[None]) -> asyncio.Task:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    def _stream(
        self,
        state: SessionState,
        stage: Stage | None,
        restore: Checkpoint | None = None,
    ) -> SessionStream:
        return SessionStream(self, lambda emit: self._execute(state, stage, emit, restore))

    async def _execute(
        self,
        state: SessionState,
        stage: Stage | None,
        emit: Emit,
        restore: Checkpoint | None = None,
    ) -> None:
        session_id = state["session_id"]
        publisher = EventPublisher(session_id, state)

        try:
            while stage is not None:
                print(f"[Flow] Stage: {stage.value} | Session: {session_id}", file=sys.stderr)
                emit(publisher.stage_started(stage.value, state))

                state, updates = await run_single_step(state, stage, self.tools)
                paused = stage in INTERRUPT_AFTER
                self.checkpoints.put(
                    session_id, Checkpoint(state=state, stage=stage.value, paused=paused)
                )
                restore = None

                emit(publisher.stage_finished(stage.value, updates))

                if paused:
                    print(f"[Flow] Paused for review | Session: {session_id}", file=sys.stderr)
                    break
                stage = next_stage(stage, state)
            emit(publisher.done())
        except asyncio.CancelledError:
            self._restore(session_id, restore)
            raise
        except Exception as exc:
            print(
                f"[Flow] Stage {stage.value if stage else '?'} failed | Session: {session_id} | {exc!r}",
                file=sys.stderr,
            )
            self._restore(session_id, restore)
            emit(publisher.error(str(exc) or type(exc).__name__))
        finally:
            emit(_END)

    def _restore(self, session_id: str, checkpoint: Checkpoint | None) -> None:
        if checkpoint is not None:
            print(f"[Flow] Back to paused | Session: {session_id}", file=sys.stderr)
            self.checkpoints.put(session_id, checkpoint)


def _stage_after_interrupt(stage_name: str) -> Stage:
    stage = Stage(stage_name)
    following = next_stage(stage, {})
    if following is None:
        raise SessionNotPausedError(f"No stage follows '{stage_name}'.")
    return following


def create_engine(config: dict | None = None) -> PipelineEngine:
    """Build an engine wired to the configured chat model, corpus and renderer."""
    config = config or get_config()
    corpus = Corpus.from_directory(
        resolve_path(config.get("corpus_dir", "./data/corpus")),
        superseded_markers=config.get("superseded_markers", []),
        pending_markers=config.get("pending_markers", []),
    )
    tools = StageTools(
        completion=ChatModelClient(create_chat_model(config)),
        scorer=RetrievalScorer(corpus),
        renderer=MarkdownRenderer(),
        artifacts=ArtifactStore(),
    )
    return PipelineEngine(tools)
