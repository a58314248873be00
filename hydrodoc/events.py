"""
Pipeline event stream.

The engine reports each stage's lifecycle through an EventPublisher, which
keeps a running snapshot of the session. Every StageFinished carries the
cumulative state (all fields known so far), so an observer that only keeps
the latest event never sees an earlier stage's fields vanish.

On the wire each event is a tag line and a JSON data line followed by a
blank line:

    event: node_end
    data: {"sessionId": "...", "stageName": "draft", "state": {...}}

"""

import copy
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from hydrodoc.errors import StreamClosedError


class EventTag(Enum):
    """Tags recognised on the wire."""

    NODE_START = "node_start"
    NODE_END = "node_end"
    STATE_UPDATE = "state_update"
    DONE = "done"
    ERROR = "error"


@dataclass(frozen=True)
class StageStarted:
    kind: ClassVar[str] = "start"

    session_id: str
    stage: str
    state: dict[str, Any]  # Input state handed to the stage.


@dataclass(frozen=True)
class StageFinished:
    kind: ClassVar[str] = "end"

    session_id: str
    stage: str
    state: dict[str, Any]  # Cumulative snapshot after the stage.
    delta: dict[str, Any] = field(default_factory=dict)  # What the stage changed.


@dataclass(frozen=True)
class StreamDone:
    kind: ClassVar[str] = "done"

    session_id: str


@dataclass(frozen=True)
class StreamFailed:
    kind: ClassVar[str] = "error"

    session_id: str
    message: str


Event = Union[StageStarted, StageFinished, StreamDone, StreamFailed]


class EventPublisher:
    """
    Turns stage start/end into events for one session stream.

    Usage in the engine:
        publisher = EventPublisher(session_id, initial_state)
        yield publisher.stage_started("draft", state)
        # ... run the stage ...
        yield publisher.stage_finished("draft", delta)
        yield publisher.done()

    After done() or error() the stream is closed and any further call
    raises StreamClosedError.
    """

    def __init__(self, session_id: str, snapshot: dict | None = None) -> None:
        self.session_id = session_id
        self._snapshot: dict[str, Any] = copy.deepcopy(snapshot) if snapshot else {}
        self._closed = False

    @property
    def snapshot(self) -> dict[str, Any]:
        return copy.deepcopy(self._snapshot)

    @property
    def closed(self) -> bool:
        return self._closed

    def _check_open(self) -> None:
        if self._closed:
            raise StreamClosedError(f"Event stream for session '{self.session_id}' is closed.")

    def stage_started(self, stage: str, state: dict) -> StageStarted:
        self._check_open()
        return StageStarted(self.session_id, stage, copy.deepcopy(state))

    def stage_finished(self, stage: str, delta: dict) -> StageFinished:
        """Merge delta into the running snapshot and emit the cumulative state."""
        self._check_open()
        self._snapshot = {**self._snapshot, **copy.deepcopy(delta)}
        return StageFinished(self.session_id, stage, self.snapshot, copy.deepcopy(delta))

    def done(self) -> StreamDone:
        self._check_open()
        self._closed = True
        return StreamDone(self.session_id)

    def error(self, message: str) -> StreamFailed:
        self._check_open()
        self._closed = True
        return StreamFailed(self.session_id, message or "Unknown error")


# --- Wire encoding ---

_WIRE_FIELDS = {
    "session_id": "sessionId",
    "raw_input": "rawInput",
    "document_content": "documentContent",
    "citations": "citations",
    "document_type": "documentType",
    "extracted_fields": "extractedFields",
    "status": "status",
    "revision_count": "revisionCount",
    "needs_human_review": "needsHumanReview",
    "review_reason": "reviewReason",
}

_WIRE_CITATION_FIELDS = {
    "source_title": "sourceTitle",
    "article_number": "articleNumber",
    "article_text": "articleText",
}


def to_wire_state(state: dict) -> dict:
    """Rename state keys to their wire names. extracted_fields content is left as-is."""
    wire = {}
    for key, value in state.items():
        if key == "citations" and value is not None:
            value = [
                {_WIRE_CITATION_FIELDS.get(k, k): v for k, v in citation.items()}
                for citation in value
            ]
        wire[_WIRE_FIELDS.get(key, key)] = value
    return wire


def _frame(tag: EventTag, payload: dict) -> str:
    return f"event: {tag.value}\ndata: {json.dumps(payload, ensure_ascii=False)}\n\n"


def encode_event(event: Event) -> str:
    """Serialize an event into its wire frame(s).

    StageFinished is sent as node_end followed by state_update, both
    carrying the cumulative state.
    """
    if isinstance(event, StageStarted):
        return _frame(EventTag.NODE_START, {
            "sessionId": event.session_id,
            "stageName": event.stage,
            "state": to_wire_state(event.state),
        })
    if isinstance(event, StageFinished):
        state = to_wire_state(event.state)
        return _frame(EventTag.NODE_END, {
            "sessionId": event.session_id,
            "stageName": event.stage,
            "state": state,
        }) + _frame(EventTag.STATE_UPDATE, {
            "sessionId": event.session_id,
            "state": state,
        })
    if isinstance(event, StreamDone):
        return _frame(EventTag.DONE, {"sessionId": event.session_id})
    if isinstance(event, StreamFailed):
        return _frame(EventTag.ERROR, {
            "sessionId": event.session_id,
            "message": event.message,
        })
    raise TypeError(f"Not a pipeline event: {event!r}")
