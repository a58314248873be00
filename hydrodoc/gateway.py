"""Transport-neutral gateway: payload validation in, encoded wire frames out.

An HTTP layer only needs to pass the decoded JSON body to one of these
functions and write the yielded strings to a streaming response.
"""

from typing import AsyncIterator

from hydrodoc.engine import PipelineEngine
from hydrodoc.events import encode_event
from hydrodoc.utils.validator import validate_generate_payload, validate_resume_payload


def open_generate_stream(engine: PipelineEngine, body: dict) -> AsyncIterator[str]:
    """Validate a generate payload and return the new session's wire-frame stream."""
    request = validate_generate_payload(body)
    events = engine.start(
        request.raw_input,
        document_type=request.document_type,
        session_id=request.session_id,
    )
    return _encode(events)


def open_resume_stream(engine: PipelineEngine, body: dict) -> AsyncIterator[str]:
    """Validate a resume payload and return its wire-frame stream.

    Validation and the session lookup happen here, before any frame is
    produced, so ValueError / SessionNotFoundError / SessionNotPausedError
    reach the caller while it can still answer with a plain error response.
    """
    request = validate_resume_payload(body)
    events = engine.resume(request)
    return _encode(events)


async def _encode(events) -> AsyncIterator[str]:
    async for event in events:
        yield encode_event(event)


def download_artifact(engine: PipelineEngine, session_id: str) -> bytes:
    """Return the exported document. Raises SessionNotFoundError if none exists."""
    return engine.fetch_artifact(session_id)
