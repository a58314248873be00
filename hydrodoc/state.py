"""Session state — single source of truth passed through the pipeline."""

import uuid
from typing import Literal, Optional, TypedDict

Status = Literal["idle", "drafting", "reviewing", "completed"]


class Citation(TypedDict):
    source_title: str  # Corpus block the line came from.
    article_number: Optional[int]
    article_text: str  # The verbatim corpus line.


class SessionState(TypedDict):
    session_id: str  # Assigned once at creation. Never reassigned.
    raw_input: str  # Original user input. Immutable after init.
    document_content: str  # Latest draft text.
    citations: list[Citation]  # Rank order.
    document_type: Optional[str]
    extracted_fields: Optional[dict]
    status: Status
    revision_count: int  # +1 per Draft and per Audit. Never decremented.
    needs_human_review: bool
    review_reason: Optional[str]  # Only set alongside needs_human_review.


def new_session_state(
    raw_input: str,
    document_type: str | None = None,
    session_id: str | None = None,
) -> SessionState:
    """Build the initial state for a fresh session."""
    return {
        "session_id": session_id or str(uuid.uuid4()),
        "raw_input": raw_input,
        "document_content": "",
        "citations": [],
        "document_type": document_type,
        "extracted_fields": None,
        "status": "idle",
        "revision_count": 0,
        "needs_human_review": False,
        "review_reason": None,
    }


def citation_key(citation: Citation) -> tuple[str, str]:
    """Uniqueness key of a citation within one result set."""
    return citation["source_title"], citation["article_text"]
