"""Verifier — checks that every cited excerpt appears verbatim in the draft."""

from hydrodoc.state import Citation, SessionState
from hydrodoc.tools import StageTools
from hydrodoc.utils.citations import format_citation, quoted_excerpt

MISMATCH_REASON = (
    "generated content does not match the verbatim retrieved citation; "
    "needs manual verification"
)


def find_missing_excerpt(content: str, citations: list[Citation]) -> str | None:
    """Return the first citation excerpt absent from content, or None if all are present.

    Citations without a quoted excerpt are skipped.
    """
    for citation in citations:
        excerpt = quoted_excerpt(format_citation(citation))
        if excerpt and excerpt not in content:
            return excerpt
    return None


async def verify_node(state: SessionState, tools: StageTools) -> dict:
    """Verify stage. Raises the review flag on the first mismatch; never clears it."""
    updates = {"status": "reviewing"}
    missing = find_missing_excerpt(
        state.get("document_content") or "", state.get("citations") or []
    )
    if missing is not None:
        updates["needs_human_review"] = True
        updates["review_reason"] = MISMATCH_REASON
    return updates
