"""Auditor — counts the revision and forces human review once the limit is passed."""

from hydrodoc.config import get_config
from hydrodoc.state import SessionState
from hydrodoc.tools import StageTools

TOO_MANY_REVISIONS_REASON = "too many revisions; requires manual confirmation"


def audit(state: SessionState, max_revisions: int) -> dict:
    """Return the audit delta for state.

    Below the limit the review flag and reason are carried over unchanged,
    so a flag raised by verification survives.
    """
    revision_count = state.get("revision_count", 0) + 1
    needs_review = state.get("needs_human_review") is True
    reason = state.get("review_reason")

    if revision_count > max_revisions:
        return {
            "status": "reviewing",
            "revision_count": revision_count,
            "needs_human_review": True,
            "review_reason": reason or TOO_MANY_REVISIONS_REASON,
        }

    return {
        "status": "reviewing",
        "revision_count": revision_count,
        "needs_human_review": needs_review,
        "review_reason": reason if needs_review else None,
    }


async def audit_node(state: SessionState, tools: StageTools) -> dict:
    """Audit stage."""
    return audit(state, get_config().get("max_revisions", 3))
