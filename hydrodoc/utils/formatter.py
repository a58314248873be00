"""Output Formatter — renders the final session state as a Markdown document."""

import asyncio
from datetime import date

from hydrodoc.config import get_config
from hydrodoc.state import SessionState
from hydrodoc.utils.citations import format_citation


def _render_markdown(state: SessionState, today: date | None = None) -> str:
    """Convert the session state into the exported document text."""
    lines = []

    title = state.get("document_type") or get_config().get("default_document_type", "Document")
    lines.append(f"# {title}")
    lines.append("")

    # Body — one paragraph per non-blank line, blank lines preserved as breaks
    content = (state.get("document_content") or "").strip()
    for line in content.splitlines():
        lines.append(line.strip())
    if content:
        lines.append("")

    # Legal basis
    citations = state.get("citations") or []
    if citations:
        lines.append("## Legal Basis")
        lines.append("")
        for citation in citations:
            lines.append(f"- {format_citation(citation)}")
        lines.append("")

    # Review note, only if the document went out flagged
    if state.get("needs_human_review") and state.get("review_reason"):
        lines.append(f"> Reviewer note: {state['review_reason']}")
        lines.append("")

    today = today or date.today()
    lines.append(f"{today.year}-{today.month:02d}-{today.day:02d}")
    lines.append("")
    lines.append("(Issuing authority)")

    return "\n".join(lines) + "\n"


class MarkdownRenderer:
    """Document-rendering collaborator producing UTF-8 Markdown bytes."""

    async def render(self, state: SessionState) -> bytes:
        text = await asyncio.to_thread(_render_markdown, state)
        return text.encode("utf-8")
