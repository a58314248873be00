"""Drafter — extracts fields from the raw input, retrieves citations, drafts the document.

The completion collaborator is called twice:
1. field extraction, answered as a JSON object with optional keys
   subject, time, place, violation;
2. drafting, given the raw material and the formatted citation lines.
"""

import asyncio
import sys

from hydrodoc.config import get_config
from hydrodoc.state import SessionState
from hydrodoc.tools import StageTools
from hydrodoc.utils.citations import format_citations
from hydrodoc.utils.parsing import parse_json_object

EXTRACT_SYSTEM_PROMPT = """\
You are an assistant for water administration enforcement documents.

From the site description, interview record or OCR text supplied by the user, extract the \
party responsible for the violation, the time, the place and the violating behaviour.

Respond ONLY with one JSON object with these optional string fields:
{"subject": "...", "time": "...", "place": "...", "violation": "..."}
Omit fields you cannot find. No markdown fences, no commentary.
"""

DRAFT_SYSTEM_PROMPT = """\
You are a drafting assistant for official water administration documents.

Using the material supplied by the user and the given legal citations, draft the body of a \
"{document_type}" that follows official writing conventions.

Rules:
- Quote legal provisions exactly in the citation format provided, including the quoted text.
- Output ONLY the body text. No title, no signature block.
"""


async def extract_fields(raw_input: str, tools: StageTools) -> dict:
    """Ask the completion collaborator for structured fields. Unparseable replies yield {}."""
    messages = [
        {"role": "system", "content": EXTRACT_SYSTEM_PROMPT},
        {"role": "user", "content": raw_input},
    ]
    content = await tools.completion.complete(messages)
    return parse_json_object(content)


def build_query(fields: dict, raw_input: str, query_fields: list[str]) -> str:
    """Join the configured extracted field values and the raw input with spaces."""
    parts = [fields.get(name) for name in query_fields]
    parts = [p.strip() for p in parts if isinstance(p, str) and p.strip()]
    parts.append(raw_input)
    return " ".join(parts)


async def generate_draft(
    raw_input: str,
    document_type: str,
    citation_lines: list[str],
    tools: StageTools,
) -> str:
    system = DRAFT_SYSTEM_PROMPT.format(document_type=document_type)
    legal_basis = "\n".join(citation_lines) if citation_lines else "(none found)"
    user_content = (
        f"## Material\n{raw_input}\n\n"
        f"## Legal Basis (cite in exactly this format)\n{legal_basis}"
    )
    messages = [
        {"role": "system", "content": system},
        {"role": "user", "content": user_content},
    ]
    return await tools.completion.complete(messages)


async def draft_node(state: SessionState, tools: StageTools) -> dict:
    """Draft stage.

    Empty input produces an empty draft without any collaborator call.
    Otherwise: extract fields → retrieve up to top_k citations → generate
    the draft. Insufficient evidence leaves the citation list empty.
    """
    config = get_config()
    revision_count = state.get("revision_count", 0) + 1

    raw_input = (state.get("raw_input") or "").strip()
    if not raw_input:
        return {
            "document_content": "",
            "status": "drafting",
            "revision_count": revision_count,
        }

    fields = await extract_fields(raw_input, tools)
    query = build_query(fields, raw_input, config.get("query_fields", ["violation", "place"]))
    result = await asyncio.to_thread(
        tools.scorer.search, query, config.get("retrieval_top_k", 5)
    )

    if result.insufficient_evidence:
        print(
            f"[Flow] Insufficient evidence for query | Session: {state['session_id']}",
            file=sys.stderr,
        )
        citations = []
    else:
        citations = result.citations

    document_type = state.get("document_type") or config.get("default_document_type", "Document")
    document_content = await generate_draft(
        raw_input, document_type, format_citations(citations), tools
    )

    return {
        "extracted_fields": fields,
        "citations": citations,
        "document_content": document_content,
        "status": "drafting",
        "revision_count": revision_count,
    }
