"""Input validation — checks gateway payloads before any pipeline execution."""

from dataclasses import dataclass


@dataclass(frozen=True)
class GenerateRequest:
    raw_input: str
    document_type: str | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class ResumeRequest:
    session_id: str
    approved: bool
    document_content: str | None = None


def _optional_str(body: dict, key: str) -> str | None:
    value = body.get(key)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"'{key}' must be a string.")
    return value


def validate_generate_payload(body: dict) -> GenerateRequest:
    """Validate a generate payload.

    rawInput may be empty (the pipeline drafts an empty document) but must
    be a string when present. Raises ValueError otherwise.
    """
    if not isinstance(body, dict):
        raise ValueError("Payload must be a JSON object.")
    raw_input = _optional_str(body, "rawInput") or ""
    return GenerateRequest(
        raw_input=raw_input,
        document_type=_optional_str(body, "documentType") or None,
        session_id=_optional_str(body, "sessionId") or None,
    )


def validate_resume_payload(body: dict) -> ResumeRequest:
    """Validate a resume payload.

    Returns the parsed request on success.
    Raises ValueError if sessionId is missing or blank, or a field has the wrong type.
    """
    if not isinstance(body, dict):
        raise ValueError("Payload must be a JSON object.")
    session_id = _optional_str(body, "sessionId")
    if not session_id or not session_id.strip():
        raise ValueError("Resume payload requires a non-empty 'sessionId'.")
    approved = body.get("approved", False)
    if not isinstance(approved, bool):
        raise ValueError("'approved' must be a boolean.")
    return ResumeRequest(
        session_id=session_id.strip(),
        approved=approved,
        document_content=_optional_str(body, "documentContent"),
    )
