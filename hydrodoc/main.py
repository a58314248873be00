"""Entry point: drafts a document from raw input, pauses for review, writes the export."""

import asyncio
import sys
from pathlib import Path

from hydrodoc.config import get_config, resolve_path
from hydrodoc.engine import PipelineEngine, create_engine
from hydrodoc.errors import SessionNotFoundError
from hydrodoc.events import StageFinished, StageStarted, StreamDone, StreamFailed
from hydrodoc.graph import build_graph
from hydrodoc.state import new_session_state
from hydrodoc.utils.validator import ResumeRequest


def _collect_review_input(state: dict) -> ResumeRequest:
    """Prompt the user in the terminal to approve or replace the draft."""
    print("\n--- The draft needs your review ---\n")
    print(f"Reason: {state.get('review_reason') or 'not given'}\n")
    print(state.get("document_content") or "(empty draft)")
    print()

    while True:
        choice = input("Approve this draft? [y/n]: ").strip().lower()
        if choice in ("y", "yes"):
            return ResumeRequest(session_id=state["session_id"], approved=True)
        if choice in ("n", "no"):
            break
        print("Please answer y or n.")

    print("Enter the corrected document (Ctrl+D / Ctrl+Z to submit):")
    content = sys.stdin.read()
    return ResumeRequest(
        session_id=state["session_id"],
        approved=False,
        document_content=content.strip(),
    )


async def _consume(events) -> dict | None:
    """Print stage progress and return the last cumulative state, or None on failure."""
    state = None
    async for event in events:
        if isinstance(event, StageStarted):
            print(f"[HydroDoc] {event.stage} ...")
        elif isinstance(event, StageFinished):
            state = event.state
            print(
                f"[HydroDoc] {event.stage} done — status={state.get('status')}, "
                f"revisions={state.get('revision_count')}"
            )
        elif isinstance(event, StreamFailed):
            print(f"[HydroDoc] Error: {event.message}", file=sys.stderr)
            return None
        elif isinstance(event, StreamDone):
            break
    return state


def _write_artifact(session_id: str, artifact: bytes) -> Path:
    output_dir = resolve_path(get_config().get("output_dir", "./output"))
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / f"{session_id}.md"
    output_path.write_bytes(artifact)
    return output_path


async def run(
    raw_input: str,
    document_type: str | None = None,
    auto_approve: bool = False,
    engine: PipelineEngine | None = None,
) -> dict | None:
    """Run one session through the streaming engine, pausing for review if needed."""
    engine = engine or create_engine()

    state = await _consume(engine.start(raw_input, document_type=document_type))
    if state is None:
        return None

    if state.get("status") != "completed":
        if auto_approve:
            request = ResumeRequest(session_id=state["session_id"], approved=True)
        else:
            request = _collect_review_input(state)
        state = await _consume(engine.resume(request))
        if state is None:
            return None

    _report(engine, state)
    return state


async def run_batch(
    raw_input: str,
    document_type: str | None = None,
    auto_approve: bool = False,
    engine: PipelineEngine | None = None,
) -> dict:
    """Run one session through the compiled graph without event streaming."""
    engine = engine or create_engine()
    graph = build_graph(engine.tools)
    state = new_session_state(raw_input, document_type)
    config = {"configurable": {"thread_id": state["session_id"]}}

    state = await graph.ainvoke(state, config)
    if state.get("status") != "completed":
        if not auto_approve:
            print(f"[HydroDoc] Paused for review: {state.get('review_reason')}")
            print("[HydroDoc] Re-run with --auto-approve to export without review.")
            return state
        state = await graph.ainvoke(None, config)

    _report(engine, state)
    return state


def _report(engine: PipelineEngine, state: dict) -> None:
    print(f"[HydroDoc] Status: {state['status']}")
    print(f"[HydroDoc] Revisions: {state['revision_count']}")
    try:
        artifact = engine.fetch_artifact(state["session_id"])
    except SessionNotFoundError:
        print("[HydroDoc] No document was exported.", file=sys.stderr)
        return
    print(f"[HydroDoc] Output written to: {_write_artifact(state['session_id'], artifact)}")


def main() -> None:
    """CLI entry point — accepts raw input as argument or from stdin."""
    args = sys.argv[1:]
    document_type = None
    auto_approve = False
    batch = False

    if "--auto-approve" in args:
        auto_approve = True
        args.remove("--auto-approve")
    if "--batch" in args:
        batch = True
        args.remove("--batch")
    if "--document-type" in args:
        idx = args.index("--document-type")
        if idx + 1 >= len(args):
            sys.exit("--document-type needs a value")
        document_type = args[idx + 1]
        del args[idx:idx + 2]

    if args:
        raw_input = " ".join(args)
    else:
        print("Enter the raw material (Ctrl+D / Ctrl+Z to submit):")
        raw_input = sys.stdin.read()

    runner = run_batch if batch else run
    asyncio.run(runner(raw_input, document_type=document_type, auto_approve=auto_approve))


if __name__ == "__main__":
    main()
