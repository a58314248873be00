"""Exporter — renders the final document and stores it for download.

Rendering is raced against export_timeout_seconds. A timeout or renderer
failure is logged and swallowed: the session still completes and the
artifact is simply absent.
"""

import asyncio
import sys

from hydrodoc.config import get_config
from hydrodoc.state import SessionState
from hydrodoc.tools import StageTools


async def export_node(state: SessionState, tools: StageTools) -> dict:
    """Export stage."""
    session_id = state["session_id"]
    timeout = get_config().get("export_timeout_seconds", 15)

    try:
        artifact = await asyncio.wait_for(tools.renderer.render(state), timeout=timeout)
    except asyncio.TimeoutError:
        print(
            f"[Flow] Export timed out after {timeout}s | Session: {session_id}",
            file=sys.stderr,
        )
    except Exception as exc:
        print(
            f"[Flow] Export error | Session: {session_id} | {exc!r}",
            file=sys.stderr,
        )
    else:
        tools.artifacts.put(session_id, artifact)

    return {"status": "completed"}
