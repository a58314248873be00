"""Stage state machine for the drafting pipeline.

    draft → verify → audit ─┬─ needs_human_review → human_review ⏸ → export → END
                            └─ otherwise ─────────────────────────→ export → END

The same table drives both the streaming engine (step by step, see
engine.py) and the compiled LangGraph graph used for batch runs.
"""

from enum import Enum

from langgraph.checkpoint.memory import MemorySaver
from langgraph.graph import END, StateGraph

from hydrodoc.agents.auditor import audit_node
from hydrodoc.agents.drafter import draft_node
from hydrodoc.agents.exporter import export_node
from hydrodoc.agents.verifier import verify_node
from hydrodoc.state import SessionState
from hydrodoc.tools import StageTools


class Stage(str, Enum):
    DRAFT = "draft"
    VERIFY = "verify"
    AUDIT = "audit"
    HUMAN_REVIEW = "human_review"
    EXPORT = "export"


# Execution pauses after these stages until an explicit resume.
INTERRUPT_AFTER = frozenset({Stage.HUMAN_REVIEW})


async def human_review_node(state: SessionState, tools: StageTools) -> dict:
    """Interrupt point. Marks the session as under review and changes nothing else."""
    return {"status": "reviewing"}


_NODE_FNS = {
    Stage.DRAFT: draft_node,
    Stage.VERIFY: verify_node,
    Stage.AUDIT: audit_node,
    Stage.HUMAN_REVIEW: human_review_node,
    Stage.EXPORT: export_node,
}


def route_after_audit(state: SessionState) -> Stage:
    """Conditional edge after the Audit stage. Pure function of state."""
    if state.get("needs_human_review") is True:
        return Stage.HUMAN_REVIEW
    return Stage.EXPORT


def next_stage(stage: Stage, state: SessionState) -> Stage | None:
    """Return the stage that follows stage, or None once the pipeline is done."""
    if stage is Stage.DRAFT:
        return Stage.VERIFY
    if stage is Stage.VERIFY:
        return Stage.AUDIT
    if stage is Stage.AUDIT:
        return route_after_audit(state)
    if stage is Stage.HUMAN_REVIEW:
        return Stage.EXPORT
    if stage is Stage.EXPORT:
        return None
    raise ValueError(f"Unknown stage: {stage!r}")


async def run_single_step(state: SessionState, stage: Stage, tools: StageTools) -> tuple[SessionState, dict]:
    """Run one stage and return (merged state, stage delta).

    Used by the engine for step-by-step execution with checkpoints.
    """
    node_fn = _NODE_FNS[stage]
    updates = await node_fn(state, tools)
    return {**state, **updates}, updates


# --- Compiled graph for batch runs ---


def _bind(node_fn, tools: StageTools):
    async def node(state: SessionState) -> dict:
        return await node_fn(state, tools)

    node.__name__ = node_fn.__name__
    return node


def _route_after_audit_edge(state: SessionState) -> str:
    return route_after_audit(state).value


def build_graph(tools: StageTools, checkpointer=None):
    """Compile the pipeline as a LangGraph StateGraph.

    Runs pause after human_review; continue with graph.ainvoke(None, config)
    for the same thread_id.
    """
    workflow = StateGraph(SessionState)

    for stage, node_fn in _NODE_FNS.items():
        workflow.add_node(stage.value, _bind(node_fn, tools))

    workflow.set_entry_point(Stage.DRAFT.value)
    workflow.add_edge(Stage.DRAFT.value, Stage.VERIFY.value)
    workflow.add_edge(Stage.VERIFY.value, Stage.AUDIT.value)
    workflow.add_conditional_edges(
        Stage.AUDIT.value,
        _route_after_audit_edge,
        {
            Stage.HUMAN_REVIEW.value: Stage.HUMAN_REVIEW.value,
            Stage.EXPORT.value: Stage.EXPORT.value,
        },
    )
    workflow.add_edge(Stage.HUMAN_REVIEW.value, Stage.EXPORT.value)
    workflow.add_edge(Stage.EXPORT.value, END)

    return workflow.compile(
        checkpointer=checkpointer or MemorySaver(),
        interrupt_after=[s.value for s in INTERRUPT_AFTER],
    )
