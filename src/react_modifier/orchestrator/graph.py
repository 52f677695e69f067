"""LangGraph wiring for the modification dispatcher.

Wires the snapshot loader, ScopeAnalyzer, the five strategy executors,
the traditional fallback and the emergency creator into a StateGraph whose
conditional edges follow the transition table in ``recovery``.
"""

import logging
from typing import Callable, Mapping

from langgraph.graph import END, START, StateGraph

from react_modifier.agents.scope_analyzer import ScopeAnalyzer
from react_modifier.agents.snapshot_builder import ProjectSnapshot
from react_modifier.models import ModificationScope, ScopeKind, StrategyResult
from react_modifier.orchestrator.exceptions import GraphBuildError
from react_modifier.orchestrator.recovery import (
    EMERGENCY,
    FALLBACK,
    FINALIZE,
    PRIMARY,
    classify_outcome,
    route_from_state,
    select_final_result,
)
from react_modifier.orchestrator.state import ModificationState
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import StrategyExecutor
from react_modifier.strategies.emergency import EmergencyCreator
from react_modifier.strategies.fallback import FallbackProcessor

logger = logging.getLogger(__name__)


def _run_tier(
    stage: str,
    label: str,
    run: Callable[[], StrategyResult],
    session: SessionContext,
) -> dict:
    """Run one tier and translate its outcome into a state update.

    A raised exception becomes a failed StrategyResult plus an ``errors``
    entry; successful writes refresh the snapshot records they touched.
    """
    raised = False
    try:
        result = run()
    except Exception as exc:
        logger.error("%s tier (%s) raised: %s", stage, label, exc)
        raised = True
        result = StrategyResult.failure(label, f"{label} raised: {exc}")

    if result.success and result.changed_files:
        try:
            session.refresh_snapshot(result.changed_files)
        except Exception as exc:
            logger.warning("Snapshot refresh failed after %s: %s", stage, exc)

    outcome = classify_outcome(result, raised)
    logger.info("Tier %s (%s) -> %s", stage, result.approach, outcome)
    update: dict = {
        "stage": stage,
        "last_outcome": outcome,
        "tier_results": [result],
        "tiers_attempted": [f"{stage}:{result.approach}"],
    }
    if raised:
        update["errors"] = [f"{stage}_node error: {result.error}"]
    return update


def make_snapshot_node(
    load_snapshot: Callable[[], ProjectSnapshot],
    session: SessionContext,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that makes the project snapshot ready.

    The closure installs the loaded snapshot on the session. A load failure
    leaves an empty snapshot in place; it never stops the request.
    """

    def snapshot_node(state: ModificationState) -> dict:
        try:
            session.snapshot = load_snapshot()
            return {"snapshot_files": len(session.snapshot)}
        except Exception as exc:
            logger.warning("Snapshot build failed, continuing with empty snapshot: %s", exc)
            session.snapshot = ProjectSnapshot(session.base_path)
            return {"snapshot_files": 0, "errors": [f"snapshot_node error: {exc}"]}

    return snapshot_node


def make_analyze_node(
    analyzer: ScopeAnalyzer,
    session: SessionContext,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that classifies the prompt.

    ``ScopeAnalyzer.analyze_scope`` already degrades to TARGETED_NODES; the
    closure repeats that default if the analyzer raises anyway.
    """

    def analyze_node(state: ModificationState) -> dict:
        context = state["conversation_context"] or session.ledger.get_contextual_summary()
        try:
            scope = analyzer.analyze_scope(
                state["prompt"],
                session.snapshot.summary().text,
                context or None,
                state["db_summary"],
            )
        except Exception as exc:
            logger.warning("Scope analysis raised, using safe default: %s", exc)
            scope = ModificationScope(
                kind=ScopeKind.TARGETED_NODES,
                reasoning=f"Scope analysis failed ({exc}); defaulting to targeted node changes",
            )
            session.progress(f"Scope: {scope.kind.value} ({scope.reasoning})")
            return {"scope": scope, "errors": [f"analyze_node error: {exc}"]}
        session.progress(f"Scope: {scope.kind.value} ({scope.reasoning})")
        return {"scope": scope}

    return analyze_node


def make_primary_node(
    executors: Mapping[ScopeKind, StrategyExecutor],
    session: SessionContext,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure that runs the scope's own executor."""

    def primary_node(state: ModificationState) -> dict:
        scope = state["scope"]
        executor = executors[scope.kind]
        return _run_tier(
            PRIMARY,
            executor.approach,
            lambda: executor.execute(state["prompt"], scope, session),
            session,
        )

    return primary_node


def make_fallback_node(
    fallback: FallbackProcessor,
    session: SessionContext,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure running the traditional fallback.

    Always sends the original user prompt, never a strategy's own prompt.
    """

    def fallback_node(state: ModificationState) -> dict:
        failed = state["tier_results"][-1].approach if state["tier_results"] else None
        session.progress(f"Primary approach {failed} failed; trying traditional fallback")
        return _run_tier(
            FALLBACK,
            fallback.approach,
            lambda: fallback.execute(state["prompt"], state["scope"], session, failed_approach=failed),
            session,
        )

    return fallback_node


def make_emergency_node(
    creator: EmergencyCreator,
    session: SessionContext,
) -> Callable[[ModificationState], dict]:
    """Factory: returns a node closure for the one emergency attempt."""

    def emergency_node(state: ModificationState) -> dict:
        update = _run_tier(
            EMERGENCY,
            creator.approach,
            lambda: creator.execute(state["prompt"], state["scope"], session),
            session,
        )
        update["emergency_attempted"] = True
        return update

    return emergency_node


def finalize_node(state: ModificationState) -> dict:
    """Pick the result reported to the caller."""
    return {"final_result": select_final_result(state["tier_results"])}


def make_route_fn() -> Callable[[ModificationState], str]:
    """Factory: returns the router used on every conditional edge."""

    def route_fn(state: ModificationState) -> str:
        target = route_from_state(state)
        logger.debug("Route after %s/%s: %s", state["stage"], state["last_outcome"], target)
        return target

    return route_fn


def build_graph(
    session: SessionContext,
    load_snapshot: Callable[[], ProjectSnapshot],
    analyzer: ScopeAnalyzer,
    executors: Mapping[ScopeKind, StrategyExecutor],
    fallback: FallbackProcessor | None = None,
    emergency: EmergencyCreator | None = None,
):
    """Build and compile the dispatcher StateGraph.

    Edge topology:
      START -> snapshot_node -> analyze_node -> primary_node
      primary_node -> conditional(route_fn) -> {fallback_node, emergency_node, finalize_node}
      fallback_node -> conditional(route_fn) -> {emergency_node, finalize_node}
      emergency_node -> finalize_node -> END

    Args:
        session: Session context shared by every node of this request.
        load_snapshot: Returns the snapshot for the session (cache or scan).
        analyzer: ScopeAnalyzer instance.
        executors: One executor per ScopeKind.
        fallback: Traditional fallback processor.
        emergency: Emergency creator.

    Returns:
        CompiledStateGraph ready to invoke.

    Raises:
        GraphBuildError: If graph construction fails.
    """
    try:
        missing = [kind.value for kind in ScopeKind if kind not in executors]
        if missing:
            raise ValueError(f"No executor registered for: {', '.join(missing)}")

        graph = StateGraph(ModificationState)

        # Create node closures
        _snapshot_node = make_snapshot_node(load_snapshot, session)
        _analyze_node = make_analyze_node(analyzer, session)
        _primary_node = make_primary_node(executors, session)
        _fallback_node = make_fallback_node(fallback or FallbackProcessor(), session)
        _emergency_node = make_emergency_node(emergency or EmergencyCreator(), session)
        _route_fn = make_route_fn()

        # Register nodes
        graph.add_node("snapshot_node", _snapshot_node)
        graph.add_node("analyze_node", _analyze_node)
        graph.add_node("primary_node", _primary_node)
        graph.add_node("fallback_node", _fallback_node)
        graph.add_node("emergency_node", _emergency_node)
        graph.add_node("finalize_node", finalize_node)

        # Linear edges: START -> snapshot -> analyze -> primary
        graph.add_edge(START, "snapshot_node")
        graph.add_edge("snapshot_node", "analyze_node")
        graph.add_edge("analyze_node", "primary_node")

        graph.add_conditional_edges(
            "primary_node",
            _route_fn,
            {
                FALLBACK: "fallback_node",
                EMERGENCY: "emergency_node",
                FINALIZE: "finalize_node",
            },
        )
        graph.add_conditional_edges(
            "fallback_node",
            _route_fn,
            {
                EMERGENCY: "emergency_node",
                FINALIZE: "finalize_node",
            },
        )

        graph.add_edge("emergency_node", "finalize_node")
        graph.add_edge("finalize_node", END)

        return graph.compile()

    except Exception as exc:
        raise GraphBuildError(f"Failed to build dispatcher graph: {exc}") from exc
