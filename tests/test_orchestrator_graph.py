"""Unit tests for the dispatcher graph nodes and wiring."""
from unittest.mock import MagicMock

import pytest

from react_modifier.agents.snapshot_builder import ProjectSnapshot
from react_modifier.models import ModificationScope, ScopeKind, StrategyResult
from react_modifier.orchestrator.exceptions import GraphBuildError
from react_modifier.orchestrator.graph import (
    build_graph,
    finalize_node,
    make_analyze_node,
    make_emergency_node,
    make_fallback_node,
    make_primary_node,
    make_snapshot_node,
)
from react_modifier.orchestrator.state import make_initial_state


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def make_executor(approach: str, result=None, error=None) -> MagicMock:
    executor = MagicMock()
    executor.approach = approach
    if error is not None:
        executor.execute.side_effect = error
    else:
        executor.execute.return_value = result or StrategyResult.failure(approach, "no luck")
    return executor


def make_executors(**overrides) -> dict:
    executors = {kind: make_executor(kind.value) for kind in ScopeKind}
    executors.update({ScopeKind[name]: executor for name, executor in overrides.items()})
    return executors


def scoped_state(kind: ScopeKind, prompt: str = "make it better"):
    state = make_initial_state(prompt)
    state["scope"] = ModificationScope(kind=kind, reasoning="test scope")
    return state


# ---------------------------------------------------------------------------
# snapshot_node / analyze_node
# ---------------------------------------------------------------------------

class TestSnapshotNode:
    def test_installs_loaded_snapshot(self, session):
        snapshot = session.snapshot
        session.snapshot = ProjectSnapshot(session.base_path)
        node = make_snapshot_node(lambda: snapshot, session)
        update = node(make_initial_state("x"))
        assert update == {"snapshot_files": len(snapshot)}
        assert session.snapshot is snapshot

    def test_load_failure_leaves_empty_snapshot(self, session):
        loader = MagicMock(side_effect=OSError("disk gone"))
        update = make_snapshot_node(loader, session)(make_initial_state("x"))
        assert update["snapshot_files"] == 0
        assert update["errors"] == ["snapshot_node error: disk gone"]
        assert session.snapshot.is_empty()


class TestAnalyzeNode:
    def test_scope_from_analyzer(self, session):
        scope = ModificationScope(kind=ScopeKind.FULL_FILE, reasoning="whole layout")
        analyzer = MagicMock()
        analyzer.analyze_scope.return_value = scope
        update = make_analyze_node(analyzer, session)(make_initial_state("redo layout", db_summary="db"))
        assert update == {"scope": scope}
        args = analyzer.analyze_scope.call_args.args
        assert args[0] == "redo layout"
        assert args[3] == "db"

    def test_analyzer_exception_defaults_to_targeted(self, session):
        analyzer = MagicMock()
        analyzer.analyze_scope.side_effect = RuntimeError("boom")
        update = make_analyze_node(analyzer, session)(make_initial_state("x"))
        assert update["scope"].kind == ScopeKind.TARGETED_NODES
        assert update["errors"] == ["analyze_node error: boom"]


# ---------------------------------------------------------------------------
# Tier nodes
# ---------------------------------------------------------------------------

class TestPrimaryNode:
    def test_success_refreshes_snapshot(self, session):
        result = StrategyResult(success=True, approach="FULL_FILE", modified_files=["src/App.tsx"])
        executors = make_executors(FULL_FILE=make_executor("FULL_FILE", result))
        session.refresh_snapshot = MagicMock()

        update = make_primary_node(executors, session)(scoped_state(ScopeKind.FULL_FILE))

        assert update["stage"] == "primary"
        assert update["last_outcome"] == "success"
        assert update["tier_results"] == [result]
        assert update["tiers_attempted"] == ["primary:FULL_FILE"]
        assert "errors" not in update
        session.refresh_snapshot.assert_called_once_with(["src/App.tsx"])

    def test_failure_is_reported(self, session):
        update = make_primary_node(make_executors(), session)(scoped_state(ScopeKind.TAILWIND_CHANGE))
        assert update["last_outcome"] == "failed"
        assert update["tiers_attempted"] == ["primary:TAILWIND_CHANGE"]

    def test_exception_becomes_failed_result(self, session):
        executors = make_executors(FULL_FILE=make_executor("FULL_FILE", error=RuntimeError("boom")))
        update = make_primary_node(executors, session)(scoped_state(ScopeKind.FULL_FILE))
        assert update["last_outcome"] == "raised"
        assert update["tier_results"][0].success is False
        assert update["errors"] == ["primary_node error: FULL_FILE raised: boom"]


class TestFallbackNode:
    def test_passes_failed_approach_and_original_prompt(self, session):
        fallback = make_executor("TRADITIONAL_FULL_FILE")
        state = scoped_state(ScopeKind.TARGETED_NODES, prompt="make the button blue")
        state["tier_results"] = [StrategyResult.failure("TARGETED_NODES", "no nodes")]

        update = make_fallback_node(fallback, session)(state)

        fallback.execute.assert_called_once_with(
            "make the button blue", state["scope"], session, failed_approach="TARGETED_NODES"
        )
        assert update["stage"] == "fallback"
        assert update["tiers_attempted"] == ["fallback:TRADITIONAL_FULL_FILE"]


def test_emergency_node_marks_attempt(session):
    creator = make_executor("COMPONENT_ADDITION", StrategyResult(success=True, approach="COMPONENT_ADDITION"))
    update = make_emergency_node(creator, session)(scoped_state(ScopeKind.TARGETED_NODES))
    assert update["emergency_attempted"] is True
    assert update["last_outcome"] == "success"


def test_finalize_node_picks_last_success():
    state = make_initial_state("x")
    good = StrategyResult(success=True, approach="TRADITIONAL_FULL_FILE")
    state["tier_results"] = [StrategyResult.failure("TARGETED_NODES", "no"), good]
    assert finalize_node(state) == {"final_result": good}


# ---------------------------------------------------------------------------
# build_graph
# ---------------------------------------------------------------------------

class TestBuildGraph:
    def test_missing_executor_raises(self, session):
        executors = make_executors()
        del executors[ScopeKind.TAILWIND_CHANGE]
        with pytest.raises(GraphBuildError, match="TAILWIND_CHANGE"):
            build_graph(session, lambda: session.snapshot, MagicMock(), executors)

    def _analyzer(self, kind: ScopeKind) -> MagicMock:
        analyzer = MagicMock()
        analyzer.analyze_scope.return_value = ModificationScope(kind=kind, reasoning="test scope")
        return analyzer

    def test_full_cascade_ends_in_emergency(self, session):
        fallback = make_executor("TRADITIONAL_FULL_FILE")
        emergency = make_executor(
            "COMPONENT_ADDITION", StrategyResult(success=True, approach="COMPONENT_ADDITION")
        )
        graph = build_graph(
            session,
            lambda: session.snapshot,
            self._analyzer(ScopeKind.TARGETED_NODES),
            make_executors(),
            fallback=fallback,
            emergency=emergency,
        )

        final = graph.invoke(make_initial_state("make it better"))

        assert final["tiers_attempted"] == [
            "primary:TARGETED_NODES",
            "fallback:TRADITIONAL_FULL_FILE",
            "emergency:COMPONENT_ADDITION",
        ]
        assert final["emergency_attempted"] is True
        assert final["final_result"].approach == "COMPONENT_ADDITION"
        assert final["final_result"].success is True

    def test_text_failure_stops_after_primary(self, session):
        fallback = make_executor("TRADITIONAL_FULL_FILE")
        emergency = make_executor("COMPONENT_ADDITION")
        graph = build_graph(
            session,
            lambda: session.snapshot,
            self._analyzer(ScopeKind.TEXT_BASED_CHANGE),
            make_executors(),
            fallback=fallback,
            emergency=emergency,
        )

        final = graph.invoke(make_initial_state("change 'A' to 'B'"))

        assert final["tiers_attempted"] == ["primary:TEXT_BASED_CHANGE"]
        assert final["final_result"].success is False
        fallback.execute.assert_not_called()
        emergency.execute.assert_not_called()

    def test_component_failure_skips_fallback(self, session):
        fallback = make_executor("TRADITIONAL_FULL_FILE")
        emergency = make_executor("COMPONENT_ADDITION")
        graph = build_graph(
            session,
            lambda: session.snapshot,
            self._analyzer(ScopeKind.COMPONENT_ADDITION),
            make_executors(),
            fallback=fallback,
            emergency=emergency,
        )

        final = graph.invoke(make_initial_state("add a banner"))

        assert final["tiers_attempted"] == ["primary:COMPONENT_ADDITION", "emergency:COMPONENT_ADDITION"]
        fallback.execute.assert_not_called()
        assert emergency.execute.call_count == 1
