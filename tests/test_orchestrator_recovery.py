"""Tests for the fallback cascade transition helpers."""
import pytest

from react_modifier.models import ModificationScope, ScopeKind, StrategyResult
from react_modifier.orchestrator.recovery import (
    EMERGENCY,
    FAILED,
    FALLBACK,
    FINALIZE,
    PRIMARY,
    RAISED,
    SUCCESS,
    build_error_trail,
    classify_outcome,
    collect_written_files,
    next_step,
    route_from_state,
    select_final_result,
    to_modification_result,
)
from react_modifier.orchestrator.state import make_initial_state


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def ok(approach: str, modified=None, added=None) -> StrategyResult:
    return StrategyResult(
        success=True,
        approach=approach,
        modified_files=modified or [],
        added_files=added or [],
        reasoning=f"{approach} worked",
    )


def bad(approach: str, error: str = "nothing matched") -> StrategyResult:
    return StrategyResult.failure(approach, error)


# ---------------------------------------------------------------------------
# classify_outcome
# ---------------------------------------------------------------------------

class TestClassifyOutcome:
    def test_success(self):
        assert classify_outcome(ok("FULL_FILE")) == SUCCESS

    def test_failed(self):
        assert classify_outcome(bad("FULL_FILE")) == FAILED

    def test_none_is_failed(self):
        assert classify_outcome(None) == FAILED

    def test_raised_wins(self):
        assert classify_outcome(ok("FULL_FILE"), raised=True) == RAISED


# ---------------------------------------------------------------------------
# next_step
# ---------------------------------------------------------------------------

class TestNextStep:
    @pytest.mark.parametrize("kind", list(ScopeKind))
    def test_primary_success_finalizes(self, kind):
        assert next_step(PRIMARY, SUCCESS, kind, False) == FINALIZE

    @pytest.mark.parametrize(
        "kind, expected",
        [
            (ScopeKind.FULL_FILE, FALLBACK),
            (ScopeKind.TARGETED_NODES, FALLBACK),
            (ScopeKind.COMPONENT_ADDITION, EMERGENCY),
            (ScopeKind.TEXT_BASED_CHANGE, FINALIZE),
            (ScopeKind.TAILWIND_CHANGE, FINALIZE),
        ],
    )
    def test_primary_failure_routes(self, kind, expected):
        assert next_step(PRIMARY, FAILED, kind, False) == expected

    def test_primary_raise_on_text_goes_to_emergency(self):
        assert next_step(PRIMARY, RAISED, ScopeKind.TEXT_BASED_CHANGE, False) == EMERGENCY

    def test_primary_raise_on_targeted_goes_to_fallback(self):
        assert next_step(PRIMARY, RAISED, ScopeKind.TARGETED_NODES, False) == FALLBACK

    def test_fallback_failure_goes_to_emergency(self):
        assert next_step(FALLBACK, FAILED, ScopeKind.FULL_FILE, False) == EMERGENCY
        assert next_step(FALLBACK, RAISED, ScopeKind.FULL_FILE, False) == EMERGENCY

    def test_fallback_success_finalizes(self):
        assert next_step(FALLBACK, SUCCESS, ScopeKind.FULL_FILE, False) == FINALIZE

    def test_emergency_runs_once(self):
        assert next_step(FALLBACK, FAILED, ScopeKind.FULL_FILE, True) == FINALIZE
        assert next_step(PRIMARY, FAILED, ScopeKind.COMPONENT_ADDITION, True) == FINALIZE

    @pytest.mark.parametrize("outcome", [SUCCESS, FAILED, RAISED])
    def test_emergency_always_finalizes(self, outcome):
        assert next_step(EMERGENCY, outcome, ScopeKind.FULL_FILE, True) == FINALIZE


def test_route_from_state_defaults_to_targeted_without_scope():
    state = make_initial_state("x")
    state["stage"] = PRIMARY
    state["last_outcome"] = FAILED
    assert route_from_state(state) == FALLBACK


def test_route_from_state_uses_scope():
    state = make_initial_state("x")
    state["scope"] = ModificationScope(kind=ScopeKind.TAILWIND_CHANGE, reasoning="colors")
    state["stage"] = PRIMARY
    state["last_outcome"] = FAILED
    assert route_from_state(state) == FINALIZE


# ---------------------------------------------------------------------------
# Result folding
# ---------------------------------------------------------------------------

class TestSelectFinalResult:
    def test_last_success_wins(self):
        results = [bad("TARGETED_NODES"), ok("TRADITIONAL_FULL_FILE"), bad("COMPONENT_ADDITION")]
        assert select_final_result(results).approach == "TRADITIONAL_FULL_FILE"

    def test_last_failure_when_nothing_succeeded(self):
        results = [bad("TARGETED_NODES"), bad("TRADITIONAL_FULL_FILE")]
        assert select_final_result(results).approach == "TRADITIONAL_FULL_FILE"

    def test_empty(self):
        assert select_final_result([]) is None


def test_collect_written_files_dedupes_in_order():
    results = [
        ok("A", modified=["src/App.tsx"]),
        ok("B", modified=["src/Home.tsx", "src/App.tsx"], added=["src/components/Banner.tsx"]),
    ]
    modified, added = collect_written_files(results)
    assert modified == ["src/App.tsx", "src/Home.tsx"]
    assert added == ["src/components/Banner.tsx"]


def test_build_error_trail_joins_failures():
    results = [bad("TARGETED_NODES", "no nodes"), ok("X"), bad("COMPONENT_ADDITION", "no name")]
    trail = build_error_trail(results, ["fallback_node error: boom"])
    assert trail == "TARGETED_NODES: no nodes | COMPONENT_ADDITION: no name | fallback_node error: boom"


class TestToModificationResult:
    def test_success(self):
        final = ok("TEXT_BASED_CHANGE", modified=["src/pages/Home.tsx"])
        result = to_modification_result(final, [final], ["primary:TEXT_BASED_CHANGE"], [])
        assert result.success is True
        assert result.approach == "TEXT_BASED_CHANGE"
        assert result.selected_files == ["src/pages/Home.tsx"]
        assert result.error is None
        assert result.tiers_attempted == ["primary:TEXT_BASED_CHANGE"]

    def test_failure_keeps_earlier_writes(self):
        partial = StrategyResult.failure("COMPONENT_ADDITION", "integration failed", added_files=["src/components/Banner.tsx"])
        last = bad("COMPONENT_ADDITION", "no name")
        result = to_modification_result(last, [partial, last], ["primary:COMPONENT_ADDITION", "emergency:COMPONENT_ADDITION"], [])
        assert result.success is False
        assert result.added_files == ["src/components/Banner.tsx"]
        assert "COMPONENT_ADDITION: integration failed" in result.error
        assert result.error.endswith("COMPONENT_ADDITION: no name")

    def test_no_result_at_all(self):
        result = to_modification_result(None, [], [], [])
        assert result.success is False
        assert result.approach == "NONE"
        assert result.error == "No strategy produced a result"
