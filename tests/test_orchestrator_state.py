"""Tests for the dispatcher graph state."""
import operator
import typing

from react_modifier.orchestrator.state import ModificationState, make_initial_state


class TestMakeInitialState:
    def test_defaults(self):
        state = make_initial_state("change 'Welcome' to 'Hello'")
        assert state["prompt"] == "change 'Welcome' to 'Hello'"
        assert state["conversation_context"] is None
        assert state["db_summary"] is None
        assert state["snapshot_files"] == 0
        assert state["scope"] is None
        assert state["stage"] == ""
        assert state["last_outcome"] == ""
        assert state["emergency_attempted"] is False
        assert state["tier_results"] == []
        assert state["tiers_attempted"] == []
        assert state["final_result"] is None
        assert state["errors"] == []

    def test_inputs_carried(self):
        state = make_initial_state("x", conversation_context="earlier", db_summary="stored")
        assert state["conversation_context"] == "earlier"
        assert state["db_summary"] == "stored"

    def test_lists_are_not_shared(self):
        first = make_initial_state("a")
        second = make_initial_state("b")
        first["errors"].append("boom")
        assert second["errors"] == []

    def test_all_fields_present(self):
        assert set(make_initial_state("x")) == set(ModificationState.__annotations__)


def test_accumulating_fields_use_add_reducer():
    hints = typing.get_type_hints(ModificationState, include_extras=True)
    for name in ("tier_results", "tiers_attempted", "errors"):
        assert hints[name].__metadata__ == (operator.add,)
