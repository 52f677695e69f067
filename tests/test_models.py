"""Tests for the pydantic data models."""

import pytest
from pydantic import ValidationError

from react_modifier.models import (
    ChangeType,
    ColorChange,
    ColorChangeType,
    ComponentAnalysis,
    ComponentKind,
    ComponentSpec,
    ModificationChange,
    ModificationScope,
    ProjectFile,
    ScopeKind,
    StrategyResult,
    TextTerms,
    TokenUsage,
)


class TestScopeKind:
    """Tests for ScopeKind enum."""

    def test_five_kinds(self):
        assert len(ScopeKind) == 5
        assert ScopeKind.TEXT_BASED_CHANGE == "TEXT_BASED_CHANGE"
        assert ScopeKind.FULL_FILE == "FULL_FILE"


class TestModificationScope:
    """Tests for the payload/kind exclusivity rules."""

    def test_text_scope_with_terms(self):
        scope = ModificationScope(
            kind=ScopeKind.TEXT_BASED_CHANGE,
            reasoning="quoted change",
            text_terms=TextTerms(search_term="Welcome", replacement_term="Hello"),
        )
        assert scope.text_terms.search_term == "Welcome"
        assert scope.component is None
        assert scope.color_changes == []

    def test_component_payload_on_wrong_kind_rejected(self):
        with pytest.raises(ValidationError, match="COMPONENT_ADDITION"):
            ModificationScope(
                kind=ScopeKind.TARGETED_NODES,
                reasoning="r",
                component=ComponentSpec(name="Contact"),
            )

    def test_color_payload_on_wrong_kind_rejected(self):
        with pytest.raises(ValidationError, match="TAILWIND_CHANGE"):
            ModificationScope(
                kind=ScopeKind.FULL_FILE,
                reasoning="r",
                color_changes=[ColorChange(type=ColorChangeType.PRIMARY, color="green")],
            )

    def test_text_payload_on_wrong_kind_rejected(self):
        with pytest.raises(ValidationError, match="TEXT_BASED_CHANGE"):
            ModificationScope(
                kind=ScopeKind.TAILWIND_CHANGE,
                reasoning="r",
                text_terms=TextTerms(search_term="a", replacement_term="b"),
            )

    def test_blank_reasoning_rejected(self):
        with pytest.raises(ValidationError, match="reasoning"):
            ModificationScope(kind=ScopeKind.FULL_FILE, reasoning="   ")

    def test_component_spec_defaults(self):
        spec = ComponentSpec(name="Card")
        assert spec.kind == ComponentKind.COMPONENT
        assert spec.needs_routing is False


class TestTextTerms:
    def test_usable(self):
        assert TextTerms(search_term="Welcome", replacement_term="Hello").is_usable()

    def test_blank_replacement_unusable(self):
        assert not TextTerms(search_term="Welcome", replacement_term="  ").is_usable()

    def test_identical_terms_unusable(self):
        assert not TextTerms(search_term="Hi", replacement_term=" Hi ").is_usable()


class TestStrategyResult:
    def test_failure_helper(self):
        result = StrategyResult.failure("FULL_FILE", "LLM unavailable")
        assert result.success is False
        assert result.error == "LLM unavailable"
        assert result.reasoning == "LLM unavailable"

    def test_failure_helper_keeps_explicit_reasoning(self):
        result = StrategyResult.failure("FULL_FILE", "boom", reasoning="custom")
        assert result.reasoning == "custom"

    def test_changed_files(self):
        result = StrategyResult(
            success=True,
            approach="COMPONENT_ADDITION",
            modified_files=["src/App.tsx"],
            added_files=["src/pages/Contact.tsx"],
        )
        assert result.changed_files == ["src/App.tsx", "src/pages/Contact.tsx"]


class TestModificationChange:
    def test_entries_are_frozen(self):
        change = ModificationChange(type=ChangeType.MODIFIED, file="src/App.tsx", description="d")
        with pytest.raises(ValidationError):
            change.file = "other.tsx"

    def test_timestamp_defaulted(self):
        change = ModificationChange(type=ChangeType.CREATED, file="a.tsx", description="d")
        assert change.timestamp
        assert change.success is True


def test_token_usage_total():
    assert TokenUsage(input_tokens=10, output_tokens=5).total == 15


def test_component_analysis_relative_path():
    analysis = ComponentAnalysis(
        type="page",
        name="Contact",
        confidence=0.9,
        reasoning="r",
        target_directory="src/pages",
        file_name="Contact.tsx",
    )
    assert analysis.relative_path == "src/pages/Contact.tsx"
    assert analysis.patterns.routing_pattern == "basic"


def test_project_file_extension():
    project_file = ProjectFile(
        path="/tmp/app/src/App.tsx", relative_path="src/App.tsx", content="", lines=0
    )
    assert project_file.extension == ".tsx"
