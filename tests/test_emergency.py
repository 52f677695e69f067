"""Tests for the emergency creator."""

from react_modifier.models import ComponentKind, ComponentSpec, ModificationScope, ScopeKind
from react_modifier.strategies.emergency import (
    EmergencyCreator,
    emergency_component_name,
    is_page_request,
    render_template,
)

from conftest import HOME_TSX, make_session

TARGETED = ModificationScope(kind=ScopeKind.TARGETED_NODES, reasoning="fallback")


def test_component_name_from_prompt():
    assert emergency_component_name("add a testimonials widget") == "Testimonials"
    assert emergency_component_name("add a new") == "NewComponent"


def test_page_detection():
    assert is_page_request("create an About section")
    assert not is_page_request("add a testimonials widget")


def test_templates_are_self_contained():
    for is_page in (True, False):
        content = render_template("Pricing", is_page)
        assert content.startswith("import React from 'react';")
        assert content.rstrip().endswith("export default Pricing;")


class TestEmergencyCreator:
    def test_creates_component(self, session, react_project):
        result = EmergencyCreator().execute("add a testimonials widget", TARGETED, session)
        assert result.success is True
        assert result.added_files == ["src/components/Testimonials.tsx"]
        assert (react_project / "src/components/Testimonials.tsx").exists()
        assert session.ledger.changes[-1].type.value == "created"

    def test_numeric_suffix_on_collision(self, session, react_project):
        creator = EmergencyCreator()
        creator.execute("add a testimonials widget", TARGETED, session)
        result = creator.execute("add a testimonials widget", TARGETED, session)
        assert result.added_files == ["src/components/Testimonials2.tsx"]
        assert "export default Testimonials2;" in (react_project / "src/components/Testimonials2.tsx").read_text()

    def test_never_overwrites_existing_page(self, session, react_project):
        result = EmergencyCreator().execute("home page", TARGETED, session)
        assert result.added_files == ["src/pages/Home2.tsx"]
        assert (react_project / "src/pages/Home.tsx").read_text() == HOME_TSX

    def test_scope_component_name_wins(self, session):
        scope = ModificationScope(
            kind=ScopeKind.COMPONENT_ADDITION, reasoning="r",
            component=ComponentSpec(name="Contact", kind=ComponentKind.PAGE),
        )
        result = EmergencyCreator().execute("add a contact page", scope, session)
        assert result.added_files == ["src/pages/Contact.tsx"]
        assert result.details["kind"] == "page"

    def test_write_failure_is_a_result(self, tmp_path):
        root = tmp_path / "broken"
        root.mkdir()
        (root / "src").write_text("not a directory")
        session = make_session(root)

        result = EmergencyCreator().execute("make it better", TARGETED, session)

        assert result.success is False
        assert result.error.startswith("Emergency creation failed")
        assert session.ledger.changes[-1].success is False
