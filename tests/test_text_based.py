"""Tests for the text-based strategy."""

import json

from react_modifier.models import ModificationScope, ScopeKind, TextNode, TextTerms
from react_modifier.strategies.text_based import (
    TextBasedProcessor,
    TextDecision,
    apply_decision,
    direct_replace,
    discover_files,
    extract_key_phrases,
    find_fragment_sequence,
    parse_decisions,
)

from conftest import make_llm, make_session

SCENARIO_PROMPT = "change 'Welcome' to 'Hello'"


def _scope(search="Welcome", replacement="Hello"):
    return ModificationScope(
        kind=ScopeKind.TEXT_BASED_CHANGE,
        reasoning="quoted change",
        text_terms=TextTerms(search_term=search, replacement_term=replacement),
    )


def _text_node(content, start_pos, kind="jsx_text"):
    return TextNode(
        file_path="src/X.tsx",
        content=content,
        kind=kind,
        start_line=1,
        end_line=1,
        start_pos=start_pos,
        end_pos=start_pos + len(content),
    )


class TestDiscovery:
    def test_exact_and_case_insensitive(self, session):
        files = session.snapshot.source_files()
        exact = discover_files(files, "Start building")
        assert [(m.relative_path, m.strategy) for m in exact] == [("src/pages/Home.tsx", "full_exact")]
        loose = discover_files(files, "start BUILDING")
        assert loose[0].strategy == "full_case_insensitive"
        assert loose[0].confidence == 0.95

    def test_no_match(self, session):
        assert discover_files(session.snapshot.source_files(), "Pricing plans") == []

    def test_key_phrases(self):
        assert extract_key_phrases("Get started today") == [
            "started", "today", "get started", "started today", "get started today",
        ]


class TestFragments:
    def test_sequence_across_siblings(self):
        nodes = [_text_node("Sign", 3), _text_node("up", 16), _text_node("today", 28)]
        sequence = find_fragment_sequence(nodes, 0, ["sign", "up", "today"])
        assert [n.content for n in sequence] == ["Sign", "up", "today"]

    def test_too_few_words_matched(self):
        nodes = [_text_node("Sign", 3), _text_node("elsewhere", 16)]
        assert find_fragment_sequence(nodes, 0, ["sign", "up", "today"]) == []

    def test_fragmented_replacement_distributed(self):
        content = "<p>Sign <strong>up</strong> today</p>"
        fragments = [_text_node("Sign", 3), _text_node("up", 16), _text_node("today", 28)]
        node = TextNode(
            file_path="src/X.tsx", content="Sign up today", kind="fragmented",
            start_line=1, end_line=1, start_pos=3, end_pos=33,
            is_fragmented=True, fragments=fragments,
        )
        decision = TextDecision(node_index=0, modified_content="Join us now")
        updated, method = apply_decision(content, node, decision)
        assert method == "fragmented"
        assert updated == "<p>Join <strong>us</strong> now</p>"


class TestDecisions:
    def test_defaults(self):
        batch = parse_decisions('{"modifications": [{"nodeIndex": 0}]}')
        decision = batch.decisions[0]
        assert decision.confidence == 0.5
        assert decision.should_apply is True
        assert decision.strategy == "text_replacement"

    def test_malformed_response(self):
        batch = parse_decisions("not json")
        assert batch.decisions == []
        assert batch.batch_confidence == 0.3

    def test_snippet_applied_first(self):
        content = "<h1>Welcome</h1>\n<p>Welcome back</p>"
        node = _text_node("Welcome back", 20)
        decision = TextDecision(
            node_index=0,
            original_snippet="<p>Welcome back</p>",
            modified_snippet="<p>Hello again</p>",
            original_content="Welcome",
            modified_content="Hello",
        )
        updated, method = apply_decision(content, node, decision)
        assert method == "snippet"
        assert updated == "<h1>Welcome</h1>\n<p>Hello again</p>"

    def test_direct_uses_nearest_occurrence(self):
        content = "<h1>Welcome</h1>\n<p>Welcome</p>"
        node = _text_node("Welcome", 20)
        decision = TextDecision(node_index=0, original_content="Welcome", modified_content="Hello")
        updated, method = apply_decision(content, node, decision)
        assert method == "direct"
        assert updated == "<h1>Welcome</h1>\n<p>Hello</p>"


class TestDirectReplace:
    def test_exact(self):
        assert direct_replace("a Welcome b", "Welcome", "Hello") == ("a Hello b", "exact")

    def test_case_insensitive(self):
        assert direct_replace("WELCOME", "welcome", "Hello") == ("Hello", "case_insensitive")

    def test_word_boundary(self):
        updated, _ = direct_replace("HomePage Home", "Home", "Start", word_boundary=True)
        assert updated == "HomePage Start"

    def test_replacement_is_literal(self):
        updated, _ = direct_replace("price", "price", r"\1 $5")
        assert updated == r"\1 $5"

    def test_no_match(self):
        assert direct_replace("abc", "xyz", "q") == (None, None)


class TestTextBasedProcessor:
    def test_direct_search_without_llm(self, session, react_project):
        result = TextBasedProcessor().execute(SCENARIO_PROMPT, _scope(), session)

        assert result.success is True
        assert result.modified_files == ["src/pages/Home.tsx"]
        home = (react_project / "src/pages/Home.tsx").read_text()
        assert '<h1 className="text-3xl font-bold">Hello</h1>' in home
        report = result.details["text"]
        assert report["tier"] == "direct_search"
        assert report["apply_methods"] == {"exact": 1}
        assert "+      <h1" in report["diffs"]["src/pages/Home.tsx"]

    def test_hybrid_tier_with_llm(self, react_project):
        decision = {"modifications": [{
            "nodeIndex": 0, "originalContent": "Welcome", "modifiedContent": "Hello",
            "confidence": 0.9, "shouldApply": True,
        }]}
        llm = make_llm(json.dumps(decision))
        session = make_session(react_project, llm=llm)

        result = TextBasedProcessor().execute(SCENARIO_PROMPT, _scope(), session)

        assert result.success is True
        report = result.details["text"]
        assert report["tier"] == "hybrid"
        assert report["apply_methods"] == {"direct": 1}
        assert report["average_confidence"] == 0.9
        assert ">Hello</h1>" in (react_project / "src/pages/Home.tsx").read_text()
        assert session.ledger.changes[-1].approach == "TEXT_BASED_CHANGE"

    def test_low_confidence_decision_skipped(self, react_project):
        decision = {"modifications": [{"nodeIndex": 0, "confidence": 0.4}]}
        session = make_session(react_project, llm=make_llm(json.dumps(decision)))
        result = TextBasedProcessor().execute(SCENARIO_PROMPT, _scope(), session)
        assert result.details["text"]["tier"] == "direct_search"
        assert result.details["text"]["decisions_applied"] == 0

    def test_term_not_found(self, session):
        result = TextBasedProcessor().execute("x", _scope("Pricing", "Plans"), session)
        assert result.success is False
        assert result.error == 'Text "Pricing" not found in any project file'

    def test_unusable_terms(self, session):
        scope = _scope()
        scope.text_terms = TextTerms(search_term="Same", replacement_term="Same")
        result = TextBasedProcessor().execute("x", scope, session)
        assert result.error == "No usable search and replacement terms"
