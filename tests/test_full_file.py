"""Tests for the full-file rewrite strategy."""

import pytest

from react_modifier.agents.exceptions import LLMError
from react_modifier.models import ModificationScope, ScopeKind
from react_modifier.strategies.full_file import FullFileProcessor, infer_file_purpose, score_file

from conftest import HEADER_TSX, make_llm, make_session

SCOPE = ModificationScope(kind=ScopeKind.FULL_FILE, reasoning="navigation work")
PROMPT = "tidy up the header navigation"


def _block(path, content):
    return f"```tsx\n// FILE: {path}\n{content}```"


class TestSelection:
    def test_navigation_prompt_selects_header(self, session):
        candidates = FullFileProcessor().select_files(PROMPT, session)
        assert [c.relative_path for c in candidates] == ["src/components/Header.tsx"]
        assert candidates[0].priority == "high"
        assert "navigation" in candidates[0].change_types

    def test_no_match_falls_back_to_main_file(self, session):
        candidates = FullFileProcessor().select_files("make it better", session)
        assert [c.relative_path for c in candidates] == ["src/App.tsx"]
        assert candidates[0].score == 70

    def test_cap_respected(self, react_project):
        for index in range(4):
            (react_project / f"src/components/Card{index}.tsx").write_text(
                f"const Card{index} = () => <div>card</div>;\nexport default Card{index};\n"
            )
        session = make_session(react_project, full_file_cap=2)
        candidates = FullFileProcessor().select_files("restyle every component button", session)
        assert len(candidates) == 2

    def test_score_and_purpose(self, session):
        header = session.snapshot.get("src/components/Header.tsx")
        assert score_file(PROMPT, header).score == 90
        assert infer_file_purpose(header) == "UI Component"
        assert infer_file_purpose(session.snapshot.get("src/App.tsx")) == "Main application file"


class TestExecute:
    def test_rewrites_selected_file(self, react_project):
        new_header = HEADER_TSX.replace("bg-white shadow", "bg-slate-900 shadow")
        llm = make_llm(_block("src/components/Header.tsx", new_header))
        session = make_session(react_project, llm=llm)

        result = FullFileProcessor().execute(PROMPT, SCOPE, session)

        assert result.success is True
        assert result.modified_files == ["src/components/Header.tsx"]
        assert "bg-slate-900" in (react_project / "src/components/Header.tsx").read_text()
        assert session.ledger.changes[-1].approach == "FULL_FILE"
        prompt = llm.complete.call_args[0][0]
        assert "TAILWIND CONFIGURATION" in prompt
        assert "=== FILE 1: src/components/Header.tsx ===" in prompt

    def test_unchanged_block_is_not_written(self, react_project):
        session = make_session(react_project, llm=make_llm(_block("src/components/Header.tsx", HEADER_TSX)))
        result = FullFileProcessor().execute(PROMPT, SCOPE, session)
        assert result.success is False
        assert result.details["rejected"] == {"src/components/Header.tsx": "unchanged"}
        assert len(session.ledger) == 0

    def test_unselected_file_ignored(self, react_project):
        session = make_session(react_project, llm=make_llm(_block("src/pages/Home.tsx", "const Home = 1;\n")))
        result = FullFileProcessor().execute(PROMPT, SCOPE, session)
        assert result.success is False
        assert result.error == "LLM response contained no usable code blocks"
        assert "Welcome" in (react_project / "src/pages/Home.tsx").read_text()

    def test_prose_response_fails(self, react_project):
        session = make_session(react_project, llm=make_llm("Sorry, I cannot help."))
        result = FullFileProcessor().execute(PROMPT, SCOPE, session)
        assert result.success is False

    def test_no_llm_raises(self, session):
        with pytest.raises(LLMError):
            FullFileProcessor().execute(PROMPT, SCOPE, session)
