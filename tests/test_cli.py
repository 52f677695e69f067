"""Unit tests for the CLI module (react_modifier.cli.main)."""

from __future__ import annotations

import json
from unittest.mock import MagicMock, patch

import pytest

from react_modifier.agents.exceptions import AgentError
from react_modifier.cli.main import (
    EXIT_AGENT_ERROR,
    EXIT_INVALID_INPUT,
    EXIT_KEYBOARD_INTERRUPT,
    EXIT_ORCHESTRATOR_ERROR,
    EXIT_SUCCESS,
    EXIT_UNEXPECTED,
    build_parser,
    format_result_json,
    main,
    validate_project_path,
)
from react_modifier.models import ModificationResult, ModificationScope, ScopeKind, TextTerms


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _result(success: bool = True) -> ModificationResult:
    return ModificationResult(
        success=success,
        approach="TEXT_BASED_CHANGE",
        reasoning="Replaced text",
        selected_files=["src/pages/Home.tsx"] if success else [],
        error=None if success else "TEXT_BASED_CHANGE: not found",
        tiers_attempted=["primary:TEXT_BASED_CHANGE"],
        token_usage={"total_tokens": 0, "api_calls": 0, "estimated_cost": 0.0},
    )


def _mock_dispatcher(result: ModificationResult | None = None) -> MagicMock:
    dispatcher = MagicMock()
    dispatcher.process_modification.return_value = result or _result()
    dispatcher.get_session_stats.return_value = {"session_id": "s1"}
    return dispatcher


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("MODIFIER_MODEL", "MODIFIER_LLM_PROVIDER", "MODIFIER_MAX_TOKENS"):
        monkeypatch.delenv(name, raising=False)


# ---------------------------------------------------------------------------
# TestBuildParser
# ---------------------------------------------------------------------------

class TestBuildParser:
    def test_positional_arguments(self):
        args = build_parser().parse_args(["change 'A' to 'B'", "./app"])
        assert args.prompt == "change 'A' to 'B'"
        assert args.project_path == "./app"
        assert args.analyze_only is False
        assert args.dry_run is False
        assert args.llm_provider == ""

    def test_flags(self):
        args = build_parser().parse_args(
            ["x", ".", "--analyze-only", "--output-json", "--llm-provider", "openai", "--session-id", "s9"]
        )
        assert args.analyze_only is True
        assert args.output_json is True
        assert args.llm_provider == "openai"
        assert args.session_id == "s9"

    def test_unknown_provider_rejected(self):
        with pytest.raises(SystemExit):
            build_parser().parse_args(["x", ".", "--llm-provider", "gemini"])


class TestValidateProjectPath:
    def test_valid_directory(self, tmp_path):
        assert validate_project_path(str(tmp_path)) == str(tmp_path.resolve())

    def test_missing_directory_exits(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            validate_project_path(str(tmp_path / "nope"))
        assert exc_info.value.code == EXIT_INVALID_INPUT
        assert "is not a valid directory" in capsys.readouterr().err


def test_format_result_json_dumps_models():
    payload = json.loads(format_result_json({"result": _result(), "extra": None}))
    assert payload["result"]["approach"] == "TEXT_BASED_CHANGE"
    assert payload["extra"] is None


# ---------------------------------------------------------------------------
# TestMain
# ---------------------------------------------------------------------------

class TestMain:
    def test_empty_prompt(self, tmp_path):
        assert main(["   ", str(tmp_path)]) == EXIT_INVALID_INPUT

    def test_bad_path(self, tmp_path):
        assert main(["x", str(tmp_path / "missing")]) == EXIT_INVALID_INPUT

    def test_invalid_setting(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MODIFIER_MAX_TOKENS", "-1")
        assert main(["x", str(tmp_path)]) == EXIT_INVALID_INPUT

    def test_dry_run_json(self, tmp_path, capsys):
        with patch("react_modifier.cli.main.create_dispatcher") as create:
            code = main(["change 'A' to 'B'", str(tmp_path), "--dry-run", "--output-json", "--model", "m-1"])
        assert code == EXIT_SUCCESS
        create.assert_not_called()
        config = json.loads(capsys.readouterr().out)
        assert config["model"] == "m-1"
        assert config["project_path"] == str(tmp_path.resolve())
        assert config["settings"]["fallback_cap"] == 5

    def test_dry_run_human(self, tmp_path, capsys):
        assert main(["x", str(tmp_path), "--dry-run"]) == EXIT_SUCCESS
        out = capsys.readouterr().out
        assert "Configuration:" in out
        assert "llm_provider: auto" in out

    def test_success(self, tmp_path, capsys):
        dispatcher = _mock_dispatcher()
        with patch("react_modifier.cli.main.create_dispatcher", return_value=dispatcher):
            code = main(["change 'Welcome' to 'Hello'", str(tmp_path)])
        assert code == EXIT_SUCCESS
        dispatcher.process_modification.assert_called_once_with("change 'Welcome' to 'Hello'")
        out = capsys.readouterr().out
        assert "Status: success" in out
        assert "  - src/pages/Home.tsx" in out

    def test_failed_result_exit_code(self, tmp_path, capsys):
        dispatcher = _mock_dispatcher(_result(success=False))
        with patch("react_modifier.cli.main.create_dispatcher", return_value=dispatcher):
            code = main(["change 'Nope' to 'Yes'", str(tmp_path)])
        assert code == EXIT_ORCHESTRATOR_ERROR
        assert "Error: TEXT_BASED_CHANGE: not found" in capsys.readouterr().out

    def test_json_output(self, tmp_path, capsys):
        dispatcher = _mock_dispatcher()
        with patch("react_modifier.cli.main.create_dispatcher", return_value=dispatcher):
            main(["x", str(tmp_path), "--output-json"])
        payload = json.loads(capsys.readouterr().out)
        assert payload["result"]["success"] is True
        assert payload["session"] == {"session_id": "s1"}

    def test_analyze_only(self, tmp_path, capsys):
        dispatcher = _mock_dispatcher()
        dispatcher.analyze_scope.return_value = ModificationScope(
            kind=ScopeKind.TEXT_BASED_CHANGE,
            reasoning="Quoted text replacement",
            text_terms=TextTerms(search_term="Welcome", replacement_term="Hello"),
        )
        with patch("react_modifier.cli.main.create_dispatcher", return_value=dispatcher):
            code = main(["change 'Welcome' to 'Hello'", str(tmp_path), "--analyze-only"])
        assert code == EXIT_SUCCESS
        dispatcher.process_modification.assert_not_called()
        out = capsys.readouterr().out
        assert "Scope: TEXT_BASED_CHANGE" in out
        assert 'Search: "Welcome" -> "Hello"' in out

    @pytest.mark.parametrize(
        "error, expected",
        [
            (AgentError("no API key"), EXIT_AGENT_ERROR),
            (KeyboardInterrupt(), EXIT_KEYBOARD_INTERRUPT),
            (RuntimeError("surprise"), EXIT_UNEXPECTED),
        ],
    )
    def test_error_exit_codes(self, tmp_path, error, expected):
        with patch("react_modifier.cli.main.create_dispatcher", side_effect=error):
            assert main(["x", str(tmp_path)]) == expected
