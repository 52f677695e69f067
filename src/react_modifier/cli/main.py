"""CLI entry point for the React modification engine."""
import argparse
from dotenv import load_dotenv
import json
import logging
import sys
import traceback
from pathlib import Path

from react_modifier.agents.exceptions import AgentError
from react_modifier.config import ModifierSettings
from react_modifier.orchestrator.exceptions import OrchestratorError

load_dotenv()

# Exit codes
EXIT_SUCCESS = 0
EXIT_INVALID_INPUT = 1
EXIT_AGENT_ERROR = 2
EXIT_ORCHESTRATOR_ERROR = 3
EXIT_UNEXPECTED = 5
EXIT_KEYBOARD_INTERRUPT = 130

# Safe keys allowed in config output (no secrets)
_SAFE_CONFIG_KEYS = frozenset({
    "prompt", "project_path", "session_id", "analyze_only", "model",
    "llm_provider", "llm_fallback_provider", "verbose", "dry_run",
    "output_json", "settings",
})


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    parser = argparse.ArgumentParser(
        prog="react-modifier",
        description="Apply natural-language modifications to a React/TypeScript project",
    )
    parser.add_argument("prompt", type=str, help="Modification request, e.g. \"change 'Welcome' to 'Hello'\"")
    parser.add_argument("project_path", type=str, help="Path to the React project root")
    parser.add_argument(
        "--analyze-only",
        action="store_true",
        help="Classify the request and print its scope without writing anything",
    )
    parser.add_argument("--session-id", type=str, default="", help="Session id for ledger and cache")
    parser.add_argument(
        "--model",
        type=str,
        default="",
        help="Model ID to use (default: MODIFIER_MODEL or the built-in default)",
    )
    parser.add_argument(
        "--llm-provider",
        type=str,
        default="",
        choices=("", "auto", "anthropic", "openai"),
        help="LLM provider: auto, anthropic or openai (default: MODIFIER_LLM_PROVIDER or auto)",
    )
    parser.add_argument(
        "--llm-fallback-provider",
        type=str,
        default="",
        choices=("", "anthropic", "openai"),
        help="Optional provider tried when the primary provider fails",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--dry-run", action="store_true", help="Print config and exit without running"
    )
    parser.add_argument(
        "--output-json", action="store_true", help="Output results as JSON"
    )
    return parser


def validate_project_path(raw_path: str) -> str:
    """Validate and resolve the project path.

    Raises:
        SystemExit: If path is not a valid directory.
    """
    resolved = Path(raw_path).resolve()
    if not resolved.is_dir():
        print(f"Error: '{raw_path}' is not a valid directory.", file=sys.stderr)
        raise SystemExit(EXIT_INVALID_INPUT)
    return str(resolved)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def create_dispatcher(args: argparse.Namespace, project_path: str, settings):
    """Create the LLM client and dispatcher.

    Imports are deferred so --help and --dry-run do not load the LLM SDKs
    or tree-sitter.
    """
    from react_modifier.agents.llm_client import LLMClient
    from react_modifier.orchestrator.dispatcher import ModificationDispatcher

    llm = LLMClient(
        model=settings.model,
        llm_provider=settings.llm_provider,
        llm_fallback_provider=settings.llm_fallback_provider,
    )
    return ModificationDispatcher(
        project_path,
        settings=settings,
        llm=llm,
        session_id=args.session_id or None,
        on_progress=(lambda message: print(f"  {message}", file=sys.stderr)) if args.verbose else None,
    )


def format_result_json(result: dict) -> str:
    """Serialize result dict to JSON string.

    Calls .model_dump() on Pydantic model values. Falls back to str()
    for non-serializable types via default=str.
    """

    def _serialize(obj):
        if obj is None:
            return None
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        return obj

    prepared = {k: _serialize(v) for k, v in result.items()}
    return json.dumps(prepared, indent=2, default=str)


def print_scope_human(scope) -> None:
    print(f"\n{'='*60}")
    print("Scope Analysis")
    print(f"{'='*60}")
    print(f"\nScope: {scope.kind.value}")
    print(f"Confidence: {scope.confidence:.0f}")
    print(f"Reasoning: {scope.reasoning}")
    if scope.files:
        print(f"Files: {', '.join(scope.files)}")
    if scope.text_terms is not None:
        print(f"Search: \"{scope.text_terms.search_term}\" -> \"{scope.text_terms.replacement_term}\"")
    for change in scope.color_changes:
        print(f"Color: {change.type.value} -> {change.color}")
    if scope.component is not None:
        print(f"Component: {scope.component.name} ({scope.component.kind.value})")
    print(f"\n{'='*60}")


def print_result_human(result) -> None:
    """Print a ModificationResult in human-readable format."""
    print(f"\n{'='*60}")
    print("React Modifier Results")
    print(f"{'='*60}")
    print(f"\nStatus: {'success' if result.success else 'failed'}")
    print(f"Approach: {result.approach}")
    print(f"Reasoning: {result.reasoning}")
    if result.tiers_attempted:
        print(f"Tiers: {' -> '.join(result.tiers_attempted)}")

    if result.selected_files:
        print(f"\nModified files ({len(result.selected_files)}):")
        for path in result.selected_files:
            print(f"  - {path}")
    if result.added_files:
        print(f"\nAdded files ({len(result.added_files)}):")
        for path in result.added_files:
            print(f"  - {path}")

    if result.error:
        print(f"\nError: {result.error}")

    usage = result.token_usage or {}
    if usage:
        print(
            f"\nTokens: {usage.get('total_tokens', 0)} in {usage.get('api_calls', 0)} call(s), "
            f"est. ${usage.get('estimated_cost', 0.0):.4f}"
        )
    print(f"\n{'='*60}")


def print_config_human(config: dict) -> None:
    """Print configuration in human-readable format.

    Only prints keys in the safe allowlist to prevent secret leakage.
    """
    print("\nConfiguration:")
    print(f"{'='*40}")
    for key, value in config.items():
        if key in _SAFE_CONFIG_KEYS:
            print(f"  {key}: {value}")
    print(f"{'='*40}")


def _handle_error(label: str, exc: BaseException, verbose: bool, exit_code: int) -> int:
    """Print error message to stderr and return the exit code."""
    print(f"{label}: {exc}", file=sys.stderr)
    if verbose:
        traceback.print_exc(file=sys.stderr)
    return exit_code


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        argv: Command-line arguments (defaults to sys.argv[1:]).

    Returns:
        Exit code integer.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.prompt.strip():
        print("Error: prompt must not be empty.", file=sys.stderr)
        return EXIT_INVALID_INPUT

    try:
        project_path = validate_project_path(args.project_path)
    except SystemExit as exc:
        return exc.code

    try:
        settings = ModifierSettings.from_env(
            model=args.model or None,
            llm_provider=args.llm_provider or None,
            llm_fallback_provider=args.llm_fallback_provider or None,
        )
    except OrchestratorError as exc:
        return _handle_error("Configuration error", exc, args.verbose, EXIT_INVALID_INPUT)

    config = {
        "prompt": args.prompt,
        "project_path": project_path,
        "session_id": args.session_id,
        "analyze_only": args.analyze_only,
        "model": settings.model,
        "llm_provider": settings.llm_provider,
        "llm_fallback_provider": settings.llm_fallback_provider,
        "verbose": args.verbose,
        "dry_run": args.dry_run,
        "output_json": args.output_json,
        "settings": settings.model_dump(),
    }

    if args.dry_run:
        if args.output_json:
            print(json.dumps(config, indent=2))
        else:
            print_config_human(config)
        return EXIT_SUCCESS

    configure_logging(args.verbose)

    try:
        dispatcher = create_dispatcher(args, project_path, settings)

        if args.analyze_only:
            scope = dispatcher.analyze_scope(args.prompt)
            if args.output_json:
                print(format_result_json({"scope": scope}))
            else:
                print_scope_human(scope)
            return EXIT_SUCCESS

        result = dispatcher.process_modification(args.prompt)

        if args.output_json:
            print(format_result_json({"result": result, "session": dispatcher.get_session_stats()}))
        else:
            print_result_human(result)

        return EXIT_SUCCESS if result.success else EXIT_ORCHESTRATOR_ERROR

    except AgentError as exc:
        return _handle_error("Agent error", exc, args.verbose, EXIT_AGENT_ERROR)

    except OrchestratorError as exc:
        return _handle_error("Orchestrator error", exc, args.verbose, EXIT_ORCHESTRATOR_ERROR)

    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_KEYBOARD_INTERRUPT

    except Exception as exc:
        return _handle_error("Unexpected error", exc, args.verbose, EXIT_UNEXPECTED)

