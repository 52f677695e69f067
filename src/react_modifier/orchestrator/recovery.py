"""Pure helper functions for the dispatcher's fallback cascade.

All functions are stateless and have no external dependencies.
"""

from typing import Optional

from react_modifier.models import ModificationResult, ScopeKind, StrategyResult
from react_modifier.orchestrator.state import ModificationState

# Stages
PRIMARY = "primary"
FALLBACK = "fallback"
EMERGENCY = "emergency"
FINALIZE = "finalize"

# Outcomes
SUCCESS = "success"
FAILED = "failed"
RAISED = "raised"

# Scopes whose failures are retried with the traditional full-file fallback
FALLBACK_SCOPES = frozenset({ScopeKind.FULL_FILE, ScopeKind.TARGETED_NODES})

# Where a primary strategy goes when it reports failure without raising
PRIMARY_FAILURE_ROUTES: dict[ScopeKind, str] = {
    ScopeKind.FULL_FILE: FALLBACK,
    ScopeKind.TARGETED_NODES: FALLBACK,
    ScopeKind.COMPONENT_ADDITION: EMERGENCY,
    ScopeKind.TEXT_BASED_CHANGE: FINALIZE,
    ScopeKind.TAILWIND_CHANGE: FINALIZE,
}

# (stage, outcome) -> next node; primary failures are resolved per scope
TRANSITIONS: dict[tuple[str, str], str] = {
    (PRIMARY, SUCCESS): FINALIZE,
    (FALLBACK, SUCCESS): FINALIZE,
    (FALLBACK, FAILED): EMERGENCY,
    (FALLBACK, RAISED): EMERGENCY,
    (EMERGENCY, SUCCESS): FINALIZE,
    (EMERGENCY, FAILED): FINALIZE,
    (EMERGENCY, RAISED): FINALIZE,
}


def classify_outcome(result: Optional[StrategyResult], raised: bool = False) -> str:
    """Map a tier's result to one of success / failed / raised.

    Args:
        result: The tier's StrategyResult, or None if it produced nothing.
        raised: Whether the tier raised instead of returning.

    Returns:
        The outcome label used as a transition key.
    """
    if raised:
        return RAISED
    if result is not None and result.success:
        return SUCCESS
    return FAILED


def next_step(
    stage: str,
    outcome: str,
    scope_kind: ScopeKind,
    emergency_attempted: bool,
) -> str:
    """Look up the node that follows ``stage`` given its outcome.

    Emergency creation runs at most once per request; any route back to it
    after the first attempt resolves to finalize.

    Args:
        stage: The stage that just ran.
        outcome: success, failed or raised.
        scope_kind: The request's classified scope.
        emergency_attempted: Whether emergency creation already ran.

    Returns:
        One of fallback, emergency or finalize.
    """
    if stage == PRIMARY and outcome == FAILED:
        target = PRIMARY_FAILURE_ROUTES[scope_kind]
    elif stage == PRIMARY and outcome == RAISED:
        target = FALLBACK if scope_kind in FALLBACK_SCOPES else EMERGENCY
    else:
        target = TRANSITIONS.get((stage, outcome), FINALIZE)

    if target == EMERGENCY and emergency_attempted:
        return FINALIZE
    return target


def route_from_state(state: ModificationState) -> str:
    """next_step applied to the current graph state."""
    scope = state["scope"]
    kind = scope.kind if scope is not None else ScopeKind.TARGETED_NODES
    return next_step(state["stage"], state["last_outcome"], kind, state["emergency_attempted"])


def select_final_result(tier_results: list[StrategyResult]) -> Optional[StrategyResult]:
    """The last successful tier result, else the last result of any kind."""
    for result in reversed(tier_results):
        if result.success:
            return result
    return tier_results[-1] if tier_results else None


def collect_written_files(tier_results: list[StrategyResult]) -> tuple[list[str], list[str]]:
    """Modified and added files across every tier, first occurrence order.

    Returns:
        (modified files, added files)
    """
    modified: list[str] = []
    added: list[str] = []
    for result in tier_results:
        for path in result.modified_files:
            if path not in modified:
                modified.append(path)
        for path in result.added_files:
            if path not in added:
                added.append(path)
    return modified, added


def build_error_trail(tier_results: list[StrategyResult], errors: list[str]) -> str:
    """Concatenate the failure reason of every attempted tier.

    Args:
        tier_results: Results in the order the tiers ran.
        errors: Node-level error strings from the graph state.

    Returns:
        A single " | "-joined string, or an empty string when nothing failed.
    """
    parts = [
        f"{result.approach}: {result.error or result.reasoning}"
        for result in tier_results
        if not result.success
    ]
    parts.extend(error for error in errors if error not in parts)
    return " | ".join(parts)


def to_modification_result(
    final: Optional[StrategyResult],
    tier_results: list[StrategyResult],
    tiers_attempted: list[str],
    errors: list[str],
) -> ModificationResult:
    """Fold the cascade's tier results into the caller-facing result.

    On failure the file lists keep whatever earlier tiers already wrote.
    """
    modified, added = collect_written_files(tier_results)
    if final is None:
        trail = build_error_trail(tier_results, errors) or "No strategy produced a result"
        return ModificationResult(
            success=False,
            approach="NONE",
            reasoning=trail,
            error=trail,
            selected_files=modified,
            added_files=added,
            tiers_attempted=list(tiers_attempted),
        )

    if final.success:
        return ModificationResult(
            success=True,
            approach=final.approach,
            reasoning=final.reasoning,
            selected_files=modified,
            added_files=added,
            sub_result=final.details or None,
            tiers_attempted=list(tiers_attempted),
        )

    trail = build_error_trail(tier_results, errors)
    return ModificationResult(
        success=False,
        approach=final.approach,
        reasoning=final.reasoning or trail,
        error=trail or final.error,
        selected_files=modified,
        added_files=added,
        sub_result=final.details or None,
        tiers_attempted=list(tiers_attempted),
    )
