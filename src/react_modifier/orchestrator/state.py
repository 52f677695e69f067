"""State definition for the LangGraph modification dispatcher."""

import operator
from typing import Annotated, Optional, TypedDict

from react_modifier.models import ModificationScope, StrategyResult


class ModificationState(TypedDict):
    """State for one modification request.

    Fields with Annotated[list, operator.add] reducers accumulate across nodes.
    All other fields use default overwrite semantics.
    """

    # Input
    prompt: str
    conversation_context: Optional[str]
    db_summary: Optional[str]

    # Snapshot and scope
    snapshot_files: int
    scope: Optional[ModificationScope]

    # Tier bookkeeping
    stage: str  # primary | fallback | emergency
    last_outcome: str  # success | failed | raised
    emergency_attempted: bool
    tier_results: Annotated[list[StrategyResult], operator.add]
    tiers_attempted: Annotated[list[str], operator.add]

    # Output
    final_result: Optional[StrategyResult]

    # Error accumulation
    errors: Annotated[list[str], operator.add]


def make_initial_state(
    prompt: str,
    conversation_context: Optional[str] = None,
    db_summary: Optional[str] = None,
) -> ModificationState:
    """Create the initial state for one request.

    Args:
        prompt: The user's modification request.
        conversation_context: Ledger summary of earlier requests.
        db_summary: Stored project summary, if the caller has one.

    Returns:
        ModificationState dict with all fields initialised to defaults.
    """
    return {
        "prompt": prompt,
        "conversation_context": conversation_context,
        "db_summary": db_summary,
        "snapshot_files": 0,
        "scope": None,
        "stage": "",
        "last_outcome": "",
        "emergency_attempted": False,
        "tier_results": [],
        "tiers_attempted": [],
        "final_result": None,
        "errors": [],
    }
