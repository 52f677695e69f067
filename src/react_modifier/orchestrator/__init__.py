"""LangGraph dispatcher package for modification requests.

``graph`` and ``dispatcher`` are imported by module path; importing them
here would cycle through ``react_modifier.config``.
"""

from react_modifier.orchestrator.exceptions import (
    ConfigurationError,
    GraphBuildError,
    OrchestratorError,
)
from react_modifier.orchestrator.state import ModificationState, make_initial_state

__all__ = [
    "ConfigurationError",
    "GraphBuildError",
    "ModificationState",
    "OrchestratorError",
    "make_initial_state",
]
