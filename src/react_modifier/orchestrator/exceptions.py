"""Exceptions for orchestrator operations.

Note: Names chosen to avoid collisions with stdlib and framework exceptions.
"""


class OrchestratorError(Exception):
    """Base exception for all orchestrator operations."""


class GraphBuildError(OrchestratorError):
    """Raised when the dispatcher StateGraph cannot be constructed."""


class ConfigurationError(OrchestratorError):
    """Raised when settings are missing or invalid."""
