"""Interfaces to collaborators outside the engine: persistence and builds."""

from react_modifier.integrations.collaborators import (
    BuildHandle,
    BuildPipeline,
    BuildState,
    BuildStatus,
    ProjectStore,
    poll_build,
)
from react_modifier.integrations.exceptions import (
    BuildFailedError,
    BuildTimeoutError,
    IntegrationsError,
)

__all__ = [
    "BuildFailedError",
    "BuildHandle",
    "BuildPipeline",
    "BuildState",
    "BuildStatus",
    "BuildTimeoutError",
    "IntegrationsError",
    "ProjectStore",
    "poll_build",
]
