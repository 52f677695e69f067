"""Interfaces for the collaborators the engine calls out to.

The HTTP layer, relational persistence and the container build pipeline
live outside this package. Only their call shapes are defined here.
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Callable, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict

from react_modifier.integrations.exceptions import BuildFailedError, BuildTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 5.0
DEFAULT_MAX_POLL_ATTEMPTS = 60


@runtime_checkable
class ProjectStore(Protocol):
    """Conversation and project persistence."""

    def save_modification_summary(self, project_id: int, summary: str) -> None:
        """Store the summary of one completed modification."""

    def get_project_summary(self, project_id: int) -> Optional[str]:
        """Accumulated text summary of a project, if any."""

    def save_project_summary(self, project_id: int, summary: str) -> None:
        """Replace a project's accumulated text summary."""


class BuildState(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class BuildHandle(BaseModel):
    """Opaque reference to a triggered build."""

    model_config = ConfigDict(frozen=True)

    build_id: str
    project_id: Optional[int] = None


class BuildStatus(BaseModel):
    model_config = ConfigDict(frozen=False)

    state: BuildState
    url: Optional[str] = None
    message: str = ""

    @property
    def is_terminal(self) -> bool:
        return self.state in (BuildState.SUCCEEDED, BuildState.FAILED)


@runtime_checkable
class BuildPipeline(Protocol):
    """Remote container build and static-site deploy."""

    def trigger_build(self, bundle: bytes) -> BuildHandle:
        """Start a build for a zipped project bundle."""

    def get_status(self, handle: BuildHandle) -> BuildStatus:
        """Current status of a build."""


def poll_build(
    pipeline: BuildPipeline,
    handle: BuildHandle,
    interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS,
    max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
    sleep: Callable[[float], None] = time.sleep,
) -> BuildStatus:
    """Poll a build on a fixed interval until it reaches a terminal state.

    Args:
        pipeline: Build pipeline to query.
        handle: Handle returned by ``trigger_build``.
        interval_seconds: Fixed delay between polls.
        max_attempts: Status queries allowed before giving up.
        sleep: Delay function, injectable for tests.

    Returns:
        The successful terminal status.

    Raises:
        BuildFailedError: If the build reports failure.
        BuildTimeoutError: If no terminal state is reached within
            ``max_attempts`` polls. Timeouts are terminal and not retried.
    """
    for attempt in range(1, max_attempts + 1):
        status = pipeline.get_status(handle)
        logger.debug("Build %s poll %d/%d: %s", handle.build_id, attempt, max_attempts, status.state.value)
        if status.state == BuildState.SUCCEEDED:
            return status
        if status.state == BuildState.FAILED:
            raise BuildFailedError(f"Build {handle.build_id} failed: {status.message}")
        if attempt < max_attempts:
            sleep(interval_seconds)
    raise BuildTimeoutError(
        f"Build {handle.build_id} did not finish after {max_attempts} polls "
        f"({interval_seconds}s interval)"
    )
