"""Tests for the collaborator interfaces and build polling."""

from unittest.mock import MagicMock

import pytest

from react_modifier.integrations import (
    BuildFailedError,
    BuildHandle,
    BuildState,
    BuildStatus,
    BuildTimeoutError,
    poll_build,
)

HANDLE = BuildHandle(build_id="b-1", project_id=7)


def _pipeline(*states):
    pipeline = MagicMock()
    pipeline.get_status.side_effect = [BuildStatus(state=s, message=s.value) for s in states]
    return pipeline


class TestPollBuild:
    def test_success_after_running(self):
        sleep = MagicMock()
        pipeline = _pipeline(BuildState.QUEUED, BuildState.RUNNING, BuildState.SUCCEEDED)
        status = poll_build(pipeline, HANDLE, interval_seconds=2.0, max_attempts=5, sleep=sleep)
        assert status.state == BuildState.SUCCEEDED
        assert sleep.call_count == 2
        sleep.assert_called_with(2.0)

    def test_failure_raises(self):
        pipeline = _pipeline(BuildState.RUNNING, BuildState.FAILED)
        with pytest.raises(BuildFailedError, match="b-1 failed"):
            poll_build(pipeline, HANDLE, sleep=MagicMock())

    def test_timeout_is_terminal(self):
        sleep = MagicMock()
        pipeline = _pipeline(*[BuildState.RUNNING] * 3)
        with pytest.raises(BuildTimeoutError, match="after 3 polls"):
            poll_build(pipeline, HANDLE, interval_seconds=1.0, max_attempts=3, sleep=sleep)
        assert pipeline.get_status.call_count == 3
        assert sleep.call_count == 2


def test_status_terminal_flag():
    assert BuildStatus(state=BuildState.FAILED).is_terminal
    assert not BuildStatus(state=BuildState.RUNNING).is_terminal
