"""Exceptions for external collaborator integrations."""


class IntegrationsError(Exception):
    """Base exception for collaborator integrations."""


class BuildFailedError(IntegrationsError):
    """Raised when the build pipeline reports a failed build."""


class BuildTimeoutError(IntegrationsError):
    """Raised when a build does not finish within the allowed number of polls."""
