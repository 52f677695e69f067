"""Exceptions for agent operations."""


class AgentError(Exception):
    """Base exception for all agent operations."""


class LLMError(AgentError):
    """Raised when no LLM provider could complete a request."""


class LLMResponseError(AgentError):
    """Raised when an LLM response cannot be parsed into the expected shape."""
