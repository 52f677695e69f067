"""Agents: LLM client, snapshot builder and scope analyzer."""

from react_modifier.agents.exceptions import (
    AgentError,
    LLMError,
    LLMResponseError,
)
from react_modifier.agents.llm_client import CompletionClient, LLMClient, LLMResponse
from react_modifier.agents.scope_analyzer import ScopeAnalyzer
from react_modifier.agents.snapshot_builder import ProjectSnapshot, SnapshotBuilder

__all__ = [
    "AgentError",
    "CompletionClient",
    "LLMClient",
    "LLMError",
    "LLMResponse",
    "LLMResponseError",
    "ProjectSnapshot",
    "ScopeAnalyzer",
    "SnapshotBuilder",
]
