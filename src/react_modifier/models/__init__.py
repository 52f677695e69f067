"""Data models for the React modification engine."""

from react_modifier.models.node_models import JSXNode, TextNode
from react_modifier.models.project_models import (
    ElementSummary,
    FileType,
    ProjectFile,
    ProjectSummary,
)
from react_modifier.models.result_models import (
    ChangeType,
    FileStructure,
    ModificationChange,
    ModificationResult,
    StrategyResult,
    StructureValidation,
    TokenUsage,
)
from react_modifier.models.scope_models import (
    ColorChange,
    ColorChangeType,
    ComponentKind,
    ComponentSpec,
    ModificationScope,
    ScopeKind,
    TextTerms,
)
from react_modifier.models.session_models import (
    CacheVerificationReport,
    ComponentAnalysis,
    IntegrationReport,
    ProjectPatterns,
    TokenOperationLog,
)

__all__ = [
    "CacheVerificationReport",
    "ChangeType",
    "ColorChange",
    "ColorChangeType",
    "ComponentAnalysis",
    "ComponentKind",
    "ComponentSpec",
    "ElementSummary",
    "FileStructure",
    "FileType",
    "IntegrationReport",
    "JSXNode",
    "ModificationChange",
    "ModificationResult",
    "ModificationScope",
    "ProjectFile",
    "ProjectPatterns",
    "ProjectSummary",
    "ScopeKind",
    "StrategyResult",
    "StructureValidation",
    "TextNode",
    "TextTerms",
    "TokenOperationLog",
    "TokenUsage",
]
