"""Result, ledger and validation models."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChangeType(str, Enum):
    CREATED = "created"
    MODIFIED = "modified"
    UPDATED = "updated"


class ModificationChange(BaseModel):
    """One immutable ledger entry."""

    model_config = ConfigDict(frozen=True)

    type: ChangeType
    file: str
    description: str
    timestamp: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    approach: str = ""
    success: bool = True
    lines_changed: Optional[int] = None
    components_affected: tuple[str, ...] = ()
    reasoning: str = ""


class TokenUsage(BaseModel):
    """Token counts reported by a single LLM call."""

    model_config = ConfigDict(frozen=False)

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        return self.input_tokens + self.output_tokens


class StrategyResult(BaseModel):
    """Outcome of one strategy tier (primary, fallback or emergency)."""

    model_config = ConfigDict(frozen=False)

    success: bool
    approach: str
    modified_files: list[str] = Field(default_factory=list)
    added_files: list[str] = Field(default_factory=list)
    reasoning: str = ""
    error: Optional[str] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def changed_files(self) -> list[str]:
        return [*self.modified_files, *self.added_files]

    @classmethod
    def failure(cls, approach: str, error: str, **kwargs: Any) -> "StrategyResult":
        kwargs.setdefault("reasoning", error)
        return cls(success=False, approach=approach, error=error, **kwargs)


class ModificationResult(BaseModel):
    """Sole value returned by ``ModificationDispatcher.process_modification``.

    On failure the file lists only hold changes that were already written
    and logged before a later tier failed.
    """

    model_config = ConfigDict(frozen=False)

    success: bool
    selected_files: list[str] = Field(default_factory=list)
    added_files: list[str] = Field(default_factory=list)
    approach: str
    reasoning: str
    error: Optional[str] = None
    modification_summary: str = ""
    token_usage: Optional[dict[str, Any]] = None
    sub_result: Optional[dict[str, Any]] = None
    tiers_attempted: list[str] = Field(default_factory=list)


class FileStructure(BaseModel):
    """Skeleton of a source file that a rewrite must preserve."""

    model_config = ConfigDict(frozen=False)

    imports: list[str] = Field(default_factory=list)
    exports: list[str] = Field(default_factory=list)
    component_name: Optional[str] = None
    has_default_export: bool = False
    hooks: list[str] = Field(default_factory=list)
    file_header: str = ""
    file_footer: str = ""
    preservation_prompt: str = ""


class StructureValidation(BaseModel):
    """Result of comparing a rewrite against the original skeleton."""

    model_config = ConfigDict(frozen=False)

    is_valid: bool
    score: int = 100
    errors: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
