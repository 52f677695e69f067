"""Models for the scope analyzer's classification output."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ScopeKind(str, Enum):
    """The five mutually exclusive modification kinds."""

    TEXT_BASED_CHANGE = "TEXT_BASED_CHANGE"
    TAILWIND_CHANGE = "TAILWIND_CHANGE"
    COMPONENT_ADDITION = "COMPONENT_ADDITION"
    TARGETED_NODES = "TARGETED_NODES"
    FULL_FILE = "FULL_FILE"


class ComponentKind(str, Enum):
    COMPONENT = "component"
    PAGE = "page"
    APP = "app"


class ColorChangeType(str, Enum):
    PRIMARY = "primary"
    SECONDARY = "secondary"
    ACCENT = "accent"
    BACKGROUND = "background"
    GENERAL = "general"


class ColorChange(BaseModel):
    """A single color directive extracted from a prompt."""

    model_config = ConfigDict(frozen=False)

    type: ColorChangeType
    color: str  # color name or literal hex/hsl token as written by the user
    target: Optional[str] = None  # optional token name, e.g. "primary-foreground"


class TextTerms(BaseModel):
    """Search/replace terms for a text-based change."""

    model_config = ConfigDict(frozen=False)

    search_term: str
    replacement_term: str
    confidence: float = 0.0
    extraction_method: str = ""

    def is_usable(self) -> bool:
        search = self.search_term.strip()
        replacement = self.replacement_term.strip()
        return bool(search) and bool(replacement) and search != replacement


class ComponentSpec(BaseModel):
    """Payload for a component-addition request."""

    model_config = ConfigDict(frozen=False)

    name: str
    kind: ComponentKind = ComponentKind.COMPONENT
    needs_routing: bool = False


class ModificationScope(BaseModel):
    """Classifier output for one request.

    Only the payload matching ``kind`` may be populated.
    """

    model_config = ConfigDict(frozen=False)

    kind: ScopeKind
    files: list[str] = Field(default_factory=list)
    reasoning: str
    confidence: float = 0.0
    component: Optional[ComponentSpec] = None
    color_changes: list[ColorChange] = Field(default_factory=list)
    text_terms: Optional[TextTerms] = None

    @model_validator(mode="after")
    def _check_payload(self) -> "ModificationScope":
        if not self.reasoning.strip():
            raise ValueError("reasoning must not be empty")
        if self.component is not None and self.kind != ScopeKind.COMPONENT_ADDITION:
            raise ValueError("component payload requires COMPONENT_ADDITION scope")
        if self.color_changes and self.kind != ScopeKind.TAILWIND_CHANGE:
            raise ValueError("color_changes payload requires TAILWIND_CHANGE scope")
        if self.text_terms is not None and self.kind != ScopeKind.TEXT_BASED_CHANGE:
            raise ValueError("text_terms payload requires TEXT_BASED_CHANGE scope")
        return self
