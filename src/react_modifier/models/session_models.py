"""Models for session bookkeeping and strategy sub-results."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenOperationLog(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: str
    operation: str
    input_tokens: int
    output_tokens: int
    model: str
    cost: float


class CacheVerificationReport(BaseModel):
    """Outcome of checking cached project files against the filesystem."""

    model_config = ConfigDict(frozen=False)

    total_cached: int = 0
    verified: int = 0
    removed: int = 0
    updated: int = 0
    issues: list[str] = Field(default_factory=list)


class IntegrationReport(BaseModel):
    """What step 2 of the component workflow wired into the project."""

    model_config = ConfigDict(frozen=False)

    routing_updated: bool = False
    app_file_updated: bool = False
    navigation_updated: bool = False
    usage_added: bool = False
    modified_files: list[str] = Field(default_factory=list)
    created_files: list[str] = Field(default_factory=list)
    skipped: list[str] = Field(default_factory=list)


class ProjectPatterns(BaseModel):
    """Conventions learned from the existing project."""

    model_config = ConfigDict(frozen=False)

    export_pattern: str = "default"  # default | named | mixed
    import_pattern: str = "default"  # default | named | mixed
    routing_pattern: str = "basic"  # react-router | next | reach-router | basic
    app_file_path: Optional[str] = None
    route_file_path: Optional[str] = None


class ComponentAnalysis(BaseModel):
    """Step 1 output: what to create and where."""

    model_config = ConfigDict(frozen=False)

    type: str  # "page" | "component"
    name: str
    confidence: float
    reasoning: str
    target_directory: str
    file_name: str
    needs_routing: bool = False
    patterns: ProjectPatterns = Field(default_factory=ProjectPatterns)
    existing_routes: list[str] = Field(default_factory=list)
    element_tree_context: str = ""
    generated_content: str = ""

    @property
    def relative_path(self) -> str:
        return f"{self.target_directory}/{self.file_name}"
