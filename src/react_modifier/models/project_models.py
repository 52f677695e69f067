"""Pydantic models describing the scanned React project."""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class FileType(str, Enum):
    """Detected role of a project file."""

    COMPONENT = "component"
    PAGE = "page"
    CONFIG = "config"
    STYLE = "style"
    TEST = "test"
    OTHER = "other"


class ElementSummary(BaseModel):
    """One JSX element seen in a file, used for LLM context."""

    model_config = ConfigDict(frozen=False)

    tag_name: str
    start_line: int
    end_line: int
    class_name: str = ""
    text_content: str = ""
    props: list[str] = Field(default_factory=list)
    is_component: bool = False  # capitalised tag, i.e. a React component usage


class ProjectFile(BaseModel):
    """A single source file in the working tree.

    A record is always replaced as a whole when the file changes on disk.
    """

    model_config = ConfigDict(frozen=False)

    path: str  # absolute path
    relative_path: str
    content: str
    lines: int
    file_type: FileType = FileType.OTHER
    has_buttons: bool = False
    has_signin: bool = False
    is_main_file: bool = False
    component_name: Optional[str] = None
    imports: list[str] = Field(default_factory=list)  # raw import sources
    exports: list[str] = Field(default_factory=list)
    elements: list[ElementSummary] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list)  # relative imports only

    @property
    def extension(self) -> str:
        dot = self.relative_path.rfind(".")
        return self.relative_path[dot:] if dot >= 0 else ""


class ProjectSummary(BaseModel):
    """Condensed view of a snapshot passed to the scope analyzer."""

    model_config = ConfigDict(frozen=False)

    total_files: int = 0
    main_file: Optional[str] = None
    components: list[str] = Field(default_factory=list)
    pages: list[str] = Field(default_factory=list)
    has_tailwind_config: bool = False
    text: str = ""
