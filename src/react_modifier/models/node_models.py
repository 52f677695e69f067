"""Models for AST nodes extracted from JSX/TSX sources."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class JSXNode(BaseModel):
    """A JSX element with enough position data to patch it in place.

    Offsets are character offsets into the file content at parse time.
    They are hints: apply-time code re-locates the node by content.
    """

    model_config = ConfigDict(frozen=False)

    node_id: str
    file_path: str
    tag_name: str
    index: int
    class_name: str = ""
    text_content: str = ""
    display_text: str = ""
    attributes: dict[str, str] = Field(default_factory=dict)
    start_pos: int
    end_pos: int
    start_line: int
    end_line: int
    start_column: int = 0
    end_column: int = 0
    original_code: str
    context_before: str = ""
    context_after: str = ""
    code_hash: str = ""
    is_button: bool = False
    has_signin_text: bool = False
    parent_tag: Optional[str] = None
    parent_class: Optional[str] = None
    grandparent_tag: Optional[str] = None


class TextNode(BaseModel):
    """A text-bearing node (JSX text or string literal)."""

    model_config = ConfigDict(frozen=False)

    file_path: str
    content: str  # text without quotes or surrounding whitespace
    kind: str  # jsx_text | jsx_expression | string_literal | fragmented
    start_line: int
    end_line: int
    start_pos: int = 0
    end_pos: int = 0
    context: str = ""
    is_fragmented: bool = False
    fragments: list["TextNode"] = Field(default_factory=list)
    full_sequence: str = ""

    @property
    def dedupe_key(self) -> str:
        return f"{self.file_path}:{self.start_line}-{self.end_line}:{self.content}"
