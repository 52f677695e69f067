"""AST parser utility for JSX/TSX sources using tree-sitter."""

import hashlib
import re
from pathlib import Path
from typing import Iterator, Optional

import tree_sitter_javascript as tsjs
import tree_sitter_typescript as tsts
from tree_sitter import Language, Node, Parser, Query, QueryCursor, Tree

from react_modifier.models import ElementSummary, JSXNode, TextNode

# Initialize language objects
JS_LANGUAGE = Language(tsjs.language())
TS_LANGUAGE = Language(tsts.language_typescript())
TSX_LANGUAGE = Language(tsts.language_tsx())

PARSEABLE_EXTENSIONS = {".js", ".jsx", ".ts", ".tsx"}
CONTEXT_CHARS = 50  # chars of surrounding source kept for re-location
MAX_DISPLAY_CHARS = 30
MAX_DISPLAY_WORDS = 3
MIN_STRING_LITERAL_CHARS = 3

_ELEMENT_TYPES = ("jsx_element", "jsx_self_closing_element")
_SIGNIN_RE = re.compile(r"sign\s*in|log\s*in|signin|login", re.IGNORECASE)
_STOP_WORDS = {"the", "a", "an", "and", "or", "to", "of", "in", "on", "for", "with"}


def get_language_for_file(file_path: str) -> str:
    """Map file extension to tree-sitter language name.

    Args:
        file_path: Path to the file

    Returns:
        Language name ("javascript", "typescript", "tsx")

    Raises:
        ValueError: If file extension is not supported
    """
    ext = Path(file_path).suffix
    mapping = {
        ".js": "javascript",
        ".jsx": "javascript",
        ".ts": "typescript",
        ".tsx": "tsx",
    }
    if ext not in mapping:
        raise ValueError(f"Unsupported file extension: {ext}")
    return mapping[ext]


def _language_object(language: str) -> Language:
    if language == "javascript":
        return JS_LANGUAGE
    if language == "typescript":
        return TS_LANGUAGE
    if language == "tsx":
        return TSX_LANGUAGE
    raise ValueError(f"Unsupported language: {language}")


def get_parser(language: str) -> Parser:
    """Return a tree-sitter Parser for the given language name."""
    parser = Parser()
    parser.language = _language_object(language)
    return parser


def parse_source(content: str, file_path: str) -> tuple[Tree, Language]:
    """Parse in-memory source, choosing the grammar from the file extension.

    Args:
        content: Source text.
        file_path: Path used only to pick the grammar.

    Returns:
        Tuple of (tree, language)

    Raises:
        ValueError: If the extension is not a JS/TS flavour.
    """
    language_name = get_language_for_file(file_path)
    parser = get_parser(language_name)
    tree = parser.parse(content.encode("utf-8"))
    return tree, _language_object(language_name)


def iter_nodes(node: Node) -> Iterator[Node]:
    """Pre-order traversal of a tree-sitter subtree."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


def _text(node: Optional[Node]) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


class _OffsetMap:
    """Convert tree-sitter byte offsets to str indices."""

    def __init__(self, content: str):
        self.content = content
        self.source = content.encode("utf-8")
        self.ascii_only = len(self.source) == len(content)

    def char(self, byte_offset: int) -> int:
        if self.ascii_only:
            return byte_offset
        return len(self.source[:byte_offset].decode("utf-8", errors="ignore"))


def extract_imports(tree: Tree, language: Language) -> list[str]:
    """Extract import source paths from import statements."""
    imports = []
    import_query = Query(language, """
        (import_statement
            source: (string) @source)
    """)
    import_cursor = QueryCursor(import_query)

    for match in import_cursor.matches(tree.root_node):
        _, captures = match
        if "source" in captures:
            source_text = _text(captures["source"][0])
            if source_text:
                imports.append(source_text.strip("'\""))
    return imports


def extract_exports(tree: Tree, language: Language) -> list[str]:
    """Extract exported names; a default export is reported as "default"."""
    exports: list[str] = []
    export_query = Query(language, """
        (export_statement) @export
    """)
    export_cursor = QueryCursor(export_query)

    for match in export_cursor.matches(tree.root_node):
        _, captures = match
        if "export" not in captures:
            continue
        export_node = captures["export"][0]
        if any(child.type == "default" for child in export_node.children):
            exports.append("default")
            continue
        declaration = export_node.child_by_field_name("declaration")
        if declaration is not None:
            for node in iter_nodes(declaration):
                if node.type in ("function_declaration", "class_declaration", "variable_declarator"):
                    name = node.child_by_field_name("name")
                    if name is not None:
                        exports.append(_text(name))
                    break
            continue
        for node in iter_nodes(export_node):
            if node.type == "export_specifier":
                name = node.child_by_field_name("alias") or node.child_by_field_name("name")
                if name is not None:
                    exports.append(_text(name))
    return exports


def _tag_name(element: Node) -> str:
    opening = element
    if element.type == "jsx_element":
        opening = element.child_by_field_name("open_tag") or element.children[0]
    name = opening.child_by_field_name("name")
    return _text(name)


def _opening_element(element: Node) -> Node:
    if element.type == "jsx_element":
        return element.child_by_field_name("open_tag") or element.children[0]
    return element


def _attributes(element: Node) -> dict[str, str]:
    attributes: dict[str, str] = {}
    for child in _opening_element(element).children:
        if child.type != "jsx_attribute" or not child.children:
            continue
        name = _text(child.children[0])
        value_node = child.children[-1] if len(child.children) > 1 else None
        if value_node is None:
            attributes[name] = "true"
        elif value_node.type == "string":
            attributes[name] = _text(value_node)[1:-1]
        else:
            attributes[name] = _text(value_node)
    return attributes


def _element_text(element: Node) -> str:
    parts = []
    for node in iter_nodes(element):
        if node.type == "jsx_text":
            stripped = _text(node).strip()
            if stripped:
                parts.append(stripped)
        elif node.type == "string" and node.parent is not None and node.parent.type == "jsx_expression":
            parts.append(_text(node)[1:-1])
    return " ".join(" ".join(parts).split())


def _enclosing_element(node: Node) -> Optional[Node]:
    parent = node.parent
    while parent is not None and parent.type not in _ELEMENT_TYPES:
        parent = parent.parent
    return parent


def build_display_text(tag_name: str, text: str, attributes: dict[str, str]) -> str:
    """Short human label for an element in compact tree listings."""
    lowered = tag_name.lower()
    if text:
        if lowered in ("button", "a", "link"):
            return text
        words = [w for w in text.split() if w.lower() not in _STOP_WORDS] or text.split()
        label = " ".join(words[:MAX_DISPLAY_WORDS])
        if len(label) > MAX_DISPLAY_CHARS:
            label = label[: MAX_DISPLAY_CHARS - 3] + "..."
        return label
    for attribute in ("placeholder", "title", "alt", "aria-label", "href"):
        if attributes.get(attribute):
            return f"[{attribute}:{attributes[attribute][:MAX_DISPLAY_CHARS]}]"
    if lowered == "button" or tag_name == "Button":
        return "[Button]"
    if tag_name in ("Link", "a"):
        return "[Link]"
    if lowered == "input":
        return f"[{attributes.get('type', 'text')}Input]"
    if lowered == "img":
        return "[img:alt]"
    class_name = attributes.get("className", "")
    if class_name:
        return "[." + "-".join(class_name.split()[:2]) + "]"
    return ""


def make_node_id(
    tag_name: str,
    start_line: int,
    end_line: int,
    start_column: int,
    end_column: int,
    index: int,
    class_name: str,
    context: str,
) -> str:
    """Stable content-derived id (first 12 hex chars of sha256)."""
    normalized_context = " ".join(context.split())
    key = (
        f"{tag_name}|{start_line}:{start_column}-{end_line}:{end_column}"
        f"|{index}|{class_name}|{normalized_context}"
    )
    return hashlib.sha256(key.encode("utf-8")).hexdigest()[:12]


def extract_jsx_nodes(content: str, file_path: str) -> list[JSXNode]:
    """Extract every named JSX element with position and context data.

    Args:
        content: File content.
        file_path: Relative path, stored on each node and used for grammar.

    Returns:
        JSXNode list in document order.
    """
    tree, _ = parse_source(content, file_path)
    offsets = _OffsetMap(content)
    nodes: list[JSXNode] = []

    for element in iter_nodes(tree.root_node):
        if element.type not in _ELEMENT_TYPES:
            continue
        tag_name = _tag_name(element)
        if not tag_name:
            continue

        start_pos = offsets.char(element.start_byte)
        end_pos = offsets.char(element.end_byte)
        original_code = content[start_pos:end_pos]
        context_before = content[max(0, start_pos - CONTEXT_CHARS):start_pos]
        context_after = content[end_pos:end_pos + CONTEXT_CHARS]
        attributes = _attributes(element)
        class_name = attributes.get("className", "")
        text = _element_text(element)

        parent = _enclosing_element(element)
        grandparent = _enclosing_element(parent) if parent is not None else None
        parent_attributes = _attributes(parent) if parent is not None else {}

        index = len(nodes)
        start_line = element.start_point[0] + 1
        end_line = element.end_point[0] + 1
        nodes.append(JSXNode(
            node_id=make_node_id(
                tag_name,
                start_line,
                end_line,
                element.start_point[1],
                element.end_point[1],
                index,
                class_name,
                context_before + context_after,
            ),
            file_path=file_path,
            tag_name=tag_name,
            index=index,
            class_name=class_name,
            text_content=text,
            display_text=build_display_text(tag_name, text, attributes),
            attributes=attributes,
            start_pos=start_pos,
            end_pos=end_pos,
            start_line=start_line,
            end_line=end_line,
            start_column=element.start_point[1],
            end_column=element.end_point[1],
            original_code=original_code,
            context_before=context_before,
            context_after=context_after,
            code_hash=hashlib.md5(original_code.encode("utf-8")).hexdigest(),
            is_button=tag_name in ("button", "Button") or "btn" in class_name,
            has_signin_text=bool(_SIGNIN_RE.search(text)),
            parent_tag=_tag_name(parent) if parent is not None else None,
            parent_class=parent_attributes.get("className") if parent is not None else None,
            grandparent_tag=_tag_name(grandparent) if grandparent is not None else None,
        ))

    return nodes


def summarize_elements(content: str, file_path: str) -> list[ElementSummary]:
    """Lightweight element list for project snapshots."""
    summaries = []
    for node in extract_jsx_nodes(content, file_path):
        summaries.append(ElementSummary(
            tag_name=node.tag_name,
            start_line=node.start_line,
            end_line=node.end_line,
            class_name=node.class_name,
            text_content=node.text_content[:80],
            props=sorted(node.attributes),
            is_component=node.tag_name[:1].isupper(),
        ))
    return summaries


def _line_context(lines: list[str], start_line: int, end_line: int, context_lines: int) -> str:
    first = max(0, start_line - 1 - context_lines)
    last = min(len(lines), end_line + context_lines)
    return "\n".join(lines[first:last])


def extract_text_nodes(content: str, file_path: str, context_lines: int = 4) -> list[TextNode]:
    """Extract every text-bearing node: JSX text and string literals.

    Import/export sources are skipped. Non-JSX string literals shorter than
    four characters are skipped since they are rarely user-facing copy.
    """
    tree, _ = parse_source(content, file_path)
    offsets = _OffsetMap(content)
    lines = content.split("\n")
    text_nodes: list[TextNode] = []

    for node in iter_nodes(tree.root_node):
        if node.type == "jsx_text":
            raw = _text(node)
            stripped = raw.strip()
            if not stripped:
                continue
            leading = len(raw) - len(raw.lstrip())
            start_pos = offsets.char(node.start_byte) + leading
            kind = "jsx_text"
        elif node.type == "string":
            parent_type = node.parent.type if node.parent is not None else ""
            if parent_type in ("import_statement", "export_statement"):
                continue
            stripped = _text(node)[1:-1]
            if parent_type == "jsx_expression":
                kind = "jsx_expression"
            else:
                kind = "string_literal"
                if len(stripped) <= MIN_STRING_LITERAL_CHARS:
                    continue
            if not stripped.strip():
                continue
            start_pos = offsets.char(node.start_byte) + 1
        else:
            continue

        start_line = content.count("\n", 0, start_pos) + 1
        end_pos = start_pos + len(stripped)
        end_line = start_line + stripped.count("\n")
        text_nodes.append(TextNode(
            file_path=file_path,
            content=stripped,
            kind=kind,
            start_line=start_line,
            end_line=end_line,
            start_pos=start_pos,
            end_pos=end_pos,
            context=_line_context(lines, start_line, end_line, context_lines),
        ))

    text_nodes.sort(key=lambda item: item.start_pos)
    return text_nodes


def detect_component_name(content: str) -> Optional[str]:
    """Best-effort primary component name from declarations."""
    default_match = re.search(r"export\s+default\s+(?:function\s+)?([A-Z]\w*)", content)
    if default_match:
        return default_match.group(1)
    declaration = re.search(r"(?:function|const|class)\s+([A-Z]\w*)", content)
    return declaration.group(1) if declaration else None
