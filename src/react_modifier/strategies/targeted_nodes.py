"""Targeted-nodes processor: patch individual JSX elements in place."""

import difflib
import logging
import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from react_modifier.models import JSXNode, ModificationScope, StrategyResult
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_TARGETED_NODES, vet_rewrite, write_change
from react_modifier.utils.ast_parser import extract_jsx_nodes
from react_modifier.utils.response_parsing import extract_json_object

logger = logging.getLogger(__name__)

CONTEXT_SIMILARITY = 0.7
LINE_HINT_SIMILARITY = 0.6
FUZZY_SIMILARITY = 0.5
MAX_NODES_PER_FILE = 200

EXCLUDED_PATH_MARKERS = ("components/ui/", ".d.ts", ".test.", ".spec.")
UI_LIBRARY_INDICATORS = (
    "@/lib/utils",
    "class-variance-authority",
    "@radix-ui/",
    "styled-components",
)

_LOCAL_EDIT_PATTERNS = [
    re.compile(r"replace\s+[\"']?(.+?)[\"']?\s+with\s+[\"']?(.+?)[\"']?\s*$", re.IGNORECASE),
    re.compile(r"change\s+[\"']?(.+?)[\"']?\s+to\s+[\"']?(.+?)[\"']?\s*$", re.IGNORECASE),
]


class NodeEdit(BaseModel):
    """Replacement code for one node."""

    model_config = ConfigDict(frozen=False)

    node: JSXNode
    new_code: str
    reasoning: str = ""


def similarity(a: str, b: str) -> float:
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return difflib.SequenceMatcher(None, a, b).ratio()


def is_excluded_file(relative_path: str, content: str) -> bool:
    """UI-library, declaration and test files are never patched."""
    if any(marker in f"/{relative_path}" for marker in EXCLUDED_PATH_MARKERS):
        return True
    if any(indicator in content for indicator in UI_LIBRARY_INDICATORS):
        return True
    return "React.forwardRef" in content and "displayName" in content


def compact_node_line(node: JSXNode) -> str:
    """``id:tag.class"text"(Lstart-Lend)``"""
    main_class = f".{node.class_name.split()[0]}" if node.class_name.strip() else ""
    text = f'"{node.display_text}"' if node.display_text else ""
    return f"{node.node_id}:{node.tag_name}{main_class}{text}(L{node.start_line}-{node.end_line})"


def _find_element_end(content: str, start: int, tag_name: str) -> Optional[int]:
    """End offset of the element opening at ``start``, by tag counting."""
    depth = 0
    position = start
    open_re = re.compile(rf"<{re.escape(tag_name)}\b")
    close_token = f"</{tag_name}"
    while position < len(content):
        if content.startswith(close_token, position):
            depth -= 1
            if depth == 0:
                end = content.find(">", position)
                return end + 1 if end != -1 else None
            position += len(close_token)
            continue
        if open_re.match(content, position):
            tag_end = content.find(">", position)
            if tag_end == -1:
                return None
            if content[tag_end - 1] == "/" and depth == 0:
                return tag_end + 1
            if content[tag_end - 1] != "/":
                depth += 1
            position = tag_end + 1
            continue
        position += 1
    return None


def _line_span(content: str, node: JSXNode) -> Optional[tuple[int, int]]:
    lines = content.split("\n")
    if node.start_line < 1 or node.end_line > len(lines):
        return None
    offsets = [0]
    for line in lines:
        offsets.append(offsets[-1] + len(line) + 1)
    start = offsets[node.start_line - 1] + node.start_column
    end = offsets[node.end_line - 1] + node.end_column
    if end <= start or end > len(content):
        return None
    return start, end


def locate_node(content: str, node: JSXNode) -> tuple[Optional[tuple[int, int]], str]:
    """Find a node's current span, treating stored positions as hints.

    Strategies, in order: recorded offset or unique exact code, context
    anchors, line/column hint, tag and class search. Returns the span and
    the strategy name, or (None, reason).
    """
    original = node.original_code
    if content[node.start_pos:node.end_pos] == original:
        return (node.start_pos, node.end_pos), "exact-offset"
    if original and content.count(original) == 1:
        start = content.index(original)
        return (start, start + len(original)), "exact-unique"

    if node.context_before and node.context_after:
        pattern = re.escape(node.context_before) + r"([\s\S]*?)" + re.escape(node.context_after)
        matches = list(re.finditer(pattern, content))
        if len(matches) == 1 and similarity(matches[0].group(1).strip(), original.strip()) > CONTEXT_SIMILARITY:
            return (matches[0].start(1), matches[0].end(1)), "context-anchored"

    span = _line_span(content, node)
    if span is not None and similarity(content[span[0]:span[1]].strip(), original.strip()) > LINE_HINT_SIMILARITY:
        return span, "line-hint"

    tag_pattern = rf"<{re.escape(node.tag_name)}\b"
    if node.class_name.strip():
        main_class = re.escape(node.class_name.split()[0])
        tag_pattern += rf"[^>]*className=\"[^\"]*{main_class}[^\"]*\""
    tag_matches = list(re.finditer(tag_pattern, content))
    if len(tag_matches) == 1:
        start = tag_matches[0].start()
        end = _find_element_end(content, start, node.tag_name)
        if end is not None and similarity(content[start:end].strip(), original.strip()) > FUZZY_SIMILARITY:
            return (start, end), "tag-fuzzy"

    return None, f"node {node.node_id} ({node.tag_name}) not found in current content"


def _visible_text(code: str) -> str:
    return " ".join(re.sub(r"<[^>]+>|\{[^}]*\}", " ", code).split())


def apply_node_edits(content: str, edits: list[NodeEdit]) -> tuple[str, list[str], list[str]]:
    """Apply edits in a single pass from the end of the file to the start.

    Edits whose span overlaps an already applied one are skipped.

    Returns:
        (new content, applied descriptions, failure descriptions).
    """
    located: list[tuple[int, int, NodeEdit, str]] = []
    failures: list[str] = []
    pending_text: list[NodeEdit] = []
    for edit in edits:
        span, how = locate_node(content, edit.node)
        if span is None:
            pending_text.append(edit)
            continue
        located.append((span[0], span[1], edit, how))

    located.sort(key=lambda item: item[0], reverse=True)
    applied: list[str] = []
    lower_bound: Optional[int] = None
    for start, end, edit, how in located:
        if lower_bound is not None and end > lower_bound:
            failures.append(f"{edit.node.node_id}: overlaps another edit")
            continue
        content = content[:start] + edit.new_code + content[end:]
        lower_bound = start
        applied.append(f"{edit.node.node_id}: {how}")

    # Parent-text replacement is position independent, so it runs last
    for edit in pending_text:
        old_text = edit.node.text_content
        new_text = _visible_text(edit.new_code)
        if edit.node.parent_tag and old_text and new_text and content.count(old_text) == 1:
            content = content.replace(old_text, new_text, 1)
            applied.append(f"{edit.node.node_id}: parent-text")
        else:
            failures.append(f"{edit.node.node_id}: all location strategies failed")
    return content, applied, failures


class TargetedNodesProcessor:
    """Two-round LLM flow: pick node ids from a compact tree, then rewrite them."""

    approach = APPROACH_TARGETED_NODES

    def build_tree(self, session: SessionContext) -> dict[str, list[JSXNode]]:
        tree: dict[str, list[JSXNode]] = {}
        for file in session.snapshot.source_files():
            if is_excluded_file(file.relative_path, file.content):
                continue
            try:
                nodes = extract_jsx_nodes(file.content, file.relative_path)
            except Exception as e:
                logger.warning("Skipping %s, parse failed: %s", file.relative_path, e)
                continue
            if nodes:
                tree[file.relative_path] = nodes[:MAX_NODES_PER_FILE]
        return tree

    @staticmethod
    def render_tree(tree: dict[str, list[JSXNode]]) -> str:
        blocks = []
        for relative_path, nodes in tree.items():
            lines = "\n".join(compact_node_line(node) for node in nodes)
            blocks.append(f"FILE: {relative_path}\n{lines}")
        return "\n\n".join(blocks)

    def analyze_tree(
        self,
        prompt: str,
        tree: dict[str, list[JSXNode]],
        session: SessionContext,
    ) -> list[dict[str, str]]:
        """Phase 1: ask which node ids need changes."""
        analysis_prompt = f"""TASK: Identify the JSX nodes that must change for the user request.

USER REQUEST: "{prompt}"

PROJECT TREE:
{self.render_tree(tree)}

FORMAT: nodeId:tagName.className"displayText"(LineStart-LineEnd)

INSTRUCTIONS:
1. Return ONLY nodes that actually need changes.
2. Use the exact nodeId from the tree.

RESPONSE FORMAT (JSON):
{{"needsModification": true, "targetNodes": [{{"filePath": "src/pages/Home.tsx", "nodeId": "a1b2c3d4e5f6", "reason": "why"}}], "reasoning": "overall explanation", "confidence": 85}}"""
        parsed = extract_json_object(session.ask_llm(analysis_prompt, "Phase 1: Tree Analysis", max_tokens=2000))
        if parsed is None:
            logger.warning("Tree analysis returned no JSON")
            return []
        if not parsed.get("needsModification", bool(parsed.get("targetNodes"))):
            return []
        targets = []
        for item in parsed.get("targetNodes") or []:
            if isinstance(item, dict) and item.get("nodeId"):
                targets.append({
                    "filePath": str(item.get("filePath") or ""),
                    "nodeId": str(item["nodeId"]),
                    "reason": str(item.get("reason") or ""),
                })
        return targets

    def generate_edits(
        self,
        prompt: str,
        relative_path: str,
        nodes: list[JSXNode],
        reasons: dict[str, str],
        session: SessionContext,
    ) -> list[NodeEdit]:
        """Phase 2: replacement code per node, with a local regex fallback."""
        details = []
        for node in nodes:
            parent = f"\nPARENT: {node.parent_tag}" if node.parent_tag else ""
            details.append(
                f"NODE ID: {node.node_id}\nTAG: {node.tag_name}\nCLASS: {node.class_name or 'none'}\n"
                f"POSITION: L{node.start_line}-{node.end_line}{parent}\n"
                f"REASON: {reasons.get(node.node_id, 'unknown')}\nCURRENT CODE:\n{node.original_code}"
            )
        modification_prompt = f"""You are a precise JSX editor.

USER REQUEST: "{prompt}"
FILE: {relative_path}

NODES TO MODIFY:
{chr(10).join(details)}

Keep all attributes, handlers and nested elements unless the request changes them.
When text spans nested elements, keep the intermediate tags and distribute the new text across them.

Respond with ONLY a JSON object:
{{"modifications": [{{"nodeId": "exact_node_id", "newCode": "complete replacement JSX element", "reasoning": "what changed"}}]}}"""
        by_id = {node.node_id: node for node in nodes}
        try:
            response = session.ask_llm(modification_prompt, "Phase 2: Modification Generation")
            parsed: Optional[dict[str, Any]] = extract_json_object(response)
        except Exception as e:
            logger.warning("Modification generation failed for %s: %s", relative_path, e)
            parsed = None

        if parsed is None or not isinstance(parsed.get("modifications"), list):
            logger.info("Using local replacement fallback for %s", relative_path)
            return self._local_edits(prompt, nodes)

        edits = []
        for item in parsed["modifications"]:
            if not isinstance(item, dict):
                continue
            node = by_id.get(str(item.get("nodeId", "")))
            new_code = str(item.get("newCode") or "")
            if node is None or not new_code.strip() or new_code == node.original_code:
                continue
            edits.append(NodeEdit(node=node, new_code=new_code, reasoning=str(item.get("reasoning") or "")))
        return edits

    @staticmethod
    def _local_edits(prompt: str, nodes: list[JSXNode]) -> list[NodeEdit]:
        for pattern in _LOCAL_EDIT_PATTERNS:
            match = pattern.search(prompt.strip())
            if match is None:
                continue
            old_text, new_text = match.group(1).strip(), match.group(2).strip()
            edits = []
            for node in nodes:
                if old_text and old_text in node.original_code:
                    edits.append(NodeEdit(
                        node=node,
                        new_code=node.original_code.replace(old_text, new_text),
                        reasoning="Local pattern replacement",
                    ))
            return edits
        return []

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult:
        tree = self.build_tree(session)
        if not tree:
            return StrategyResult.failure(self.approach, "No JSX nodes found in project files")
        session.progress(f"Analyzing {sum(len(n) for n in tree.values())} nodes in {len(tree)} files")

        targets = self.analyze_tree(prompt, tree, session)
        if not targets:
            return StrategyResult.failure(self.approach, "Tree analysis found no nodes to modify")

        grouped: dict[str, dict[str, str]] = {}
        for target in targets:
            file = session.snapshot.find(target["filePath"]) if target["filePath"] else None
            relative_path = file.relative_path if file else None
            if relative_path is None:
                relative_path = next(
                    (path for path, nodes in tree.items() if any(n.node_id == target["nodeId"] for n in nodes)),
                    None,
                )
            if relative_path is None or relative_path not in tree:
                logger.warning("Target file not found: %s", target["filePath"])
                continue
            grouped.setdefault(relative_path, {})[target["nodeId"]] = target["reason"]

        modified: list[str] = []
        file_reports: dict[str, dict[str, Any]] = {}
        for relative_path, reasons in grouped.items():
            nodes = [node for node in tree[relative_path] if node.node_id in reasons]
            if not nodes:
                file_reports[relative_path] = {"error": "node ids not found"}
                continue
            edits = self.generate_edits(prompt, relative_path, nodes, reasons, session)
            if not edits:
                file_reports[relative_path] = {"error": "no modifications generated"}
                continue

            original_content = session.read_file(relative_path)
            content, applied, failures = apply_node_edits(original_content, edits)
            file_reports[relative_path] = {"applied": applied, "failed": failures}
            if not applied or content == original_content:
                continue
            vetted, note = vet_rewrite(original_content, content)
            if vetted is None:
                logger.warning("Rejected node patch for %s: %s", relative_path, note)
                file_reports[relative_path]["error"] = note
                continue
            write_change(
                session,
                relative_path,
                vetted,
                self.approach,
                f"Patched {len(applied)} node(s) for: {prompt[:80]}",
                reasoning="; ".join(edit.reasoning for edit in edits if edit.reasoning) or note,
                components=sorted({edit.node.tag_name for edit in edits}),
            )
            modified.append(relative_path)

        if not modified:
            return StrategyResult.failure(
                self.approach,
                "No targeted node modifications could be applied",
                details={"files": file_reports},
            )
        return StrategyResult(
            success=True,
            approach=self.approach,
            modified_files=modified,
            reasoning=f"Patched nodes in {len(modified)} file(s)",
            details={"files": file_reports},
        )
