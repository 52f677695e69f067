"""Text-based processor: literal copy changes without whole-file rewrites.

Two tiers run in order:

1. Hybrid. Candidate files are discovered by text search, their text
   nodes (including text fragmented across sibling JSX nodes) are sent to
   the LLM in batches, and only accepted decisions are spliced back.
2. Direct search. When the hybrid tier modifies nothing, each candidate
   file is scanned for an exact, then a case-insensitive, match and
   rewritten by plain string replacement. No LLM is involved.
"""

import logging
import math
import re
from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field

from react_modifier.agents.exceptions import LLMError
from react_modifier.models import ModificationScope, ProjectFile, StrategyResult, TextNode
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_TEXT_BASED, write_change
from react_modifier.utils.ast_parser import extract_text_nodes
from react_modifier.utils.diff_generator import generate_unified_diff
from react_modifier.utils.response_parsing import extract_json_object
from react_modifier.utils.structure_validator import validate_syntax

logger = logging.getLogger(__name__)

FRAGMENT_WINDOW = 5  # sibling text nodes inspected for one fragmented sequence
FRAGMENT_WORD_RATIO = 0.6
DEFAULT_DECISION_CONFIDENCE = 0.5
PARSE_FAILURE_CONFIDENCE = 0.3
MIN_APPLY_CONFIDENCE = 0.5
NEARBY_LINES = 2
TEXT_BATCH_MAX_TOKENS = 4000


class FileMatch(BaseModel):
    """A discovered candidate file and the strategy that found it."""

    model_config = ConfigDict(frozen=False)

    relative_path: str
    strategy: str
    confidence: float


class TextDecision(BaseModel):
    """One LLM replacement decision for a text node."""

    model_config = ConfigDict(frozen=False)

    node_index: int
    original_snippet: str = ""
    modified_snippet: str = ""
    original_content: str = ""
    modified_content: str = ""
    reasoning: str = ""
    confidence: float = DEFAULT_DECISION_CONFIDENCE
    should_apply: bool = True
    strategy: str = "text_replacement"
    warnings: list[str] = Field(default_factory=list)


class DecisionBatch(BaseModel):
    model_config = ConfigDict(frozen=False)

    decisions: list[TextDecision] = Field(default_factory=list)
    overall_strategy: str = ""
    batch_confidence: float = DEFAULT_DECISION_CONFIDENCE


class TextSubResult(BaseModel):
    """Per-request report of the text-based processor."""

    model_config = ConfigDict(frozen=False)

    tier: str = "hybrid"  # hybrid | direct_search
    search_term: str
    replacement_term: str
    files_discovered: list[FileMatch] = Field(default_factory=list)
    nodes_found: int = 0
    decisions_applied: int = 0
    average_confidence: float = 0.0
    apply_methods: dict[str, int] = Field(default_factory=dict)
    diffs: dict[str, str] = Field(default_factory=dict)
    word_boundary: bool = False


# ---------------------------------------------------------------------------
# File discovery
# ---------------------------------------------------------------------------


def extract_key_phrases(search_term: str) -> list[str]:
    """Words longer than three chars plus every 2- and 3-word window."""
    words = search_term.lower().split()
    phrases = [word for word in words if len(word) > 3]
    phrases.extend(" ".join(words[i:i + 2]) for i in range(len(words) - 1))
    phrases.extend(" ".join(words[i:i + 3]) for i in range(len(words) - 2))
    return phrases


def build_search_strategies(search_term: str) -> list[tuple[str, float, Callable[[str], bool]]]:
    """Ordered (name, confidence, test) discovery strategies for a term."""
    lowered = search_term.lower()
    key_phrases = extract_key_phrases(search_term)
    words = [word for word in lowered.split() if len(word) > 2]

    def key_phrase_test(content: str) -> bool:
        if not key_phrases:
            return False
        text = content.lower()
        found = sum(1 for phrase in key_phrases if phrase in text)
        return found >= min(3, len(key_phrases) * 0.4)

    def word_test(content: str) -> bool:
        if not words:
            return False
        text = content.lower()
        found = sum(1 for word in words if word in text)
        return found >= max(2, len(words) * 0.6)

    return [
        ("full_exact", 1.0, lambda content: search_term in content),
        ("full_case_insensitive", 0.95, lambda content: lowered in content.lower()),
        ("key_phrases", 0.7, key_phrase_test),
        ("word_matching", 0.6, word_test),
    ]


def discover_files(files: list[ProjectFile], search_term: str) -> list[FileMatch]:
    """Find files containing the term; the first passing strategy wins."""
    strategies = build_search_strategies(search_term)
    matches: list[FileMatch] = []
    for file in files:
        for name, confidence, test in strategies:
            if test(file.content):
                matches.append(FileMatch(
                    relative_path=file.relative_path, strategy=name, confidence=confidence
                ))
                break
    matches.sort(key=lambda m: (-m.confidence, m.relative_path))
    return matches


# ---------------------------------------------------------------------------
# Text node collection
# ---------------------------------------------------------------------------


def find_fragment_sequence(
    nodes: list[TextNode],
    start_index: int,
    search_words: list[str],
) -> list[TextNode]:
    """Sibling nodes that jointly hold enough of the search words, in order.

    At most FRAGMENT_WINDOW nodes are inspected. The sequence counts only
    when at least ceil(0.6 * len(search_words)) words were matched.
    """
    sequence: list[TextNode] = []
    word_index = 0
    last = min(len(nodes), start_index + FRAGMENT_WINDOW)
    for i in range(start_index, last):
        if word_index >= len(search_words):
            break
        matched = False
        for node_word in nodes[i].content.lower().split():
            if word_index < len(search_words):
                search_word = search_words[word_index]
                if search_word in node_word or node_word in search_word:
                    matched = True
                    word_index += 1
        if matched:
            sequence.append(nodes[i])
        elif sequence:
            next_has_match = (
                i + 1 < len(nodes)
                and word_index < len(search_words)
                and any(search_words[word_index] in w for w in nodes[i + 1].content.lower().split())
            )
            if not next_has_match:
                break

    threshold = math.ceil(len(search_words) * FRAGMENT_WORD_RATIO)
    return sequence if word_index >= threshold else []


def _fragmented_node(sequence: list[TextNode]) -> TextNode:
    first, last = sequence[0], sequence[-1]
    joined = " ".join(node.content for node in sequence)
    return TextNode(
        file_path=first.file_path,
        content=joined,
        kind="fragmented",
        start_line=first.start_line,
        end_line=last.end_line,
        start_pos=first.start_pos,
        end_pos=last.end_pos,
        context=first.context,
        is_fragmented=True,
        fragments=sequence,
        full_sequence=joined,
    )


def collect_candidate_nodes(content: str, file_path: str, search_term: str) -> list[TextNode]:
    """Text nodes that contain the term, plus fragmented sequences for it."""
    nodes = extract_text_nodes(content, file_path)
    lowered = search_term.lower()
    search_words = lowered.split()
    found: dict[str, TextNode] = {}

    for node in nodes:
        if lowered in node.content.lower():
            found.setdefault(node.dedupe_key, node)

    if len(search_words) > 1 and not found:
        jsx_nodes = [n for n in nodes if n.kind in ("jsx_text", "jsx_expression")]
        index = 0
        while index < len(jsx_nodes):
            sequence = find_fragment_sequence(jsx_nodes, index, search_words)
            if len(sequence) > 1:
                fragmented = _fragmented_node(sequence)
                found.setdefault(fragmented.dedupe_key, fragmented)
                index = jsx_nodes.index(sequence[-1]) + 1
            else:
                index += 1

    return sorted(found.values(), key=lambda n: n.start_pos)


def node_snippet(content: str, node: TextNode) -> str:
    """The source lines spanned by a node."""
    lines = content.split("\n")
    return "\n".join(lines[node.start_line - 1:node.end_line])


# ---------------------------------------------------------------------------
# LLM decisions
# ---------------------------------------------------------------------------


def _coerce_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_decisions(response: str) -> DecisionBatch:
    """Parse a batch response; malformed JSON yields an empty low-confidence batch."""
    data = extract_json_object(response)
    if data is None or not isinstance(data.get("modifications", []), list):
        logger.warning("Could not parse text batch response")
        return DecisionBatch(
            overall_strategy="Failed to parse response",
            batch_confidence=PARSE_FAILURE_CONFIDENCE,
        )

    decisions = []
    for raw in data.get("modifications", []):
        if not isinstance(raw, dict):
            continue
        try:
            node_index = int(raw.get("nodeIndex", -1))
        except (TypeError, ValueError):
            continue
        decisions.append(TextDecision(
            node_index=node_index,
            original_snippet=str(raw.get("originalSnippet") or ""),
            modified_snippet=str(raw.get("modifiedSnippet") or ""),
            original_content=str(raw.get("originalContent") or ""),
            modified_content=str(raw.get("modifiedContent") or ""),
            reasoning=str(raw.get("reasoning") or ""),
            confidence=_coerce_float(raw.get("confidence"), DEFAULT_DECISION_CONFIDENCE),
            should_apply=bool(raw.get("shouldApply", True)),
            strategy=str(raw.get("strategy") or "text_replacement"),
            warnings=[str(w) for w in raw.get("warnings") or []],
        ))
    return DecisionBatch(
        decisions=decisions,
        overall_strategy=str(data.get("overallStrategy") or ""),
        batch_confidence=_coerce_float(data.get("batchConfidence"), DEFAULT_DECISION_CONFIDENCE),
    )


def build_batch_prompt(
    user_prompt: str,
    search_term: str,
    replacement_term: str,
    batch: list[tuple[TextNode, str]],
) -> str:
    descriptions = []
    for index, (node, snippet) in enumerate(batch):
        kind = "FRAGMENTED: text spans multiple elements" if node.is_fragmented else "SIMPLE: single text node"
        descriptions.append(
            f"NODE {index}:\nFile: {node.file_path}\nLines: {node.start_line}-{node.end_line}\n{kind}\n\n"
            f"ORIGINAL CODE:\n```jsx\n{snippet}\n```\n\nTARGET TEXT: \"{node.content}\"\n---"
        )
    return f"""You are a precise JSX copy editor. Decide, for each node below, whether the user's text change applies and produce the replacement.

USER REQUEST: "{user_prompt}"
SEARCH TERM: "{search_term}"
REPLACEMENT TERM: "{replacement_term}"

{chr(10).join(descriptions)}

INSTRUCTIONS:
1. Preserve every tag, attribute and the surrounding structure; change only the text.
2. For fragmented text, distribute the replacement words across the existing elements.
3. Set shouldApply to false when a node is not the copy the user means.

Return ONLY this JSON (no markdown):
{{
  "modifications": [
    {{
      "nodeIndex": 0,
      "originalSnippet": "exact original code",
      "modifiedSnippet": "modified code",
      "originalContent": "{search_term}",
      "modifiedContent": "{replacement_term}",
      "reasoning": "why",
      "confidence": 0.95,
      "shouldApply": true,
      "strategy": "text_replacement",
      "warnings": []
    }}
  ],
  "overallStrategy": "summary",
  "batchConfidence": 0.95
}}"""


# ---------------------------------------------------------------------------
# Applying decisions
# ---------------------------------------------------------------------------


def _replace_nearest(content: str, old: str, new: str, anchor: int) -> Optional[str]:
    """Replace the occurrence of ``old`` closest to ``anchor``."""
    if not old:
        return None
    positions = []
    start = content.find(old)
    while start != -1:
        positions.append(start)
        start = content.find(old, start + 1)
    if not positions:
        return None
    best = min(positions, key=lambda pos: abs(pos - anchor))
    return content[:best] + new + content[best + len(old):]


def _apply_snippet(content: str, node: TextNode, decision: TextDecision) -> Optional[str]:
    replaced = _replace_nearest(content, decision.original_snippet, decision.modified_snippet, node.start_pos)
    if replaced is not None:
        return replaced
    normalized = " ".join(decision.original_snippet.split())
    lines = content.split("\n")
    for i, line in enumerate(lines):
        if normalized and normalized in " ".join(line.split()) and decision.original_snippet in line:
            lines[i] = line.replace(decision.original_snippet, decision.modified_snippet, 1)
            return "\n".join(lines)
    return None


def _apply_fragmented(content: str, node: TextNode, decision: TextDecision) -> Optional[str]:
    """Spread the replacement words over the fragments, last fragment first."""
    replacement_words = decision.modified_content.split()
    portions: list[tuple[TextNode, str]] = []
    word_index = 0
    for position, fragment in enumerate(node.fragments):
        if word_index >= len(replacement_words):
            break
        width = len(fragment.content.split())
        if position == len(node.fragments) - 1:
            width = len(replacement_words) - word_index
        portions.append((fragment, " ".join(replacement_words[word_index:word_index + width])))
        word_index += width

    updated = content
    for fragment, portion in sorted(portions, key=lambda item: item[0].start_pos, reverse=True):
        replaced = _replace_nearest(updated, fragment.content, portion, fragment.start_pos)
        if replaced is not None:
            updated = replaced
    return updated if updated != content else None


def _apply_line_based(content: str, node: TextNode, decision: TextDecision) -> Optional[str]:
    lines = content.split("\n")
    target = node.start_line - 1
    if not 0 <= target < len(lines) or not decision.original_content:
        return None
    order = [target] + [
        i for i in range(max(0, target - NEARBY_LINES), min(len(lines), target + NEARBY_LINES + 1))
        if i != target
    ]
    for i in order:
        if decision.original_content in lines[i]:
            lines[i] = lines[i].replace(decision.original_content, decision.modified_content, 1)
            return "\n".join(lines)
    return None


def apply_decision(content: str, node: TextNode, decision: TextDecision) -> tuple[str, Optional[str]]:
    """Apply one decision; returns (content, method) with method None on miss."""
    if decision.original_snippet and decision.modified_snippet:
        updated = _apply_snippet(content, node, decision)
        if updated is not None:
            return updated, "snippet"
    if node.is_fragmented and node.fragments and decision.modified_content:
        updated = _apply_fragmented(content, node, decision)
        if updated is not None:
            return updated, "fragmented"
    if decision.original_content:
        updated = _replace_nearest(content, decision.original_content, decision.modified_content, node.start_pos)
        if updated is not None:
            return updated, "direct"
    updated = _apply_line_based(content, node, decision)
    if updated is not None:
        return updated, "line"
    return content, None


def apply_decisions(
    content: str,
    accepted: list[tuple[TextNode, TextDecision]],
) -> tuple[str, dict[str, int]]:
    """Apply accepted decisions to one file, bottom of the file first."""
    methods: dict[str, int] = {}
    ordered = sorted(accepted, key=lambda item: (item[0].start_line, item[0].start_pos), reverse=True)
    for node, decision in ordered:
        content, method = apply_decision(content, node, decision)
        if method is None:
            logger.info("No apply method matched node at %s:%d", node.file_path, node.start_line)
            continue
        methods[method] = methods.get(method, 0) + 1
    return content, methods


# ---------------------------------------------------------------------------
# Direct search tier
# ---------------------------------------------------------------------------


def _term_pattern(search_term: str, word_boundary: bool) -> str:
    pattern = re.escape(search_term)
    if word_boundary:
        if re.match(r"\w", search_term):
            pattern = r"\b" + pattern
        if re.search(r"\w$", search_term):
            pattern = pattern + r"\b"
    return pattern


def direct_replace(
    content: str,
    search_term: str,
    replacement_term: str,
    word_boundary: bool = False,
) -> tuple[Optional[str], Optional[str]]:
    """Replace every occurrence: exact first, then case-insensitive.

    Returns:
        (new content, strategy name), or (None, None) when nothing matched.
    """
    pattern = _term_pattern(search_term, word_boundary)
    for name, flags in (("exact", 0), ("case_insensitive", re.IGNORECASE)):
        updated, count = re.subn(pattern, lambda _m: replacement_term, content, flags=flags)
        if count:
            return updated, name
    return None, None


class TextBasedProcessor:
    """Search-and-replace over text nodes, LLM-scored first, literal second."""

    approach = APPROACH_TEXT_BASED

    def _decide(
        self,
        prompt: str,
        search_term: str,
        replacement_term: str,
        batch: list[tuple[TextNode, str]],
        session: SessionContext,
    ) -> DecisionBatch:
        try:
            response = session.ask_llm(
                build_batch_prompt(prompt, search_term, replacement_term, batch),
                "Text Batch Processing",
                max_tokens=TEXT_BATCH_MAX_TOKENS,
            )
        except LLMError as e:
            logger.warning("Text batch LLM call failed: %s", e)
            return DecisionBatch(overall_strategy=str(e), batch_confidence=PARSE_FAILURE_CONFIDENCE)
        return parse_decisions(response)

    def run_hybrid(
        self,
        prompt: str,
        search_term: str,
        replacement_term: str,
        session: SessionContext,
        report: TextSubResult,
    ) -> list[str]:
        """Hybrid tier. Returns the files it wrote."""
        report.files_discovered = discover_files(session.snapshot.source_files(), search_term)
        if not report.files_discovered:
            return []

        originals: dict[str, str] = {}
        entries: list[tuple[TextNode, str]] = []
        for match in report.files_discovered:
            try:
                content = session.read_file(match.relative_path)
                nodes = collect_candidate_nodes(content, match.relative_path, search_term)
            except (OSError, ValueError) as e:
                logger.warning("Skipping %s during text extraction: %s", match.relative_path, e)
                continue
            originals[match.relative_path] = content
            entries.extend((node, node_snippet(content, node)) for node in nodes)
        report.nodes_found = len(entries)
        if not entries:
            return []

        accepted: dict[str, list[tuple[TextNode, TextDecision]]] = {}
        confidences: list[float] = []
        batch_size = max(1, session.settings.text_batch_size)
        for start in range(0, len(entries), batch_size):
            batch = entries[start:start + batch_size]
            decisions = self._decide(prompt, search_term, replacement_term, batch, session)
            for decision in decisions.decisions:
                if not 0 <= decision.node_index < len(batch):
                    continue
                if not decision.should_apply or decision.confidence < MIN_APPLY_CONFIDENCE:
                    continue
                node = batch[decision.node_index][0]
                if not decision.original_content:
                    decision.original_content = node.content
                if not decision.modified_content:
                    decision.modified_content = replacement_term
                accepted.setdefault(node.file_path, []).append((node, decision))
                confidences.append(decision.confidence)

        written: list[str] = []
        for relative_path, items in accepted.items():
            original = originals[relative_path]
            updated, methods = apply_decisions(original, items)
            if updated == original:
                continue
            if validate_syntax(original).is_valid and not validate_syntax(updated).is_valid:
                logger.warning("Discarding text edits to %s: brackets no longer balance", relative_path)
                continue
            write_change(
                session,
                relative_path,
                updated,
                self.approach,
                f'Text change "{search_term}" -> "{replacement_term}"',
                reasoning=f"Hybrid text replacement ({', '.join(sorted(methods))})",
            )
            written.append(relative_path)
            report.diffs[relative_path] = generate_unified_diff(relative_path, original, updated)
            report.decisions_applied += sum(methods.values())
            for method, count in methods.items():
                report.apply_methods[method] = report.apply_methods.get(method, 0) + count
        if confidences:
            report.average_confidence = sum(confidences) / len(confidences)
        return written

    def run_direct_search(
        self,
        search_term: str,
        replacement_term: str,
        session: SessionContext,
        report: TextSubResult,
    ) -> list[str]:
        """Direct search tier. Returns the files it wrote."""
        written: list[str] = []
        for file in session.snapshot.source_files():
            try:
                original = session.read_file(file.relative_path)
            except OSError as e:
                logger.warning("Could not read %s: %s", file.relative_path, e)
                continue
            updated, strategy = direct_replace(
                original, search_term, replacement_term, report.word_boundary
            )
            if updated is None or updated == original:
                continue
            write_change(
                session,
                file.relative_path,
                updated,
                self.approach,
                f'Direct text replacement "{search_term}" -> "{replacement_term}"',
                reasoning=f"Direct search ({strategy} match)",
            )
            written.append(file.relative_path)
            report.diffs[file.relative_path] = generate_unified_diff(file.relative_path, original, updated)
            report.apply_methods[strategy] = report.apply_methods.get(strategy, 0) + 1
        return written

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult:
        terms = scope.text_terms
        if terms is None or not terms.is_usable():
            return StrategyResult.failure(self.approach, "No usable search and replacement terms")

        report = TextSubResult(
            search_term=terms.search_term,
            replacement_term=terms.replacement_term,
            word_boundary=session.settings.word_boundary_matching,
        )
        session.progress(f'Searching for "{terms.search_term}"')
        written = self.run_hybrid(prompt, terms.search_term, terms.replacement_term, session, report)
        if not written:
            session.progress("Hybrid text tier changed nothing, trying direct search")
            report.tier = "direct_search"
            written = self.run_direct_search(terms.search_term, terms.replacement_term, session, report)

        details = {"text": report.model_dump(mode="json")}
        if not written:
            return StrategyResult.failure(
                self.approach,
                f'Text "{terms.search_term}" not found in any project file',
                details=details,
            )
        return StrategyResult(
            success=True,
            approach=self.approach,
            modified_files=written,
            reasoning=(
                f'Replaced "{terms.search_term}" with "{terms.replacement_term}" '
                f"in {len(written)} file(s) via {report.tier.replace('_', ' ')}"
            ),
            details=details,
        )
