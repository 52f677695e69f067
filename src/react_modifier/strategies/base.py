"""Shared executor protocol and helpers for all strategies."""

import logging
import re
from typing import Optional, Protocol

from react_modifier.models import ChangeType, ModificationScope, StrategyResult
from react_modifier.session.context import SessionContext
from react_modifier.utils.diff_generator import count_changed_lines
from react_modifier.utils.structure_validator import (
    extract_file_structure,
    preserves_skeleton,
    repair_file_structure,
    validate_structure_preservation,
)

logger = logging.getLogger(__name__)

APPROACH_FULL_FILE = "FULL_FILE"
APPROACH_TARGETED_NODES = "TARGETED_NODES"
APPROACH_TAILWIND = "TAILWIND_CHANGE"
APPROACH_TEXT_BASED = "TEXT_BASED_CHANGE"
APPROACH_COMPONENT_ADDITION = "COMPONENT_ADDITION"
APPROACH_FALLBACK = "TRADITIONAL_FULL_FILE"

PROMPT_STOPWORDS = {
    "the", "and", "for", "with", "that", "this", "from", "into", "make", "change",
    "update", "add", "please", "can", "you", "all", "our", "my", "it", "to", "a", "an",
}


class StrategyExecutor(Protocol):
    """One mutation strategy. Returns a result instead of raising for
    ordinary "nothing to do" outcomes."""

    approach: str

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult: ...


def prompt_keywords(prompt: str, min_length: int = 3) -> list[str]:
    """Lowercase content words of a prompt, in order, deduplicated."""
    keywords: list[str] = []
    for word in re.findall(r"[a-zA-Z][a-zA-Z0-9-]*", prompt.lower()):
        if len(word) >= min_length and word not in PROMPT_STOPWORDS and word not in keywords:
            keywords.append(word)
    return keywords


def vet_rewrite(original_content: str, candidate: str) -> tuple[Optional[str], str]:
    """Gate a full-file rewrite on structure preservation.

    A rewrite is accepted when it passes strict validation and keeps every
    original import/export line verbatim. Otherwise a repair is attempted.

    Args:
        original_content: File text on disk.
        candidate: LLM replacement text.

    Returns:
        (content to write or None, note for the ledger reasoning).
    """
    original = extract_file_structure(original_content)
    validation = validate_structure_preservation(candidate, original, strict=True)
    if validation.is_valid and preserves_skeleton(candidate, original):
        note = "structure validated"
        if validation.warnings:
            note += f" ({len(validation.warnings)} warnings)"
        return candidate, note

    logger.info(
        "Rewrite failed structure validation (score %d): %s",
        validation.score,
        "; ".join(validation.errors) or "skeleton lines altered",
    )
    repaired = repair_file_structure(candidate, original)
    if repaired is not None:
        return repaired, "structure repaired after validation failure"
    return None, "rejected: " + ("; ".join(validation.errors) or "skeleton lines altered")


def write_change(
    session: SessionContext,
    relative_path: str,
    content: str,
    approach: str,
    description: str,
    reasoning: str = "",
    created: bool = False,
    components: Optional[list[str]] = None,
) -> int:
    """Write a file, append a ledger entry and return the changed line count.

    Raises:
        OSError: If the write fails. A failed ledger entry is recorded first.
    """
    previous = ""
    if not created:
        try:
            previous = session.read_file(relative_path)
        except OSError:
            created = True
    lines_changed = count_changed_lines(previous, content)
    change_type = ChangeType.CREATED if created else ChangeType.MODIFIED
    try:
        session.write_file(relative_path, content)
    except OSError as e:
        session.record(
            change_type, relative_path, f"{description} (write failed)", approach,
            success=False, reasoning=str(e),
        )
        raise
    session.record(
        change_type,
        relative_path,
        description,
        approach,
        success=True,
        lines_changed=lines_changed,
        components=components,
        reasoning=reasoning,
    )
    logger.info("%s %s (%d lines changed)", change_type.value.capitalize(), relative_path, lines_changed)
    return lines_changed
