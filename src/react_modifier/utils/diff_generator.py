"""Diff and code-style helpers shared by the strategy executors."""

import difflib


def generate_unified_diff(
    file_path: str,
    original_content: str,
    modified_content: str,
    context_lines: int = 3,
) -> str:
    """Generate a git-style unified diff for one file.

    Args:
        file_path: Path relative to the project root (e.g. "src/App.tsx").
        original_content: Content before the modification.
        modified_content: Content after the modification.
        context_lines: Unchanged lines shown around each hunk.

    Returns:
        Unified diff with a/ b/ prefixes, or "" when nothing changed.
    """
    if original_content == modified_content:
        return ""

    diff_gen = difflib.unified_diff(
        original_content.splitlines(),
        modified_content.splitlines(),
        fromfile=f"a/{file_path}",
        tofile=f"b/{file_path}",
        n=context_lines,
        lineterm="",
    )
    return "\n".join(diff_gen)


def count_changed_lines(original_content: str, modified_content: str) -> int:
    """Count positions whose line differs between two versions.

    Lines are compared index by index, so an insertion near the top counts
    every shifted line below it. This mirrors how config edits are reported.
    """
    original_lines = original_content.split("\n")
    modified_lines = modified_content.split("\n")
    changes = 0
    for index in range(max(len(original_lines), len(modified_lines))):
        old = original_lines[index] if index < len(original_lines) else None
        new = modified_lines[index] if index < len(modified_lines) else None
        if old != new:
            changes += 1
    return changes
