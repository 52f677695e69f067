"""Tests for diff_generator utility functions."""

from react_modifier.utils.diff_generator import count_changed_lines, generate_unified_diff


def test_generate_unified_diff_basic():
    """Basic diff has --- a/ and +++ b/ headers and changed lines."""
    diff = generate_unified_diff(
        "src/pages/Home.tsx",
        "<h1>Welcome</h1>\n",
        "<h1>Hello</h1>\n",
    )
    assert diff.startswith("--- a/src/pages/Home.tsx")
    assert "+++ b/src/pages/Home.tsx" in diff
    assert "-<h1>Welcome</h1>" in diff
    assert "+<h1>Hello</h1>" in diff


def test_generate_unified_diff_no_changes():
    """Identical content returns empty string."""
    assert generate_unified_diff("a.tsx", "hello\n", "hello\n") == ""


def test_generate_unified_diff_context_lines():
    original = "\n".join(f"line{i}" for i in range(20))
    modified = original.replace("line10", "changed")
    diff = generate_unified_diff("f.tsx", original, modified, context_lines=1)
    assert " line9" in diff
    assert " line11" in diff
    assert "line7" not in diff


def test_count_changed_lines_identical():
    assert count_changed_lines("a\nb", "a\nb") == 0


def test_count_changed_lines_single_edit():
    assert count_changed_lines("a\nb\nc", "a\nX\nc") == 1


def test_count_changed_lines_positional():
    """An insertion shifts every following line."""
    assert count_changed_lines("a\nb\nc", "new\na\nb\nc") == 4
