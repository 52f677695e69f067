"""Defensive parsing of LLM responses.

LLM output is unreliable: code may or may not be fenced, JSON may be wrapped
in prose, and the model may answer with a "no modification needed" sentinel.
"""

import json
import re
from typing import Any, Optional

NO_MODIFICATION_SENTINEL = "NO_MODIFICATIONS_NEEDED"

CODE_LANG_TAGS = "jsx|tsx|javascript|typescript|js|ts"
_CODE_BLOCK_RE = re.compile(
    r"```(?:" + CODE_LANG_TAGS + r")?[ \t]*\n?([\s\S]*?)```"
)
_FILE_BLOCK_RE = re.compile(
    r"```(?:\w+)?[ \t]*\n(?://\s*FILE:\s*(.+?)\n)?([\s\S]*?)```"
)
_JSON_FENCE_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


def is_no_modification_response(text: str) -> bool:
    return text.strip().startswith(NO_MODIFICATION_SENTINEL)


def extract_code_block(text: str) -> Optional[str]:
    """Return the first fenced code block, or None when there is none."""
    match = _CODE_BLOCK_RE.search(text)
    if match is None:
        return None
    code = match.group(1).strip()
    return code or None


def extract_code(text: str) -> Optional[str]:
    """Return fenced code, or the raw text if it looks like a JS module."""
    block = extract_code_block(text)
    if block is not None:
        return block
    stripped = text.strip()
    if re.search(r"^\s*(import|export)\s", stripped, re.MULTILINE):
        return stripped
    return None


def extract_file_blocks(text: str) -> list[tuple[Optional[str], str]]:
    """Split a multi-file response into (path, code) pairs.

    Blocks may begin with a ``// FILE: path`` marker. Unmarked blocks get
    ``None`` as path and are matched to files by order by the caller.
    """
    blocks: list[tuple[Optional[str], str]] = []
    for match in _FILE_BLOCK_RE.finditer(text):
        path = match.group(1).strip() if match.group(1) else None
        code = match.group(2).strip()
        if code:
            blocks.append((path, code))
    return blocks


def extract_json_object(text: str) -> Optional[dict[str, Any]]:
    """Parse the first JSON object found in a response.

    Tries the outermost ``{...}`` span, then a fenced block, then the whole
    text. Returns None if every attempt fails.
    """
    candidates: list[str] = []
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])
    fence = _JSON_FENCE_RE.search(text)
    if fence:
        candidates.append(fence.group(1))
    candidates.append(text.strip())

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except (json.JSONDecodeError, ValueError):
            continue
        if isinstance(parsed, dict):
            return parsed
    return None
