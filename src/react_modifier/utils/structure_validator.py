"""Skeleton extraction, preservation checks and repair for full-file rewrites.

All checks are line based and work on JS, JSX, TS and TSX alike; no parse
is needed, which keeps them usable on LLM output that does not compile.
"""

import logging
import re
from typing import Optional

from react_modifier.models import FileStructure, StructureValidation

logger = logging.getLogger(__name__)

# Strict-mode penalties
MISSING_IMPORT_PENALTY = 15
MODIFIED_IMPORT_PENALTY = 5
MISSING_EXPORT_PENALTY = 20
MISSING_COMPONENT_PENALTY = 25
MISSING_DEFAULT_EXPORT_PENALTY = 20
NEW_IMPORT_PENALTY = 2

# Relaxed-mode thresholds
RELAXED_IMPORT_ERROR_RATIO = 0.7
RELAXED_IMPORT_WARNING_RATIO = 0.9
RELAXED_EXPORT_ERROR_RATIO = 0.8
RELAXED_MAX_ERRORS = 2

MAX_IMPORT_STATEMENT_LINES = 50

_IMPORT_PATH_RE = re.compile(r"from\s+['\"]([^'\"]+)['\"]")
_SIDE_EFFECT_IMPORT_RE = re.compile(r"^import\s+['\"]([^'\"]+)['\"]")
_DEFAULT_EXPORT_NAME_RE = re.compile(r"export\s+default\s+(\w+)")
_COMPONENT_DECL_RE = re.compile(r"(?:function|const)\s+([A-Z]\w+)")
_HOOK_RE = re.compile(r"use[A-Z]\w+")
_IMPORT_CLAUSE_RE = re.compile(
    r"^import\s+(?:type\s+)?"
    r"(?:(?P<default>[A-Za-z_$][\w$]*)\s*,?\s*)?"
    r"(?:\{(?P<named>[^}]*)\})?\s*"
    r"from\s+(?P<quote>['\"])(?P<path>[^'\"]+)(?P=quote);?$"
)
_SELF_CONTAINED_EXPORT_RE = re.compile(
    r"^export\s+(?:default\s+[A-Za-z_$][\w$]*;?"
    r"|\{[^}]*\}(?:\s*from\s+['\"][^'\"]+['\"])?;?"
    r"|\*\s+from\s+['\"][^'\"]+['\"];?)$"
)


def extract_import_path(import_line: str) -> Optional[str]:
    """Return the module path of an import statement, if any."""
    match = _IMPORT_PATH_RE.search(import_line) or _SIDE_EFFECT_IMPORT_RE.search(
        import_line.strip()
    )
    return match.group(1) if match else None


def _import_spans(lines: list[str]) -> list[tuple[int, int]]:
    """First and last line index of every import statement.

    A statement runs from its ``import`` line through the line that names
    its module, so a braced import spread over several lines is one span.
    An import that never names a module is taken as a single line.
    """
    spans: list[tuple[int, int]] = []
    index = 0
    while index < len(lines):
        if not lines[index].strip().startswith("import "):
            index += 1
            continue
        end = index
        while extract_import_path("\n".join(lines[index:end + 1])) is None:
            following = end + 1
            if (
                following >= len(lines)
                or following - index >= MAX_IMPORT_STATEMENT_LINES
                or lines[following].strip().startswith("import ")
            ):
                end = index
                break
            end = following
        spans.append((index, end))
        index = end + 1
    return spans


def _import_line_indexes(spans: list[tuple[int, int]]) -> set[int]:
    return {index for start, end in spans for index in range(start, end + 1)}


def _split_imports(lines: list[str]) -> tuple[list[str], list[str]]:
    """Split file lines into import statements and every other line."""
    spans = _import_spans(lines)
    statements = ["\n".join(lines[start:end + 1]) for start, end in spans]
    import_lines = _import_line_indexes(spans)
    rest = [line for index, line in enumerate(lines) if index not in import_lines]
    return statements, rest


def extract_file_structure(content: str) -> FileStructure:
    """Extract the preservation skeleton of a source file.

    Args:
        content: Full file text.

    Returns:
        FileStructure with imports/exports in file order, the primary
        component name, hook usages and a ready-made preservation prompt.
    """
    lines = content.split("\n")
    spans = _import_spans(lines)
    imports = ["\n".join(lines[start:end + 1]) for start, end in spans]
    exports: list[str] = []
    hooks: list[str] = []
    component_name: Optional[str] = None
    has_default_export = False
    import_end = spans[-1][1] if spans else -1
    export_start = len(lines)

    for index, raw_line in enumerate(lines):
        line = raw_line.strip()

        if line.startswith("export "):
            exports.append(raw_line)
            export_start = min(export_start, index)
            if "export default" in line:
                has_default_export = True
                default_match = _DEFAULT_EXPORT_NAME_RE.search(line)
                if default_match and default_match.group(1) not in ("function", "class", "async"):
                    component_name = default_match.group(1)

        component_match = _COMPONENT_DECL_RE.search(line)
        if component_match and component_name is None:
            component_name = component_match.group(1)

        for hook in _HOOK_RE.findall(line):
            if hook not in hooks:
                hooks.append(hook)

    file_header = "\n".join(lines[: import_end + 1]) + "\n\n" if import_end >= 0 else ""
    file_footer = (
        "\n\n" + "\n".join(lines[export_start:]) if export_start < len(lines) else ""
    )

    return FileStructure(
        imports=imports,
        exports=exports,
        component_name=component_name,
        has_default_export=has_default_export,
        hooks=hooks,
        file_header=file_header,
        file_footer=file_footer,
        preservation_prompt=build_preservation_prompt(
            imports, exports, component_name, has_default_export
        ),
    )


def build_preservation_prompt(
    imports: list[str],
    exports: list[str],
    component_name: Optional[str],
    has_default_export: bool,
) -> str:
    import_block = "\n".join(imports) if imports else "(none)"
    export_block = "\n".join(exports) if exports else "(none)"
    return (
        "CRITICAL STRUCTURE PRESERVATION REQUIREMENTS:\n"
        "1. Keep EVERY import statement below exactly as written:\n"
        f"{import_block}\n"
        "2. Keep EVERY export statement below exactly as written:\n"
        f"{export_block}\n"
        f"3. Keep the component name: {component_name or '(none)'}\n"
        f"4. {'Keep the default export.' if has_default_export else 'Do not add a default export.'}\n"
        "5. Only change what the request asks for; return the COMPLETE file."
    )


def _component_present(component_name: str, content: str) -> bool:
    return re.search(rf"\b{re.escape(component_name)}\b", content) is not None


def validate_structure_preservation(
    modified_content: str,
    original: FileStructure,
    strict: bool = True,
) -> StructureValidation:
    """Check whether a rewrite keeps the original skeleton.

    Args:
        modified_content: Candidate replacement file text.
        original: Skeleton extracted from the file on disk.
        strict: Strict mode rejects any dropped import/export; relaxed mode
            tolerates a share of them (used to vet repair output).

    Returns:
        StructureValidation with a 0-100 score.
    """
    if not strict:
        return _validate_relaxed(modified_content, original)

    errors: list[str] = []
    warnings: list[str] = []
    score = 100

    for original_import in original.imports:
        trimmed = original_import.strip()
        if trimmed in modified_content:
            continue
        import_path = extract_import_path(trimmed)
        if import_path and import_path in modified_content:
            warnings.append(f"Import modified but path preserved: {import_path}")
            score -= MODIFIED_IMPORT_PENALTY
        else:
            errors.append(f"Missing import: {trimmed}")
            score -= MISSING_IMPORT_PENALTY

    for original_export in original.exports:
        trimmed = original_export.strip()
        if trimmed not in modified_content:
            errors.append(f"Missing export: {trimmed}")
            score -= MISSING_EXPORT_PENALTY

    if original.component_name and not _component_present(
        original.component_name, modified_content
    ):
        errors.append(f"Component name '{original.component_name}' not found")
        score -= MISSING_COMPONENT_PENALTY

    if original.has_default_export and "export default" not in modified_content:
        errors.append("Default export statement missing")
        score -= MISSING_DEFAULT_EXPORT_PENALTY

    modified = extract_file_structure(modified_content)
    original_paths = {extract_import_path(line) for line in original.imports}
    original_lines = {line.strip() for line in original.imports}
    new_imports = [
        line for line in modified.imports
        if line.strip() not in original_lines
        and extract_import_path(line) not in original_paths
    ]
    if new_imports:
        warnings.append(f"New imports added: {len(new_imports)}")
        score -= len(new_imports) * NEW_IMPORT_PENALTY

    return StructureValidation(
        is_valid=not errors,
        score=max(0, score),
        errors=errors,
        warnings=warnings,
    )


def _validate_relaxed(modified_content: str, original: FileStructure) -> StructureValidation:
    errors: list[str] = []
    warnings: list[str] = []
    score = 100

    found_imports = 0
    for original_import in original.imports:
        trimmed = original_import.strip()
        import_path = extract_import_path(trimmed)
        if trimmed in modified_content or (import_path and import_path in modified_content):
            found_imports += 1
    import_ratio = found_imports / max(1, len(original.imports))
    if original.imports and import_ratio < RELAXED_IMPORT_ERROR_RATIO:
        errors.append(f"Only {round(import_ratio * 100)}% of imports preserved (minimum 70%)")
        score -= 30
    elif original.imports and import_ratio < RELAXED_IMPORT_WARNING_RATIO:
        warnings.append(f"{round(import_ratio * 100)}% of imports preserved")
        score -= 10

    found_exports = sum(
        1 for line in original.exports if line.strip() in modified_content
    )
    export_ratio = found_exports / max(1, len(original.exports))
    if original.exports and export_ratio < RELAXED_EXPORT_ERROR_RATIO:
        errors.append(f"Only {round(export_ratio * 100)}% of exports preserved (minimum 80%)")
        score -= 25

    if original.component_name and not _component_present(
        original.component_name, modified_content
    ):
        errors.append(f"Component name '{original.component_name}' not found")
        score -= 20

    if original.has_default_export and "export default" not in modified_content:
        errors.append("Default export statement missing")
        score -= 15

    return StructureValidation(
        is_valid=len(errors) <= RELAXED_MAX_ERRORS,
        score=max(0, score),
        errors=errors,
        warnings=warnings,
    )


def preserves_skeleton(content: str, original: FileStructure) -> bool:
    """True when every original import/export line and the component name
    appear verbatim in ``content``."""
    for line in [*original.imports, *original.exports]:
        if line.strip() not in content:
            return False
    if original.component_name and not _component_present(original.component_name, content):
        return False
    if original.has_default_export and "export default" not in content:
        return False
    return True


def _parse_import(line: str) -> Optional[tuple[Optional[str], list[str], str]]:
    match = _IMPORT_CLAUSE_RE.match(line.strip())
    if match is None:
        return None
    named = [
        name.strip() for name in (match.group("named") or "").split(",") if name.strip()
    ]
    return match.group("default"), named, match.group("path")


def _merge_import(original_line: str, modified_line: str) -> list[str]:
    """Restore an original import verbatim, keeping bindings the rewrite added.

    Extra bindings go on a second import from the same module, which is
    valid as long as the binding names differ.
    """
    restored = [original_line.strip()]
    original = _parse_import(original_line)
    modified = _parse_import(modified_line)
    if original is None or modified is None:
        return restored

    original_default, original_named, path = original
    modified_default, modified_named, _ = modified
    extra_named = [name for name in modified_named if name not in original_named]
    extra_default = modified_default if modified_default and modified_default != original_default else None
    if extra_default and original_default is not None:
        # A module has one default export; a second local name for it is an alias
        extra_named.insert(0, f"default as {extra_default}")
        extra_default = None

    if not extra_named and not extra_default:
        return restored

    clause_parts = []
    if extra_default:
        clause_parts.append(extra_default)
    if extra_named:
        clause_parts.append("{ " + ", ".join(extra_named) + " }")
    quote = "'" if "'" in original_line else '"'
    restored.append(f"import {', '.join(clause_parts)} from {quote}{path}{quote};")
    return restored


def _perform_structure_repair(broken_content: str, original: FileStructure) -> tuple[str, list[str]]:
    candidate_imports, body = _split_imports(broken_content.split("\n"))
    while body and not body[0].strip():
        body.pop(0)

    applied: list[str] = []
    final_imports: list[str] = []
    consumed: set[int] = set()

    for original_line in original.imports:
        trimmed = original_line.strip()
        path = extract_import_path(trimmed)
        match_index = None
        for index, candidate in enumerate(candidate_imports):
            if index in consumed:
                continue
            if candidate.strip() == trimmed or (path and extract_import_path(candidate) == path):
                match_index = index
                break
        if match_index is None:
            final_imports.append(trimmed)
            applied.append(f"Added missing import: {trimmed}")
            continue
        consumed.add(match_index)
        candidate = candidate_imports[match_index]
        if candidate.strip() == trimmed:
            final_imports.append(trimmed)
        else:
            final_imports.extend(_merge_import(trimmed, candidate))
            applied.append(f"Restored modified import: {trimmed}")

    for index, candidate in enumerate(candidate_imports):
        if index not in consumed:
            final_imports.append(candidate.strip())

    repaired_lines = list(final_imports)
    if final_imports:
        repaired_lines.append("")
    repaired_lines.extend(body)
    repaired = "\n".join(repaired_lines)

    for export_line in original.exports:
        trimmed = export_line.strip()
        if trimmed in repaired:
            continue
        if not _SELF_CONTAINED_EXPORT_RE.match(trimmed):
            applied.append(f"Cannot re-append multi-line export: {trimmed}")
            continue
        if not repaired.endswith("\n"):
            repaired += "\n"
        repaired += "\n" + trimmed
        applied.append(f"Added missing export: {trimmed}")

    return repaired, applied


def _aggressive_repair(broken_content: str, original: FileStructure) -> str:
    name = re.escape(original.component_name or "Component")
    component_re = re.compile(
        rf"(?:export\s+default\s+function\s+{name}|function\s+{name}|const\s+{name}\s*=)"
        rf"[\s\S]*?(?=\n\s*export\s|\Z)"
    )
    match = component_re.search(broken_content)
    if match:
        component_content = match.group(0)
    else:
        lines = broken_content.split("\n")
        import_lines = _import_line_indexes(_import_spans(lines))
        start = 0
        for index, line in enumerate(lines):
            if line.strip() and index not in import_lines:
                start = index
                break
        component_content = "\n".join(lines[start:])

    rebuilt = [line.strip() for line in original.imports]
    if rebuilt:
        rebuilt.append("")
    rebuilt.append(component_content)
    so_far = "\n".join(rebuilt)
    for export_line in original.exports:
        if export_line.strip() not in so_far:
            rebuilt.extend(["", export_line.strip()])
    return "\n".join(rebuilt)


def repair_file_structure(broken_content: str, original: FileStructure) -> Optional[str]:
    """Re-inject dropped imports/exports into a rewrite.

    Runs a merge repair first and an aggressive rebuild second. Each result
    must pass relaxed validation *and* keep the skeleton verbatim.

    Returns:
        Repaired content, or None if the rewrite cannot be salvaged.
    """
    repaired, applied = _perform_structure_repair(broken_content, original)
    if applied:
        logger.debug("Structure repair fixes: %s", "; ".join(applied))
    if (
        validate_structure_preservation(repaired, original, strict=False).is_valid
        and preserves_skeleton(repaired, original)
    ):
        return repaired

    logger.info("Merge repair insufficient, trying aggressive repair")
    aggressive = _aggressive_repair(broken_content, original)
    if (
        validate_structure_preservation(aggressive, original, strict=False).is_valid
        and preserves_skeleton(aggressive, original)
    ):
        return aggressive

    logger.warning("Structure repair failed for component %s", original.component_name)
    return None


def validate_syntax(content: str) -> StructureValidation:
    """Cheap sanity check: overall bracket balance plus per-line hints."""
    errors: list[str] = []
    warnings: list[str] = []
    score = 100

    for line_number, line in enumerate(content.split("\n"), start=1):
        if re.match(r"^\s*(import|export|const|let|var|return)\s.*[^;{}(\[,]$", line):
            warnings.append(f"Line {line_number}: Missing semicolon")
            score -= 1

    opened = len(re.findall(r"[{\[(]", content))
    closed = len(re.findall(r"[}\])]", content))
    if opened != closed:
        errors.append("Unmatched brackets in file")
        score -= 20

    return StructureValidation(
        is_valid=not errors, score=max(0, score), errors=errors, warnings=warnings
    )
