"""Full-file processor: rewrite whole files via the LLM."""

import logging
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from react_modifier.models import FileType, ModificationScope, ProjectFile, StrategyResult
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_FULL_FILE, vet_rewrite, write_change
from react_modifier.utils.response_parsing import extract_file_blocks
from react_modifier.utils.structure_validator import extract_file_structure

logger = logging.getLogger(__name__)

MIN_RELEVANCE = 30  # heuristic score a file needs to be selected
MAIN_FILE_SCORE = 70  # score given to main files when nothing else matched
FULL_FILE_MAX_TOKENS = 8000

STYLE_WORDS = ("color", "style", "theme", "design", "background", "text")
LAYOUT_WORDS = ("layout", "grid", "responsive", "flex")
COMPONENT_WORDS = ("component", "button", "form", "modal")
NAVIGATION_WORDS = ("nav", "header", "footer", "menu")


class FileCandidate(BaseModel):
    """A file selected for rewrite, with its relevance evidence."""

    model_config = ConfigDict(frozen=False)

    relative_path: str
    score: int
    reasoning: str
    change_types: list[str] = Field(default_factory=list)

    @property
    def priority(self) -> str:
        if self.score > 60:
            return "high"
        if self.score > 40:
            return "medium"
        return "low"


def infer_file_purpose(file: ProjectFile) -> str:
    path = file.relative_path.lower()
    if file.is_main_file:
        return "Main application file"
    for marker, purpose in (
        ("component", "UI Component"),
        ("page", "Application Page"),
        ("hook", "Custom Hook"),
        ("util", "Utility Module"),
        ("service", "Service Module"),
        ("context", "Context Provider"),
    ):
        if marker in path:
            return purpose
    return f"{file.file_type.value} file"


def score_file(prompt: str, file: ProjectFile) -> FileCandidate:
    """Keyword relevance of one file to a prompt."""
    lower = prompt.lower()
    path = file.relative_path.lower()
    in_ui_dir = "component" in path or "page" in path
    score = 0
    change_types: list[str] = []

    if file.is_main_file or "app." in path:
        score += 30
        change_types.append("main")
    if any(word in lower for word in STYLE_WORDS) and in_ui_dir:
        score += 40
        change_types.append("styling")
    if any(word in lower for word in LAYOUT_WORDS) and in_ui_dir:
        score += 40
        change_types.append("layout")
    if any(word in lower for word in COMPONENT_WORDS) and "component" in path:
        score += 50
        change_types.append("component")
    if any(word in lower for word in NAVIGATION_WORDS) and any(
        marker in path for marker in ("nav", "header", "footer")
    ):
        score += 50
        change_types.append("navigation")
    if file.component_name and file.component_name.lower() in lower:
        score += 40
        change_types.append("named")

    return FileCandidate(
        relative_path=file.relative_path,
        score=score,
        reasoning="Keyword selection: " + (", ".join(change_types) or "general"),
        change_types=change_types or ["general"],
    )


class FullFileProcessor:
    """Rewrites the most relevant files whole, gated by structure validation."""

    approach = APPROACH_FULL_FILE

    def select_files(self, prompt: str, session: SessionContext) -> list[FileCandidate]:
        """Rank source files by relevance, highest first, capped by settings.

        Falls back to the main file(s) when no file clears the threshold.
        """
        candidates = []
        for file in session.snapshot.source_files():
            if file.file_type == FileType.STYLE:
                continue
            candidate = score_file(prompt, file)
            logger.debug("Full-file score %s: %d", file.relative_path, candidate.score)
            if candidate.score > MIN_RELEVANCE:
                candidates.append(candidate)

        if not candidates:
            main = session.snapshot.main_file()
            if main is not None:
                candidates.append(FileCandidate(
                    relative_path=main.relative_path,
                    score=MAIN_FILE_SCORE,
                    reasoning="Main application file (no keyword matches)",
                    change_types=["general"],
                ))

        candidates.sort(key=lambda c: (-c.score, c.relative_path))
        return candidates[: session.settings.full_file_cap]

    def _build_prompt(
        self,
        prompt: str,
        candidates: list[FileCandidate],
        session: SessionContext,
    ) -> str:
        tailwind_path = session.snapshot.tailwind_config_path()
        tailwind_context = "Using standard Tailwind CSS classes."
        if tailwind_path:
            try:
                tailwind_context = (
                    "TAILWIND CONFIGURATION (prefer these custom colors):\n"
                    f"```javascript\n{session.read_file(tailwind_path)}\n```"
                )
            except OSError as e:
                logger.warning("Could not read %s for context: %s", tailwind_path, e)

        sections = []
        for index, candidate in enumerate(candidates, start=1):
            file = session.snapshot.get(candidate.relative_path)
            if file is None:
                continue
            structure = extract_file_structure(file.content)
            sections.append(
                f"=== FILE {index}: {candidate.relative_path} ===\n"
                f"PURPOSE: {infer_file_purpose(file)}\n"
                f"PRIORITY: {candidate.priority}\n"
                f"REASONING: {candidate.reasoning}\n"
                f"{structure.preservation_prompt}\n\n"
                f"CURRENT CONTENT:\n```tsx\n{file.content}\n```"
            )

        context = session.ledger.get_contextual_summary()
        history = f"RECENT CHANGES:\n{context}\n\n" if context else ""
        first_path = candidates[0].relative_path if candidates else "path/to/File.tsx"
        return f"""You are an expert TypeScript and React engineer. Modify the files below according to the user's request.

USER REQUEST: "{prompt}"

{history}{tailwind_context}

FILES TO MODIFY:

{chr(10).join(sections)}

STRICT INSTRUCTIONS:
1. Only modify the files listed above.
2. Do NOT import from files that are not listed; define missing helpers or types inline.
3. Keep every import and export statement exactly as written.
4. Use Tailwind CSS classes for styling; do not add dependencies.
5. Preserve existing data and behaviour not mentioned in the request.

RESPONSE FORMAT: return each modified file in its own code block, starting with a FILE comment:

```tsx
// FILE: {first_path}
[COMPLETE MODIFIED CONTENT]
```"""

    def _match_blocks(
        self,
        blocks: list[tuple[Optional[str], str]],
        candidates: list[FileCandidate],
        session: SessionContext,
    ) -> list[tuple[str, str]]:
        matched: list[tuple[str, str]] = []
        for index, (path, code) in enumerate(blocks):
            relative_path: Optional[str] = None
            if path:
                file = session.snapshot.find(path.strip("\"'"))
                relative_path = file.relative_path if file else None
            elif index < len(candidates):
                relative_path = candidates[index].relative_path
            if relative_path is None:
                logger.warning("Skipping code block for unknown file %r", path)
                continue
            if relative_path not in {c.relative_path for c in candidates}:
                logger.warning("Skipping code block for unselected file %s", relative_path)
                continue
            matched.append((relative_path, code))
        return matched

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult:
        """Rewrite the selected files, writing only validated content.

        Raises:
            LLMError: If the LLM call fails.
        """
        candidates = self.select_files(prompt, session)
        if not candidates:
            return StrategyResult.failure(self.approach, "No relevant files found for full-file modification")

        session.progress(
            f"Full-file rewrite of {len(candidates)} file(s): "
            + ", ".join(c.relative_path for c in candidates)
        )
        response = session.ask_llm(
            self._build_prompt(prompt, candidates, session),
            "Full File Modification",
            max_tokens=max(session.settings.max_tokens, FULL_FILE_MAX_TOKENS),
        )
        blocks = self._match_blocks(extract_file_blocks(response), candidates, session)
        if not blocks:
            return StrategyResult.failure(self.approach, "LLM response contained no usable code blocks")

        modified: list[str] = []
        rejected: dict[str, str] = {}
        for relative_path, code in blocks:
            if relative_path in modified:
                continue
            original_content = session.read_file(relative_path)
            if code.strip() == original_content.strip():
                rejected[relative_path] = "unchanged"
                continue
            content, note = vet_rewrite(original_content, code)
            if content is None:
                logger.warning("Rejected rewrite of %s: %s", relative_path, note)
                rejected[relative_path] = note
                continue
            write_change(
                session,
                relative_path,
                content,
                self.approach,
                f"Full-file rewrite for: {prompt[:80]}",
                reasoning=note,
            )
            modified.append(relative_path)

        if not modified:
            return StrategyResult.failure(
                self.approach,
                "No rewrite passed structure validation",
                details={"rejected": rejected},
            )
        return StrategyResult(
            success=True,
            approach=self.approach,
            modified_files=modified,
            reasoning=f"Rewrote {len(modified)} of {len(candidates)} selected file(s)",
            details={"rejected": rejected, "selected": [c.relative_path for c in candidates]},
        )
