"""Traditional full-file fallback, run after FULL_FILE/TARGETED_NODES fail."""

import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from react_modifier.agents.exceptions import LLMError
from react_modifier.models import ModificationScope, ProjectFile, StrategyResult
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_FALLBACK, vet_rewrite, write_change
from react_modifier.utils.response_parsing import (
    NO_MODIFICATION_SENTINEL,
    extract_code,
    is_no_modification_response,
)
from react_modifier.utils.structure_validator import extract_file_structure

logger = logging.getLogger(__name__)

MIN_FILE_LINES = 5
MAIN_FILE_BONUS = 30

UI_KEYWORDS = ("button", "signin", "login", "form", "page", "component", "style", "color", "theme", "layout")
AUTH_KEYWORDS = ("signin", "login", "auth", "user", "account")
STYLE_KEYWORDS = ("color", "theme", "dark", "light", "style", "css")

SKIP_PATTERNS = [
    re.compile(p) for p in (
        r"\.d\.ts$",
        r"test\.|spec\.",
        r"config\.",
        r"types\.ts$",
        r"constants\.ts$",
        r"utils\.ts$",
        r"helpers?\.",
        r"api/",
        r"services/",
        r"node_modules",
        r"\.git",
    )
]


class FallbackCandidate(BaseModel):
    model_config = ConfigDict(frozen=False)

    relative_path: str
    priority: int


class FallbackOutcome(BaseModel):
    """Per-file outcome of one traditional rewrite."""

    model_config = ConfigDict(frozen=False)

    relative_path: str
    success: bool
    description: str


class FallbackReport(BaseModel):
    model_config = ConfigDict(frozen=False)

    failed_approach: Optional[str] = None
    candidates: list[FallbackCandidate] = Field(default_factory=list)
    outcomes: list[FallbackOutcome] = Field(default_factory=list)


def should_skip_file(file: ProjectFile) -> bool:
    """Utility, config and non-UI files never take part in the fallback."""
    if any(pattern.search(file.relative_path) for pattern in SKIP_PATTERNS):
        return True
    if file.lines < MIN_FILE_LINES:
        return True
    content = file.content
    return "<" not in content and "component" not in content and "Component" not in content


def score_fallback_relevance(prompt: str, file: ProjectFile) -> int:
    lower = prompt.lower()
    content = file.content.lower()
    name = file.relative_path.lower()
    priority = MAIN_FILE_BONUS if file.is_main_file else 0

    for keyword in UI_KEYWORDS:
        if keyword in lower:
            if keyword in content:
                priority += 15
            if keyword in name:
                priority += 10
    for keyword in AUTH_KEYWORDS:
        if keyword in lower and (file.has_signin or keyword in content):
            priority += 20
    for keyword in STYLE_KEYWORDS:
        if keyword in lower and keyword in content:
            priority += 15
    if "button" in lower and file.has_buttons:
        priority += 25
    if file.component_name and "component" in file.relative_path:
        priority += 10
    if "page" in name:
        priority += 15
    if "jsx" in content or "<" in content:
        priority += 10
    return priority


def select_fallback_candidates(prompt: str, files: list[ProjectFile], limit: int) -> list[FallbackCandidate]:
    """Files with any relevance, highest priority first, capped at ``limit``."""
    candidates = []
    for file in files:
        if should_skip_file(file):
            continue
        priority = score_fallback_relevance(prompt, file)
        if priority > 0:
            candidates.append(FallbackCandidate(relative_path=file.relative_path, priority=priority))
    candidates.sort(key=lambda c: (-c.priority, c.relative_path))
    return candidates[:limit]


class FallbackProcessor:
    """Sends each candidate file whole with the raw user prompt."""

    approach = APPROACH_FALLBACK

    def _build_prompt(self, prompt: str, relative_path: str, content: str) -> str:
        structure = extract_file_structure(content)
        return f"""USER REQUEST: "{prompt}"

FILE TO MODIFY: {relative_path}

CURRENT FILE CONTENT:
```jsx
{content}
```

TASK: Modify this React file to fulfill the user's request.

PRESERVATION REQUIREMENTS:
{structure.preservation_prompt}

MODIFICATION GUIDELINES:
1. Determine exactly what the request needs in this file.
2. Keep imports, exports and component names as they are.
3. Keep existing functionality unless the request changes it.

RESPONSE: return ONLY the complete modified file in a code block:

```jsx
[COMPLETE MODIFIED FILE CONTENT]
```

If this file needs no modification, respond with:
{NO_MODIFICATION_SENTINEL}: [brief explanation why]"""

    def modify_file(self, prompt: str, relative_path: str, session: SessionContext) -> FallbackOutcome:
        """One traditional round-trip for one file.

        Raises:
            LLMError: If the LLM call fails.
        """
        original = session.read_file(relative_path)
        response = session.ask_llm(self._build_prompt(prompt, relative_path, original), "Traditional Fallback")
        if is_no_modification_response(response):
            reason = response.split(f"{NO_MODIFICATION_SENTINEL}:", 1)[-1].strip() or "No specific reason provided"
            return FallbackOutcome(
                relative_path=relative_path, success=False, description=f"No modifications needed: {reason}"
            )
        code = extract_code(response)
        if code is None:
            return FallbackOutcome(
                relative_path=relative_path, success=False, description="Could not extract code from response"
            )
        if code.strip() == original.strip():
            return FallbackOutcome(relative_path=relative_path, success=False, description="Response was unchanged")
        content, note = vet_rewrite(original, code)
        if content is None:
            return FallbackOutcome(
                relative_path=relative_path, success=False, description=f"Structure validation failed: {note}"
            )
        write_change(
            session, relative_path, content, self.approach,
            f"Traditional fallback rewrite for: {prompt[:80]}", reasoning=note,
        )
        return FallbackOutcome(relative_path=relative_path, success=True, description=f"Applied ({note})")

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
        failed_approach: Optional[str] = None,
    ) -> StrategyResult:
        settings = session.settings
        report = FallbackReport(failed_approach=failed_approach)
        report.candidates = select_fallback_candidates(
            prompt, session.snapshot.source_files(), settings.fallback_candidates
        )
        reasoning = (
            f"Fallback from failed {failed_approach or scope.kind.value} approach "
            "using traditional full file modification"
        )
        if not report.candidates:
            return StrategyResult.failure(
                self.approach,
                "No candidate files found for traditional fallback",
                reasoning=reasoning,
                details={"fallback": report.model_dump(mode="json")},
            )

        session.progress(
            f"Traditional fallback on {len(report.candidates)} file(s): "
            + ", ".join(f"{c.relative_path} ({c.priority})" for c in report.candidates)
        )
        modified: list[str] = []
        for candidate in report.candidates:
            try:
                outcome = self.modify_file(prompt, candidate.relative_path, session)
            except (LLMError, OSError) as e:
                logger.warning("Fallback failed for %s: %s", candidate.relative_path, e)
                outcome = FallbackOutcome(
                    relative_path=candidate.relative_path, success=False, description=f"Error: {e}"
                )
            report.outcomes.append(outcome)
            if outcome.success:
                modified.append(candidate.relative_path)
                if len(modified) >= settings.fallback_cap:
                    session.progress(f"Reached fallback modification limit ({settings.fallback_cap} files)")
                    break

        details = {"fallback": report.model_dump(mode="json")}
        if not modified:
            return StrategyResult.failure(
                self.approach,
                "No applicable modifications found in candidate files",
                reasoning=reasoning,
                details=details,
            )
        return StrategyResult(
            success=True,
            approach=self.approach,
            modified_files=modified,
            reasoning=f"{reasoning}. Modified {len(modified)} files using traditional approach.",
            details=details,
        )
