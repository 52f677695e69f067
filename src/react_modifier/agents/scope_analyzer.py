"""Scope analyzer: classify a modification prompt into one of five scopes."""

import logging
import re
from typing import Any, Callable, Optional

from react_modifier.agents.exceptions import LLMError, LLMResponseError
from react_modifier.models import (
    ColorChange,
    ColorChangeType,
    ComponentKind,
    ComponentSpec,
    ModificationScope,
    ScopeKind,
    TextTerms,
)
from react_modifier.utils.colors import COLOR_MAP, HEX_COLOR_RE, HSL_COLOR_RE
from react_modifier.utils.response_parsing import extract_json_object

logger = logging.getLogger(__name__)

# (prompt, operation) -> completion text; raises on failure
AskFn = Callable[[str, str], str]

CONFIDENT_SCORE = 50  # heuristic score at which no LLM confirmation is needed
MAX_CONFIDENCE = 95
MAX_COMPONENT_NAME_WORDS = 3
DEFAULT_COMPONENT_NAME = "NewComponent"
SAFE_DEFAULT_SCOPE = ScopeKind.TARGETED_NODES
MAX_SUMMARY_IN_PROMPT = 3000

# Priority order used to break heuristic score ties
SCOPE_PRIORITY = (
    ScopeKind.TEXT_BASED_CHANGE,
    ScopeKind.TAILWIND_CHANGE,
    ScopeKind.COMPONENT_ADDITION,
    ScopeKind.TARGETED_NODES,
    ScopeKind.FULL_FILE,
)

_QUOTE = "[\"'‘’“”`]"
_QUOTED = _QUOTE + "([^\"'‘’“”`]+)" + _QUOTE

# name -> pattern; first two groups are (search, replacement)
QUOTED_TERM_PATTERNS = {
    "quoted_change": re.compile(rf"(?:change|update|rename)\s+{_QUOTED}\s+(?:to|into)\s+{_QUOTED}", re.IGNORECASE),
    "quoted_replace": re.compile(rf"replace\s+{_QUOTED}\s+with\s+{_QUOTED}", re.IGNORECASE),
    "quoted_from_to": re.compile(rf"from\s+{_QUOTED}\s+to\s+{_QUOTED}", re.IGNORECASE),
}
UNQUOTED_TERM_PATTERNS = {
    "unquoted_change": re.compile(r"(?:change|update)\s+(\w+)\s+to\s+(\w+)", re.IGNORECASE),
    "unquoted_replace": re.compile(r"replace\s+(\w+)\s+with\s+(\w+)", re.IGNORECASE),
}
_TEXT_HINT_PATTERNS = [
    re.compile(r"update.*text.*to", re.IGNORECASE),
    re.compile(r"change.*heading.*to", re.IGNORECASE),
    re.compile(r"change.*label.*to", re.IGNORECASE),
    re.compile(r"update.*button.*text", re.IGNORECASE),
]

TAILWIND_KEYWORDS = [
    "change color", "change background", "change theme", "change colors",
    "make it red", "make it blue", "make it green", "make background",
    "color scheme", "color palette", "change to red", "change to blue",
    "button color", "text color", "background color", "primary color",
    "secondary color", "accent color", "theme color",
]
COMPONENT_KEYWORDS = [
    "create", "add new", "build new", "make new", "new component",
    "new page", "new feature", "add a", "build a", "create a",
]
TARGETED_KEYWORDS = [
    "change button", "make button", "this button", "the button",
    "change text", "update text", "modify text", "this text",
    "change label", "update label", "modify label", "the label",
    "one button", "single button", "specific", "only", "just change", "just update",
]
FULL_FILE_KEYWORDS = [
    "redesign", "overhaul", "complete", "entire", "whole",
    "layout", "responsive", "mobile", "restructure", "rearrange",
    "organize", "reorder", "multiple", "several", "all buttons",
    "all text", "dark mode", "light mode", "header", "footer", "navigation",
]

_SPECIFIC_TARGET_RE = re.compile(r"\b(this|that|the|specific)\s+(button|text|element|component)")
_NEW_THING_RE = re.compile(
    r"\b(add|create|build|make)\s+(?:(?:a|an|new|the)\s+)+[\w\s-]*?\b(page|component|section|screen|form|card|modal)\b"
)

_COLOR_VALUE = r"(#(?:[0-9a-f]{6}|[0-9a-f]{3})\b|hsl\([^)]*\)|[a-z]+)"
_COLOR_PATTERNS = [
    re.compile(rf"(?:change|make|set)\s+(?:the\s+)?(background|bg)\s+(?:color\s+)?(?:to\s+)?{_COLOR_VALUE}"),
    re.compile(rf"(?:change|make|set)\s+(?:the\s+)?(primary|secondary|accent)\s+colou?r\s+(?:to\s+)?{_COLOR_VALUE}"),
    re.compile(rf"(?:change|make|set)\s+(?:the\s+)?(button|text)\s+colou?r\s+(?:to\s+)?{_COLOR_VALUE}"),
    re.compile(rf"(?:change|make|set)\s+(?:the\s+)?(theme)\s+colou?rs?\s+(?:to\s+)?{_COLOR_VALUE}"),
    re.compile(rf"make\s+(it)\s+{_COLOR_VALUE}"),
    re.compile(rf"colou?r\s+(scheme|palette)\s+(?:to\s+)?{_COLOR_VALUE}"),
]

NAME_STOPWORDS = {
    "a", "an", "the", "new", "and", "for", "to", "with", "of", "my", "our",
    "add", "create", "build", "make", "called", "named", "simple", "basic",
    "page", "component", "section", "screen",
}
PAGE_KEYWORDS = ("page", "route", "screen", "dashboard", "about", "contact", "home")
APP_KEYWORDS = ("app", "application", "main")


def _words(text: str) -> list[str]:
    return re.findall(r"[A-Za-z][A-Za-z0-9]*", text)


def to_pascal_case(words: list[str]) -> str:
    return "".join(word[:1].upper() + word[1:] for word in words)


class ScopeAnalyzer:
    """Classifies prompts with keyword heuristics, escalating to the LLM when unsure.

    The analyzer never raises from ``analyze_scope``: if the LLM is needed
    and fails, the request is classified as TARGETED_NODES, the scope with
    the smallest blast radius.
    """

    def __init__(self, ask_llm: Optional[AskFn] = None):
        """Initialize the analyzer.

        Args:
            ask_llm: Callable taking (prompt, operation) and returning the
                completion text. Usually ``SessionContext.ask_llm``. When
                None, ambiguous prompts go straight to the safe default.
        """
        self.ask_llm = ask_llm

    def analyze_scope(
        self,
        prompt: str,
        project_summary: str = "",
        conversation_context: Optional[str] = None,
        db_summary: Optional[str] = None,
    ) -> ModificationScope:
        """Classify ``prompt`` into exactly one scope and fill its payload.

        Args:
            prompt: The user's modification request.
            project_summary: Text summary of the project snapshot.
            conversation_context: Ledger summary of earlier requests.
            db_summary: Stored project summary; preferred over
                ``project_summary`` when present.

        Returns:
            A ModificationScope with non-empty reasoning.
        """
        try:
            return self._analyze(prompt, db_summary or project_summary, conversation_context)
        except Exception as e:
            logger.warning("Scope analysis failed, using safe default: %s", e)
            return ModificationScope(
                kind=SAFE_DEFAULT_SCOPE,
                reasoning=f"Scope analysis failed ({e}); defaulting to targeted node changes",
                confidence=0.0,
            )

    def _analyze(
        self,
        prompt: str,
        summary: str,
        conversation_context: Optional[str],
    ) -> ModificationScope:
        scores = self.score_prompt(prompt)
        kind, score = self._pick(scores)
        logger.info("Heuristic scope: %s (score %d)", kind.value, score)

        if score >= CONFIDENT_SCORE:
            reasoning = self._heuristic_reasoning(kind, score)
            return self._build_scope(kind, prompt, reasoning, min(MAX_CONFIDENCE, score), scores)

        if self.ask_llm is None:
            return ModificationScope(
                kind=SAFE_DEFAULT_SCOPE,
                reasoning=(
                    f"Heuristics inconclusive ({kind.value}, score {score}) and no LLM "
                    "available; defaulting to targeted node changes"
                ),
                confidence=float(score),
            )

        try:
            verdict = self._confirm_with_llm(prompt, summary, conversation_context, kind, score)
        except Exception as e:
            logger.warning("Scope confirmation failed, using safe default: %s", e)
            return ModificationScope(
                kind=SAFE_DEFAULT_SCOPE,
                reasoning=(
                    f"LLM confirmation failed ({e}); heuristics suggested {kind.value}, "
                    "defaulting to targeted node changes"
                ),
                confidence=float(score),
            )

        llm_kind, llm_reasoning, llm_terms = verdict
        return self._build_scope(
            llm_kind,
            prompt,
            llm_reasoning or self._heuristic_reasoning(llm_kind, score),
            max(float(score), 70.0),
            scores,
            llm_terms=llm_terms,
        )

    def score_prompt(self, prompt: str) -> dict[ScopeKind, int]:
        """Keyword scores per scope; higher means more likely."""
        lower = prompt.lower()
        scores = {kind: 0 for kind in SCOPE_PRIORITY}

        has_color_keyword = any(keyword in lower for keyword in TAILWIND_KEYWORDS)
        is_global_color = has_color_keyword and not _SPECIFIC_TARGET_RE.search(lower)

        if any(p.search(prompt) for p in QUOTED_TERM_PATTERNS.values()):
            scores[ScopeKind.TEXT_BASED_CHANGE] += 50
        elif not is_global_color and (
            any(p.search(prompt) for p in UNQUOTED_TERM_PATTERNS.values())
            or any(p.search(prompt) for p in _TEXT_HINT_PATTERNS)
        ):
            scores[ScopeKind.TEXT_BASED_CHANGE] += 50
        if "change" in lower and any(word in lower for word in ("text", "label", "heading")):
            scores[ScopeKind.TEXT_BASED_CHANGE] += 25

        if is_global_color:
            scores[ScopeKind.TAILWIND_CHANGE] += 40
            if re.search(r"\b(primary|secondary|accent|theme)\s+(color|colors)", lower):
                scores[ScopeKind.TAILWIND_CHANGE] += 30
            if re.search(r"\b(change|make|set)\s+(background|bg)\s+(color|to)", lower):
                scores[ScopeKind.TAILWIND_CHANGE] += 25
            if re.search(r"\b(color\s+scheme|color\s+palette|theme\s+colors)", lower):
                scores[ScopeKind.TAILWIND_CHANGE] += 35

        for keyword in COMPONENT_KEYWORDS:
            if keyword in lower:
                scores[ScopeKind.COMPONENT_ADDITION] += 20
        if _NEW_THING_RE.search(lower):
            scores[ScopeKind.COMPONENT_ADDITION] += 40

        for keyword in TARGETED_KEYWORDS:
            if keyword in lower:
                scores[ScopeKind.TARGETED_NODES] += 15
        for keyword in FULL_FILE_KEYWORDS:
            if keyword in lower:
                scores[ScopeKind.FULL_FILE] += 10

        word_count = len(prompt.split())
        if word_count <= 5 and scores[ScopeKind.TEXT_BASED_CHANGE] == 0 and not is_global_color:
            scores[ScopeKind.TARGETED_NODES] += 20
        elif word_count > 15:
            scores[ScopeKind.FULL_FILE] += 10

        if re.search(r"\b(one|single|specific|this|that)\s+(button|text|color|element)", lower):
            scores[ScopeKind.TARGETED_NODES] += 25
        if re.search(r"\b(all|every|multiple|several)\s+(button|text|element)", lower):
            scores[ScopeKind.FULL_FILE] += 20

        logger.debug("Scope scores: %s", {k.value: v for k, v in scores.items()})
        return scores

    @staticmethod
    def _pick(
        scores: dict[ScopeKind, int],
        excluded: tuple[ScopeKind, ...] = (),
    ) -> tuple[ScopeKind, int]:
        best_kind = ScopeKind.FULL_FILE
        best_score = 0
        for kind in SCOPE_PRIORITY:
            if kind in excluded:
                continue
            if scores[kind] > best_score:
                best_kind, best_score = kind, scores[kind]
        return best_kind, best_score

    @staticmethod
    def _heuristic_reasoning(kind: ScopeKind, score: int) -> str:
        reasons = {
            ScopeKind.TEXT_BASED_CHANGE: "Simple text replacement pattern detected",
            ScopeKind.TAILWIND_CHANGE: "Global color change detected; the Tailwind config will be updated",
            ScopeKind.COMPONENT_ADDITION: "Keywords suggest creating a new component or page",
            ScopeKind.TARGETED_NODES: "Keywords suggest a specific element modification",
            ScopeKind.FULL_FILE: (
                "Keywords suggest comprehensive changes" if score > 0
                else "Default for unclear requests"
            ),
        }
        return f"{reasons[kind]} (heuristic score {score})"

    def _build_scope(
        self,
        kind: ScopeKind,
        prompt: str,
        reasoning: str,
        confidence: float,
        scores: dict[ScopeKind, int],
        llm_terms: Optional[TextTerms] = None,
    ) -> ModificationScope:
        if kind == ScopeKind.TEXT_BASED_CHANGE:
            terms = llm_terms if llm_terms is not None and llm_terms.is_usable() else None
            if terms is None:
                terms = self.extract_text_terms(prompt)
            if terms is None:
                # Unusable terms: fall through to the next-best scope
                next_kind, next_score = self._pick(scores, excluded=(ScopeKind.TEXT_BASED_CHANGE,))
                if next_score == 0:
                    next_kind = SAFE_DEFAULT_SCOPE
                logger.info("No usable search/replace terms; falling through to %s", next_kind.value)
                return self._build_scope(
                    next_kind,
                    prompt,
                    f"No usable search/replace terms in prompt; using {next_kind.value} instead",
                    float(min(MAX_CONFIDENCE, next_score)),
                    scores,
                )
            return ModificationScope(
                kind=kind,
                reasoning=f'{reasoning}. Replace "{terms.search_term}" with "{terms.replacement_term}"',
                confidence=confidence,
                text_terms=terms,
            )

        if kind == ScopeKind.TAILWIND_CHANGE:
            changes = self.extract_color_changes(prompt)
            summary = ", ".join(f"{c.type.value}: {c.color}" for c in changes) or "no explicit colors"
            return ModificationScope(
                kind=kind,
                reasoning=f"{reasoning}. Colors: {summary}",
                confidence=confidence,
                color_changes=changes,
            )

        if kind == ScopeKind.COMPONENT_ADDITION:
            component_kind = self.determine_component_kind(prompt)
            spec = ComponentSpec(
                name=self.extract_component_name(prompt),
                kind=component_kind,
                needs_routing=component_kind == ComponentKind.PAGE,
            )
            return ModificationScope(
                kind=kind,
                reasoning=f"{reasoning}. Will create {spec.kind.value} {spec.name}",
                confidence=confidence,
                component=spec,
            )

        return ModificationScope(kind=kind, reasoning=reasoning, confidence=confidence)

    def extract_text_terms(self, prompt: str) -> Optional[TextTerms]:
        """Extract search/replace terms, strongest method first.

        Order: quoted patterns, then LLM extraction, then unquoted patterns.
        Returns None when no method yields a usable pair.
        """
        for name, pattern in QUOTED_TERM_PATTERNS.items():
            match = pattern.search(prompt)
            if match:
                terms = TextTerms(
                    search_term=match.group(1).strip(),
                    replacement_term=match.group(2).strip(),
                    confidence=0.95,
                    extraction_method=name,
                )
                if terms.is_usable():
                    return terms

        if self.ask_llm is not None:
            try:
                terms = self._extract_terms_with_llm(prompt)
            except Exception as e:
                logger.warning("LLM term extraction failed: %s", e)
                terms = None
            if terms is not None and terms.is_usable():
                return terms

        for name, pattern in UNQUOTED_TERM_PATTERNS.items():
            match = pattern.search(prompt)
            if match:
                terms = TextTerms(
                    search_term=match.group(1).strip(),
                    replacement_term=match.group(2).strip(),
                    confidence=0.6,
                    extraction_method=name,
                )
                if terms.is_usable():
                    return terms
        return None

    def _extract_terms_with_llm(self, prompt: str) -> Optional[TextTerms]:
        if self.ask_llm is None:
            return None
        extraction_prompt = f"""**USER REQUEST:** "{prompt}"

**TASK:** Extract the exact search and replacement terms from this request.

1. Identify the text the user wants to FIND.
2. Identify the text the user wants to REPLACE it with.
3. Give a confidence score (0-100) for the extraction.

**COMMON PATTERNS:**
- "change 'X' to 'Y'" -> search: "X", replace: "Y"
- "update X to Y" -> search: "X", replace: "Y"
- "replace X with Y" -> search: "X", replace: "Y"

**RESPOND WITH JSON:**
```json
{{"searchTerm": "exact text to search for", "replacementTerm": "exact text to replace with", "confidence": 95}}
```"""
        text = self.ask_llm(extraction_prompt, "Search/Replace Term Extraction")
        parsed = extract_json_object(text)
        if parsed is None:
            return None
        return TextTerms(
            search_term=str(parsed.get("searchTerm") or "").strip(),
            replacement_term=str(parsed.get("replacementTerm") or "").strip(),
            confidence=min(1.0, float(parsed.get("confidence") or 0) / 100),
            extraction_method="llm",
        )

    def _confirm_with_llm(
        self,
        prompt: str,
        summary: str,
        conversation_context: Optional[str],
        heuristic_kind: ScopeKind,
        heuristic_score: int,
    ) -> tuple[ScopeKind, str, Optional[TextTerms]]:
        """Ask the LLM to choose a scope.

        Raises:
            LLMError: If no LLM is configured.
            LLMResponseError: If the response has no valid scope.
        """
        if self.ask_llm is None:
            raise LLMError("No LLM configured for scope confirmation")
        context_block = (
            f"**CONVERSATION CONTEXT:**\n{conversation_context}\n\n" if conversation_context else ""
        )
        method_prompt = f"""**USER REQUEST:** "{prompt}"

**PROJECT SUMMARY:**
{summary[:MAX_SUMMARY_IN_PROMPT]}

{context_block}**HEURISTIC ANALYSIS:**
Suggested: {heuristic_kind.value} (score {heuristic_score})

**TASK:** Choose the MOST SPECIFIC modification method that can fulfill this request.

1. **TEXT_BASED_CHANGE**: replacing specific visible text (labels, headings, button text).
2. **TAILWIND_CHANGE**: global color or theme changes without a specific target element.
3. **TARGETED_NODES**: changing ONE specific existing element (a button, a title, an image).
4. **COMPONENT_ADDITION**: creating a new component, page or UI element.
5. **FULL_FILE**: multiple related changes, layout restructuring or major redesign (last resort).

**RESPOND WITH JSON:**
```json
{{
  "scope": "TEXT_BASED_CHANGE",
  "reasoning": "This is a simple text replacement request.",
  "textChangeAnalysis": {{"searchTerm": "old text", "replacementTerm": "new text"}}
}}
```
Include textChangeAnalysis only for TEXT_BASED_CHANGE."""
        text = self.ask_llm(method_prompt, "Method Determination")
        parsed = extract_json_object(text)
        if parsed is None:
            raise LLMResponseError("No JSON found in scope response")
        raw_scope = str(parsed.get("scope", "")).strip().upper()
        try:
            kind = ScopeKind(raw_scope)
        except ValueError as e:
            raise LLMResponseError(f"Invalid scope in response: {raw_scope!r}") from e

        terms = None
        analysis: Any = parsed.get("textChangeAnalysis")
        if kind == ScopeKind.TEXT_BASED_CHANGE and isinstance(analysis, dict):
            terms = TextTerms(
                search_term=str(analysis.get("searchTerm") or "").strip(),
                replacement_term=str(analysis.get("replacementTerm") or "").strip(),
                confidence=0.85,
                extraction_method="llm_scope",
            )
        return kind, str(parsed.get("reasoning") or "").strip(), terms

    def extract_color_changes(self, prompt: str) -> list[ColorChange]:
        """Color directives in prompt order; unknown color words are ignored."""
        lower = prompt.lower()
        found: list[tuple[int, ColorChange]] = []
        for pattern in _COLOR_PATTERNS:
            for match in pattern.finditer(lower):
                target_word, color = match.group(1), match.group(2)
                if not self._is_color_value(color):
                    continue
                found.append((match.start(), self._color_change(target_word, color)))

        found.sort(key=lambda item: item[0])
        changes: list[ColorChange] = []
        for _, change in found:
            if all(c.type != change.type or c.color != change.color for c in changes):
                changes.append(change)

        if not changes:
            for token in HEX_COLOR_RE.findall(prompt) + HSL_COLOR_RE.findall(prompt):
                changes.append(ColorChange(type=ColorChangeType.GENERAL, color=token))
                break
        if not changes:
            for word in re.findall(r"[a-z]+", lower):
                if word in COLOR_MAP:
                    changes.append(ColorChange(type=ColorChangeType.GENERAL, color=word))
                    break
        return changes

    @staticmethod
    def _is_color_value(value: str) -> bool:
        return (
            value in COLOR_MAP
            or HEX_COLOR_RE.fullmatch(value) is not None
            or HSL_COLOR_RE.fullmatch(value) is not None
        )

    @staticmethod
    def _color_change(target_word: str, color: str) -> ColorChange:
        if target_word in ("background", "bg"):
            return ColorChange(type=ColorChangeType.BACKGROUND, color=color)
        if target_word in ("primary", "secondary", "accent"):
            return ColorChange(type=ColorChangeType(target_word), color=color)
        if target_word in ("button", "text"):
            return ColorChange(type=ColorChangeType.GENERAL, color=color, target=target_word)
        return ColorChange(type=ColorChangeType.GENERAL, color=color)

    def extract_component_name(self, prompt: str) -> str:
        """PascalCase name from the words naming the new thing."""
        lower = prompt.lower()
        named = re.search(r"(?:component|page)\s+(?:called|named)\s+['\"]?([A-Za-z][\w-]*)", prompt, re.IGNORECASE)
        if named:
            return to_pascal_case(_words(named.group(1).replace("-", " ")))

        phrase = re.search(
            r"\b(?:add|create|build|make)\s+(.+?)\s+(?:page|component|section|screen)\b",
            lower,
        )
        if phrase:
            words = [w for w in _words(phrase.group(1)) if w not in NAME_STOPWORDS]
            if words:
                return to_pascal_case(words[-MAX_COMPONENT_NAME_WORDS:])

        after_verb = re.search(r"\b(?:add|create|build|make)\s+(.+)", lower)
        if after_verb:
            for word in _words(after_verb.group(1)):
                if word not in NAME_STOPWORDS:
                    return to_pascal_case([word])
        return DEFAULT_COMPONENT_NAME

    @staticmethod
    def determine_component_kind(prompt: str) -> ComponentKind:
        lower = prompt.lower()
        if any(re.search(rf"\b{keyword}\b", lower) for keyword in PAGE_KEYWORDS):
            return ComponentKind.PAGE
        if any(re.search(rf"\b{keyword}\b", lower) for keyword in APP_KEYWORDS):
            return ComponentKind.APP
        return ComponentKind.COMPONENT

