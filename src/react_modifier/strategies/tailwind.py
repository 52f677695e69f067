"""Tailwind processor: patch or create the Tailwind config with literal colors."""

import logging
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from react_modifier.models import (
    ChangeType,
    ColorChange,
    ColorChangeType,
    ModificationScope,
    StrategyResult,
)
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_TAILWIND, write_change
from react_modifier.utils.colors import color_to_hex, generate_color_scale
from react_modifier.utils.response_parsing import extract_code_block

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "tailwind.config.ts"
BACKUP_SUFFIX = ".backup"
FORBIDDEN_TOKENS = ("var(--", "hsl(var(")
REQUIRED_PATTERNS = {
    "export default": re.compile(r"export\s+default\b"),
    "content:": re.compile(r"\bcontent\s*:"),
    "theme:": re.compile(r"\btheme\s*:"),
}
_CONTENT_ARRAY_RE = re.compile(r"\bcontent\s*:\s*\[([\s\S]*?)\]")

DEFAULT_PALETTE = {
    ColorChangeType.PRIMARY: "#3b82f6",
    ColorChangeType.SECONDARY: "#8b5cf6",
    ColorChangeType.ACCENT: "#06b6d4",
    ColorChangeType.BACKGROUND: "#ffffff",
}


class TailwindSubResult(BaseModel):
    """What the Tailwind processor did to the config."""

    model_config = ConfigDict(frozen=False)

    config_path: str
    changes_applied: list[ColorChange] = Field(default_factory=list)
    config_updated: bool = False
    created: bool = False
    lines_changed: int = 0
    backup_path: Optional[str] = None
    method: str = "llm"  # llm | local | template


def tailwind_config_issues(content: str) -> list[str]:
    """Missing required sections and forbidden CSS-variable tokens."""
    issues = [f"missing {name}" for name, pattern in REQUIRED_PATTERNS.items() if not pattern.search(content)]
    issues.extend(f"forbidden {token}" for token in FORBIDDEN_TOKENS if token in content)
    return issues


def validate_tailwind_config(content: str) -> bool:
    """True for a complete config that uses literal color values only."""
    return not tailwind_config_issues(content)


def _content_entries(config: str) -> list[str]:
    match = _CONTENT_ARRAY_RE.search(config)
    if match is None:
        return []
    return re.findall(r"[\"']([^\"']+)[\"']", match.group(1))


def _palette_for(changes: list[ColorChange]) -> dict[ColorChangeType, str]:
    palette = dict(DEFAULT_PALETTE)
    for change in changes:
        hex_color = color_to_hex(change.color)
        if change.type == ColorChangeType.GENERAL:
            palette[ColorChangeType.PRIMARY] = hex_color
        else:
            palette[change.type] = hex_color
    return palette


def _scale_block(name: str, base: str, indent: str = "        ") -> str:
    scale = generate_color_scale(base)
    lines = [f"{indent}{name}: {{", f'{indent}  DEFAULT: "{base}",', f'{indent}  foreground: "#ffffff",']
    lines.extend(f'{indent}  {shade}: "{value}",' for shade, value in scale.items())
    lines.append(f"{indent}}},")
    return "\n".join(lines)


def generate_default_config(changes: Optional[list[ColorChange]] = None) -> str:
    """Built-in config with literal hex colors, seeded from color directives."""
    palette = _palette_for(changes or [])
    primary = palette[ColorChangeType.PRIMARY]
    return f"""import type {{ Config }} from "tailwindcss";

export default {{
  darkMode: ["class"],
  content: [
    "./pages/**/*.{{ts,tsx}}",
    "./components/**/*.{{ts,tsx}}",
    "./app/**/*.{{ts,tsx}}",
    "./src/**/*.{{ts,tsx}}",
  ],
  prefix: "",
  theme: {{
    container: {{
      center: true,
      padding: "2rem",
      screens: {{
        "2xl": "1400px",
      }},
    }},
    extend: {{
      colors: {{
        border: "#e2e8f0",
        input: "#f1f5f9",
        ring: "{primary}",
        background: "{palette[ColorChangeType.BACKGROUND]}",
        foreground: "#0f172a",
{_scale_block("primary", primary)}
{_scale_block("secondary", palette[ColorChangeType.SECONDARY])}
{_scale_block("accent", palette[ColorChangeType.ACCENT])}
        destructive: {{
          DEFAULT: "#ef4444",
          foreground: "#ffffff",
        }},
        success: {{
          DEFAULT: "#10b981",
          foreground: "#ffffff",
        }},
        warning: {{
          DEFAULT: "#f59e0b",
          foreground: "#000000",
        }},
        muted: {{
          DEFAULT: "#f8fafc",
          foreground: "#64748b",
        }},
        popover: {{
          DEFAULT: "#ffffff",
          foreground: "#0f172a",
        }},
        card: {{
          DEFAULT: "#ffffff",
          foreground: "#0f172a",
        }},
        gray: {{
          50: "#f8fafc",
          100: "#f1f5f9",
          200: "#e2e8f0",
          300: "#cbd5e1",
          400: "#94a3b8",
          500: "#64748b",
          600: "#475569",
          700: "#334155",
          800: "#1e293b",
          900: "#0f172a",
        }},
      }},
      borderRadius: {{
        lg: "0.5rem",
        md: "0.375rem",
        sm: "0.25rem",
      }},
      keyframes: {{
        "fade-in": {{
          "0%": {{ opacity: "0" }},
          "100%": {{ opacity: "1" }},
        }},
      }},
      animation: {{
        "fade-in": "fade-in 0.5s ease-out",
      }},
    }},
  }},
  plugins: [],
}} satisfies Config;
"""


def apply_color_changes_locally(config: str, changes: list[ColorChange]) -> str:
    """Rewrite color values in place without the LLM.

    Object tokens (``primary: {...}``) get DEFAULT and a regenerated 50-900
    ramp; string tokens (``background: "#fff"``) get the new literal.
    """
    palette = _palette_for(changes)
    requested = {ColorChangeType.PRIMARY if c.type == ColorChangeType.GENERAL else c.type for c in changes}
    for color_type in requested:
        token = color_type.value
        hex_color = palette[color_type]
        block = re.search(rf"(\b{token}\s*:\s*\{{)([^{{}}]*)(\}})", config)
        if block is not None:
            body = block.group(2)
            body = re.sub(r"(DEFAULT\s*:\s*)[\"'][^\"']*[\"']", rf'\g<1>"{hex_color}"', body)
            for shade, value in generate_color_scale(hex_color).items():
                body = re.sub(rf"(\b{shade}\s*:\s*)[\"'][^\"']*[\"']", rf'\g<1>"{value}"', body)
            config = config[:block.start(2)] + body + config[block.end(2):]
            continue
        config = re.sub(
            rf"(\b{token}\s*:\s*)[\"'][^\"']*[\"']",
            rf'\g<1>"{hex_color}"',
            config,
            count=1,
        )
    return config


class TailwindProcessor:
    """Patches the Tailwind config; refuses any result with CSS variables."""

    approach = APPROACH_TAILWIND

    def _generate_with_llm(
        self,
        prompt: str,
        current_config: str,
        changes: list[ColorChange],
        session: SessionContext,
    ) -> Optional[str]:
        changes_text = ", ".join(
            f"{c.type.value}: {c.color} ({color_to_hex(c.color)})" for c in changes
        ) or "extracted from prompt"
        modification_prompt = f"""You are an expert at modifying Tailwind CSS configuration files. Modify the config below to implement the user's color change while preserving its entire structure.

**USER REQUEST:** "{prompt}"

**EXTRACTED COLOR CHANGES:** {changes_text}

**CURRENT TAILWIND CONFIG:**
```typescript
{current_config}
```

**CRITICAL REQUIREMENTS:**
1. Keep ALL existing structure, imports, exports, the content array and other options.
2. Use only solid hex colors like '#3b82f6'. NEVER use CSS variables like 'hsl(var(--primary))'.
3. Only modify color values in the colors section.
4. Keep every shade (50-900) by generating matching variations.

Return ONLY the complete modified config file in a single code block."""
        response = session.ask_llm(modification_prompt, "Tailwind Config Modification")
        block = extract_code_block(response)
        if block is not None:
            return block
        stripped = response.strip()
        if "export default" in stripped or "module.exports" in stripped:
            return stripped
        return None

    def _create_config(
        self,
        prompt: str,
        changes: list[ColorChange],
        session: SessionContext,
    ) -> StrategyResult:
        content = generate_default_config(changes)
        write_change(
            session,
            DEFAULT_CONFIG_PATH,
            content,
            self.approach,
            f'Created Tailwind config with custom colors for: "{prompt}"',
            reasoning="No Tailwind config found; created one from the built-in template",
            created=True,
        )
        sub = TailwindSubResult(
            config_path=DEFAULT_CONFIG_PATH,
            changes_applied=changes,
            config_updated=True,
            created=True,
            lines_changed=len(content.split("\n")),
            method="template",
        )
        return StrategyResult(
            success=True,
            approach=self.approach,
            added_files=[DEFAULT_CONFIG_PATH],
            reasoning=f"Created new Tailwind configuration with custom colors for: {prompt}",
            details={"tailwind": sub.model_dump(mode="json")},
        )

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult:
        changes = list(scope.color_changes)
        try:
            _palette_for(changes)
        except ValueError as e:
            return StrategyResult.failure(self.approach, f"Unsupported color value: {e}")
        if not changes and session.llm is None:
            return StrategyResult.failure(self.approach, "No supported color value found in the request")

        config_path = session.snapshot.tailwind_config_path()
        if config_path is None:
            session.progress("No Tailwind config found, creating one")
            return self._create_config(prompt, changes, session)

        current = session.read_file(config_path)
        method = "llm"
        candidate: Optional[str] = None
        if session.llm is not None:
            try:
                candidate = self._generate_with_llm(prompt, current, changes, session)
            except Exception as e:
                logger.warning("Tailwind LLM generation failed: %s", e)
        if candidate is None and changes:
            method = "local"
            candidate = apply_color_changes_locally(current, changes)
        if candidate is None:
            return StrategyResult.failure(self.approach, "Could not extract a modified config from the LLM response")

        issues = tailwind_config_issues(candidate)
        original_entries = _content_entries(current)
        if original_entries and _content_entries(candidate) != original_entries:
            issues.append("content array changed")
        if issues:
            session.record(
                ChangeType.MODIFIED,
                config_path,
                "Rejected Tailwind config update",
                self.approach,
                success=False,
                reasoning="; ".join(issues),
            )
            return StrategyResult.failure(
                self.approach,
                "Tailwind config failed validation: " + "; ".join(issues),
            )
        if candidate.strip() == current.strip():
            return StrategyResult.failure(self.approach, "Tailwind config unchanged; no matching color tokens")

        backup_path = config_path + BACKUP_SUFFIX
        try:
            session.write_file(backup_path, current)
        except OSError as e:
            logger.warning("Could not create backup %s: %s", backup_path, e)
            backup_path = None

        lines_changed = write_change(
            session,
            config_path,
            candidate,
            self.approach,
            f'Updated Tailwind colors based on: "{prompt}"',
            reasoning=f"Modified {config_path} to update theme colors ({method})",
        )
        sub = TailwindSubResult(
            config_path=config_path,
            changes_applied=changes,
            config_updated=True,
            lines_changed=lines_changed,
            backup_path=backup_path,
            method=method,
        )
        return StrategyResult(
            success=True,
            approach=self.approach,
            modified_files=[config_path],
            reasoning=f"Updated Tailwind configuration for: {prompt}",
            details={"tailwind": sub.model_dump(mode="json")},
        )
