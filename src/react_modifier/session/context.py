"""Explicit per-session state handed to every strategy executor."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from react_modifier.agents.exceptions import LLMError
from react_modifier.agents.llm_client import CompletionClient
from react_modifier.agents.snapshot_builder import ProjectSnapshot, SnapshotBuilder
from react_modifier.config import ModifierSettings
from react_modifier.models import ChangeType
from react_modifier.session.cache import SafeSessionCache
from react_modifier.session.ledger import ModificationLedger
from react_modifier.session.token_tracker import TokenTracker

logger = logging.getLogger(__name__)


@dataclass
class SessionContext:
    """Everything a strategy needs, passed explicitly instead of via globals."""

    session_id: str
    base_path: str
    settings: ModifierSettings
    snapshot: ProjectSnapshot
    llm: Optional[CompletionClient] = None
    ledger: ModificationLedger = field(default_factory=ModificationLedger)
    token_tracker: TokenTracker = field(default_factory=TokenTracker)
    cache: SafeSessionCache = field(default_factory=lambda: SafeSessionCache(None))
    builder: SnapshotBuilder = field(default_factory=SnapshotBuilder)
    on_progress: Optional[Callable[[str], None]] = None

    def progress(self, message: str) -> None:
        logger.info(message)
        if self.on_progress is not None:
            try:
                self.on_progress(message)
            except Exception as exc:
                logger.warning("Progress callback failed: %s", exc)

    def ask_llm(
        self,
        prompt: str,
        operation: str,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Run one completion and record its token usage.

        Raises:
            LLMError: If no client is configured or the call fails.
        """
        if self.llm is None:
            raise LLMError(f"No LLM client configured for {operation}")
        try:
            response = self.llm.complete(
                prompt,
                max_tokens=max_tokens or self.settings.max_tokens,
                temperature=self.settings.temperature if temperature is None else temperature,
            )
        except LLMError:
            raise
        except Exception as e:
            raise LLMError(f"{operation} LLM call failed: {e}") from e
        self.token_tracker.log_usage(
            response.usage, operation, response.model or self.settings.model
        )
        return response.text

    def resolve(self, relative_path: str) -> Path:
        """Absolute path for a project-relative path, kept inside the root."""
        root = Path(self.base_path).resolve()
        target = (root / relative_path).resolve()
        if not target.is_relative_to(root):
            raise ValueError(f"Path escapes project root: {relative_path}")
        return target

    def read_file(self, relative_path: str) -> str:
        return self.resolve(relative_path).read_text(encoding="utf-8")

    def write_file(self, relative_path: str, content: str) -> None:
        """Write UTF-8 text, creating parent directories as needed."""
        target = self.resolve(relative_path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")

    def record(
        self,
        change_type: ChangeType,
        relative_path: str,
        description: str,
        approach: str,
        success: bool = True,
        lines_changed: Optional[int] = None,
        components: Optional[list[str]] = None,
        reasoning: str = "",
    ) -> None:
        self.ledger.add_change(
            change_type,
            relative_path,
            description,
            approach=approach,
            success=success,
            lines_changed=lines_changed,
            components_affected=components,
            reasoning=reasoning,
        )

    def refresh_snapshot(self, relative_paths: list[str]) -> None:
        """Replace snapshot records for changed files."""
        self.builder.refresh(self.snapshot, relative_paths)
