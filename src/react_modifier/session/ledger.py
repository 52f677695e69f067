"""Append-only, session-scoped record of attempted file changes."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from react_modifier.models import ChangeType, ModificationChange

logger = logging.getLogger(__name__)

CONTEXT_RECENT_CHANGES = 5
DEFAULT_TOP_FILES = 10


class ModificationLedger:
    """Per-session log of every change; entries are never mutated."""

    def __init__(self, session_id: str = "default") -> None:
        self.session_id = session_id
        self._changes: list[ModificationChange] = []
        self.start_time = datetime.now(timezone.utc)

    @property
    def changes(self) -> tuple[ModificationChange, ...]:
        return tuple(self._changes)

    def __len__(self) -> int:
        return len(self._changes)

    def add_change(
        self,
        change_type: ChangeType | str,
        file_path: str,
        description: str,
        approach: str = "",
        success: bool = True,
        lines_changed: Optional[int] = None,
        components_affected: Optional[list[str]] = None,
        reasoning: str = "",
    ) -> ModificationChange:
        """Append one entry.

        Args:
            change_type: created / modified / updated.
            file_path: Path relative to the project root.
            description: Human-readable summary of the change.
            approach: Strategy that produced the change.
            success: Whether the write actually happened.
            lines_changed: Optional count of changed lines.
            components_affected: Optional component names touched.
            reasoning: Free text, e.g. whether structure repair was needed.

        Returns:
            The stored, frozen entry.
        """
        change = ModificationChange(
            type=ChangeType(change_type),
            file=file_path,
            description=description,
            approach=approach,
            success=success,
            lines_changed=lines_changed,
            components_affected=tuple(components_affected or ()),
            reasoning=reasoning,
        )
        self._changes.append(change)
        logger.info(
            "Ledger [%s] %s %s (%s)%s",
            self.session_id,
            change.type.value,
            file_path,
            approach or "unknown",
            "" if success else " FAILED",
        )
        return change

    def clear(self) -> None:
        self._changes.clear()
        self.start_time = datetime.now(timezone.utc)

    def _duration_seconds(self) -> float:
        return (datetime.now(timezone.utc) - self.start_time).total_seconds()

    def _unique_files(self) -> list[str]:
        files: list[str] = []
        for change in self._changes:
            if change.file not in files:
                files.append(change.file)
        return files

    def _primary_approach(self) -> str:
        counts: dict[str, int] = {}
        for change in self._changes:
            if change.approach:
                counts[change.approach] = counts.get(change.approach, 0) + 1
        if not counts:
            return "unknown"
        return max(counts, key=counts.get)

    def success_rate(self) -> float:
        if not self._changes:
            return 0.0
        return sum(1 for c in self._changes if c.success) / len(self._changes)

    def get_summary(self) -> str:
        if not self._changes:
            return "No changes recorded in this session."

        lines = [
            "MODIFICATION SESSION SUMMARY:",
            f"Total changes: {len(self._changes)}",
            f"Files affected: {len(self._unique_files())}",
            f"Success rate: {round(self.success_rate() * 100)}%",
            f"Duration: {round(self._duration_seconds())}s",
            "",
            "Changes:",
        ]
        for index, change in enumerate(self._changes, start=1):
            status = "ok" if change.success else "failed"
            lines.append(
                f"{index}. [{change.type.value.upper()}] {change.file}: "
                f"{change.description} ({status})"
            )

        failed = [c for c in self._changes if not c.success]
        if failed:
            lines.extend(["", "Issues:"])
            for change in failed:
                lines.append(f"- {change.file}: {change.reasoning or change.description}")
        return "\n".join(lines)

    def get_contextual_summary(self) -> str:
        """Short summary fed to the next request's scope analysis."""
        if not self._changes:
            return ""
        recent = self._changes[-CONTEXT_RECENT_CHANGES:]
        lines = ["RECENT MODIFICATIONS IN THIS SESSION:"]
        for change in recent:
            lines.append(f"- {change.type.value.upper()}: {change.file} - {change.description}")
        lines.append(
            f"Session context: {len(self._changes)} changes across "
            f"{len(self._unique_files())} files, primary approach "
            f"{self._primary_approach()}, {round(self._duration_seconds())}s elapsed."
        )
        return "\n".join(lines)

    def get_changes_by_type(self) -> dict[str, list[ModificationChange]]:
        grouped: dict[str, list[ModificationChange]] = {t.value: [] for t in ChangeType}
        for change in self._changes:
            grouped[change.type.value].append(change)
        return grouped

    def get_changes_by_file(self) -> dict[str, list[ModificationChange]]:
        grouped: dict[str, list[ModificationChange]] = {}
        for change in self._changes:
            grouped.setdefault(change.file, []).append(change)
        return grouped

    def get_most_modified_files(self, limit: int = DEFAULT_TOP_FILES) -> list[dict[str, Any]]:
        ranked = []
        for file_path, changes in self.get_changes_by_file().items():
            types = []
            for change in changes:
                if change.type.value not in types:
                    types.append(change.type.value)
            ranked.append({"file": file_path, "count": len(changes), "types": types})
        ranked.sort(key=lambda item: item["count"], reverse=True)
        return ranked[:limit]

    def get_detailed_stats(self) -> dict[str, Any]:
        by_type = self.get_changes_by_type()
        return {
            "total_changes": len(self._changes),
            "total_files": len(self._unique_files()),
            "created": len(by_type["created"]),
            "modified": len(by_type["modified"]),
            "updated": len(by_type["updated"]),
            "approach": self._primary_approach(),
            "session_duration_seconds": round(self._duration_seconds(), 2),
            "success_rate": round(self.success_rate(), 4),
            "start_time": self.start_time.isoformat(),
            "end_time": self._changes[-1].timestamp if self._changes else None,
        }

    def get_progress_update(self) -> str:
        if not self._changes:
            return "No modifications yet."
        last = self._changes[-1]
        return (
            f"{len(self._changes)} change(s) so far; last: "
            f"{last.type.value} {last.file}"
        )

    def export_session(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "stats": self.get_detailed_stats(),
            "changes": [change.model_dump() for change in self._changes],
        }
