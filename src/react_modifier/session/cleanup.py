"""Request-scoped cleanup timer and cached-snapshot verification."""

import logging
import shutil
import threading
from pathlib import Path
from typing import Callable, Optional

from react_modifier.models import CacheVerificationReport, ProjectFile
from react_modifier.session.cache import SafeSessionCache

logger = logging.getLogger(__name__)

DEFAULT_CLEANUP_TIMEOUT = 300.0  # seconds


class CleanupTimer:
    """Force-cleans session state if a request outlives its timeout.

    Arm with ``start()`` at request start and ``cancel()`` on normal
    completion. Registered temp directories are removed and the session
    cache is cleared when the timer fires.
    """

    def __init__(
        self,
        session_id: str,
        cache: SafeSessionCache,
        timeout_seconds: float = DEFAULT_CLEANUP_TIMEOUT,
        on_timeout: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.session_id = session_id
        self.cache = cache
        self.timeout_seconds = timeout_seconds
        self.on_timeout = on_timeout
        self.temp_dirs: list[Path] = []
        self.fired = False
        self._timer: Optional[threading.Timer] = None

    def register_temp_dir(self, path: str | Path) -> None:
        self.temp_dirs.append(Path(path))

    def start(self) -> None:
        self.cancel()
        self.fired = False
        self._timer = threading.Timer(self.timeout_seconds, self.run_cleanup)
        self._timer.daemon = True
        self._timer.start()

    def cancel(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def __enter__(self) -> "CleanupTimer":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.cancel()

    def run_cleanup(self) -> None:
        self.fired = True
        logger.warning(
            "Cleanup timer fired for session %s after %.0fs",
            self.session_id,
            self.timeout_seconds,
        )
        for temp_dir in self.temp_dirs:
            shutil.rmtree(temp_dir, ignore_errors=True)
        self.cache.clear(self.session_id)
        if self.on_timeout is not None:
            self.on_timeout(self.session_id)


def _alternative_paths(relative_path: str) -> list[str]:
    normalized = relative_path.replace("\\", "/")
    candidates = [normalized]
    if normalized.startswith("src/"):
        candidates.append(normalized[len("src/"):])
    else:
        candidates.append(f"src/{normalized}")
    return candidates


def verify_cached_files(
    files: dict[str, ProjectFile],
    base_path: str,
    rebuild: Callable[[Path], Optional[ProjectFile]],
) -> tuple[dict[str, ProjectFile], CacheVerificationReport]:
    """Check cached records against the filesystem.

    Records whose file moved or whose content drifted are replaced by a
    fresh record from ``rebuild``; records with no file are dropped.

    Returns:
        (verified file map, report)
    """
    root = Path(base_path)
    report = CacheVerificationReport(total_cached=len(files))
    verified: dict[str, ProjectFile] = {}

    for relative_path, record in files.items():
        found: Optional[Path] = None
        for candidate in _alternative_paths(relative_path):
            if (root / candidate).is_file():
                found = root / candidate
                break
        if found is None:
            name = Path(relative_path).name
            matches = [p for p in root.rglob(name) if "node_modules" not in p.parts]
            if len(matches) == 1:
                found = matches[0]

        if found is None:
            report.removed += 1
            report.issues.append(f"Missing on disk: {relative_path}")
            continue

        try:
            content = found.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            report.removed += 1
            report.issues.append(f"Unreadable: {relative_path} ({exc})")
            continue

        new_relative = found.relative_to(root).as_posix()
        if new_relative != relative_path or content != record.content:
            fresh = rebuild(found)
            if fresh is None:
                report.removed += 1
                report.issues.append(f"Could not rebuild: {relative_path}")
                continue
            record = fresh
            report.updated += 1
        else:
            report.verified += 1
        verified[new_relative] = record

    if report.issues:
        logger.info("Cache verification: %d issue(s)", len(report.issues))
    return verified, report
