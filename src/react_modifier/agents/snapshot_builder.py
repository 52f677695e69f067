"""Project snapshot builder for React working trees."""

import logging
import os
import re
from pathlib import Path
from typing import Any, Optional

from react_modifier.models import FileType, ProjectFile, ProjectSummary
from react_modifier.utils.ast_parser import (
    PARSEABLE_EXTENSIONS,
    detect_component_name,
    extract_exports,
    extract_imports,
    parse_source,
    summarize_elements,
)

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".tsx", ".ts", ".jsx", ".js", ".cjs", ".mjs", ".css", ".scss", ".html"}
DEFAULT_EXCLUDE_DIRS = ["node_modules", ".git", ".next", "dist", "build", "coverage"]
UI_LIBRARY_DIR = "components/ui/"
MAX_FILE_SIZE = 200_000  # chars; larger files are generated or vendored
TAILWIND_CONFIG_NAMES = (
    "tailwind.config.ts",
    "tailwind.config.js",
    "tailwind.config.cjs",
    "tailwind.config.mjs",
)
MAIN_FILE_CANDIDATES = (
    "src/main.tsx",
    "src/main.jsx",
    "src/index.tsx",
    "src/index.jsx",
)

_BUTTON_RE = re.compile(r"<button\b|<Button\b|\bbtn\b", re.IGNORECASE)
_SIGNIN_RE = re.compile(r"sign\s*in|log\s*in|signin|login", re.IGNORECASE)


class ProjectSnapshot:
    """Path -> ProjectFile map for one working tree.

    Records are replaced whole whenever a path is refreshed.
    """

    def __init__(self, base_path: str, files: dict[str, ProjectFile] | None = None) -> None:
        self.base_path = str(Path(base_path).resolve())
        self.files: dict[str, ProjectFile] = dict(files or {})

    def __len__(self) -> int:
        return len(self.files)

    def __contains__(self, relative_path: str) -> bool:
        return relative_path in self.files

    def is_empty(self) -> bool:
        return not self.files

    def get(self, relative_path: str) -> Optional[ProjectFile]:
        return self.files.get(relative_path)

    def find(self, path_like: str) -> Optional[ProjectFile]:
        """Resolve a loosely written path (LLM output, user text) to a file.

        Tries the path as given, with ``src/`` stripped or added, with
        backslashes normalised, and finally a unique basename match.
        """
        normalized = path_like.strip().replace("\\", "/")
        base = self.base_path.replace("\\", "/")
        if normalized.startswith(base + "/"):
            normalized = normalized[len(base) + 1:]
        while normalized.startswith("./"):
            normalized = normalized[2:]
        normalized = normalized.lstrip("/")
        candidates = [normalized]
        if normalized.startswith("src/"):
            candidates.append(normalized[4:])
        else:
            candidates.append(f"src/{normalized}")
        for candidate in candidates:
            if candidate in self.files:
                return self.files[candidate]

        name = normalized.rsplit("/", 1)[-1]
        matches = [f for path, f in self.files.items() if path.rsplit("/", 1)[-1] == name]
        if len(matches) == 1:
            return matches[0]
        return None

    def main_file(self) -> Optional[ProjectFile]:
        mains = [f for f in self.files.values() if f.is_main_file]
        mains.sort(key=lambda f: (Path(f.relative_path).stem != "App", f.relative_path))
        return mains[0] if mains else None

    def tailwind_config_path(self) -> Optional[str]:
        for name in TAILWIND_CONFIG_NAMES:
            if (Path(self.base_path) / name).is_file():
                return name
        return None

    def source_files(self) -> list[ProjectFile]:
        """Files a strategy may rewrite: JS/TS sources, no configs or tests."""
        return [
            f for f in self.files.values()
            if f.extension in PARSEABLE_EXTENSIONS
            and f.file_type not in (FileType.CONFIG, FileType.TEST)
        ]

    def summary(self) -> ProjectSummary:
        components = sorted(
            f.relative_path for f in self.files.values() if f.file_type == FileType.COMPONENT
        )
        pages = sorted(f.relative_path for f in self.files.values() if f.file_type == FileType.PAGE)
        main = self.main_file()
        lines = [f"Project files: {len(self.files)}"]
        if main:
            lines.append(f"Main file: {main.relative_path}")
        if pages:
            lines.append("Pages: " + ", ".join(pages[:20]))
        if components:
            lines.append("Components: " + ", ".join(components[:30]))
        tailwind = self.tailwind_config_path()
        if tailwind:
            lines.append(f"Tailwind config: {tailwind}")
        return ProjectSummary(
            total_files=len(self.files),
            main_file=main.relative_path if main else None,
            components=components,
            pages=pages,
            has_tailwind_config=tailwind is not None,
            text="\n".join(lines),
        )

    def to_cache(self) -> list[dict[str, Any]]:
        return [record.model_dump(mode="json") for record in self.files.values()]

    @classmethod
    def from_cache(cls, base_path: str, payload: list[dict[str, Any]]) -> "ProjectSnapshot":
        files = {}
        for item in payload:
            record = ProjectFile.model_validate(item)
            files[record.relative_path] = record
        return cls(base_path, files)


class SnapshotBuilder:
    """Scans a working tree into a ProjectSnapshot."""

    def __init__(self, exclude_dirs: list[str] | None = None):
        """Initialize the builder.

        Args:
            exclude_dirs: Directory names never descended into. Hidden
                directories are always skipped.
        """
        self.exclude_dirs = exclude_dirs or list(DEFAULT_EXCLUDE_DIRS)

    def build(self, base_path: str) -> ProjectSnapshot:
        """Scan ``base_path`` and return a snapshot.

        A missing directory or an empty tree yields an empty snapshot;
        unreadable files are skipped with a warning.
        """
        root = Path(base_path).resolve()
        snapshot = ProjectSnapshot(str(root))
        if not root.is_dir():
            logger.warning("Project path not found, snapshot is empty: %s", base_path)
            return snapshot

        for path in self._discover_files(root):
            record = self.build_file(path, root)
            if record is not None:
                snapshot.files[record.relative_path] = record

        logger.info("Snapshot built: %d files under %s", len(snapshot), root)
        return snapshot

    def refresh(self, snapshot: ProjectSnapshot, relative_paths: list[str]) -> None:
        """Rebuild the records for specific paths, dropping deleted ones."""
        root = Path(snapshot.base_path)
        for relative_path in relative_paths:
            path = root / relative_path
            record = self.build_file(path, root) if path.is_file() else None
            if record is None:
                snapshot.files.pop(relative_path, None)
            else:
                snapshot.files[record.relative_path] = record

    def _skip_dir(self, name: str) -> bool:
        return name in self.exclude_dirs or name.startswith(".")

    def _discover_files(self, root: Path) -> list[Path]:
        file_paths = []
        for dirpath, dirnames, filenames in os.walk(root):
            # prune in place so excluded trees are never entered
            dirnames[:] = [name for name in dirnames if not self._skip_dir(name)]
            for filename in filenames:
                path = Path(dirpath) / filename
                # Skip symlinks to prevent path traversal
                if path.is_symlink():
                    continue
                if path.suffix not in SUPPORTED_EXTENSIONS or not path.is_file():
                    continue
                if not path.resolve().is_relative_to(root):
                    continue
                file_paths.append(path)
        return sorted(file_paths)

    def build_file(self, path: Path, root: Path) -> Optional[ProjectFile]:
        """Build one record; returns None for unreadable or vendored files."""
        relative_path = path.resolve().relative_to(root.resolve()).as_posix()
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Skipping unreadable file %s: %s", relative_path, e)
            return None
        if len(content) > MAX_FILE_SIZE:
            logger.warning("Skipping oversized file %s (%d chars)", relative_path, len(content))
            return None
        if self._is_ui_library_file(relative_path, content):
            logger.debug("Skipping UI library file %s", relative_path)
            return None

        imports: list[str] = []
        exports: list[str] = []
        elements = []
        if path.suffix in PARSEABLE_EXTENSIONS and not self._is_config_name(path.name):
            try:
                tree, language = parse_source(content, relative_path)
                imports = extract_imports(tree, language)
                exports = extract_exports(tree, language)
                elements = summarize_elements(content, relative_path)
            except Exception as e:
                logger.warning("Parse failed for %s: %s", relative_path, e)

        is_main = self._is_main_file(relative_path)
        return ProjectFile(
            path=str(path.resolve()),
            relative_path=relative_path,
            content=content,
            lines=len(content.split("\n")),
            file_type=self._detect_file_type(relative_path, content, is_main),
            has_buttons=bool(_BUTTON_RE.search(content)),
            has_signin=bool(_SIGNIN_RE.search(content)),
            is_main_file=is_main,
            component_name=detect_component_name(content),
            imports=imports,
            exports=exports,
            elements=elements,
            dependencies=[i for i in imports if i.startswith((".", "@/"))],
        )

    @staticmethod
    def _is_config_name(name: str) -> bool:
        return ".config." in name or name.startswith("config.")

    @staticmethod
    def _is_ui_library_file(relative_path: str, content: str) -> bool:
        if UI_LIBRARY_DIR in f"/{relative_path}":
            return True
        if "class-variance-authority" in content:
            return True
        return "@radix-ui/" in content and "forwardRef" in content

    @staticmethod
    def _is_main_file(relative_path: str) -> bool:
        if Path(relative_path).stem == "App":
            return True
        return relative_path in MAIN_FILE_CANDIDATES

    def _detect_file_type(self, relative_path: str, content: str, is_main: bool) -> FileType:
        name = Path(relative_path).name
        suffix = Path(relative_path).suffix
        if ".test." in name or ".spec." in name:
            return FileType.TEST
        if suffix in (".css", ".scss"):
            return FileType.STYLE
        if self._is_config_name(name):
            return FileType.CONFIG
        if suffix in (".tsx", ".jsx", ".js") and (
            "/pages/" in f"/{relative_path}" or "/app/" in f"/{relative_path}"
        ):
            return FileType.PAGE
        if "<" in content and detect_component_name(content):
            return FileType.COMPONENT
        if is_main:
            return FileType.COMPONENT
        return FileType.OTHER
