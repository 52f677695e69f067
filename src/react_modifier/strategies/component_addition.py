"""Two-step component addition.

Step 1 (analysis) learns project conventions and generates the new file.
Step 2 (integration) writes it and wires it in: route registration, import
and usage, and a navigation link when no equivalent route is linked yet.
Both steps are public so they can be run separately.
"""

import logging
import posixpath
import re
import time
from typing import Optional

from react_modifier.agents.exceptions import LLMError
from react_modifier.agents.scope_analyzer import ScopeAnalyzer
from react_modifier.agents.snapshot_builder import ProjectSnapshot
from react_modifier.models import (
    ComponentAnalysis,
    ComponentKind,
    IntegrationReport,
    ModificationScope,
    ProjectFile,
    ProjectPatterns,
    StrategyResult,
)
from react_modifier.session.context import SessionContext
from react_modifier.strategies.base import APPROACH_COMPONENT_ADDITION, write_change
from react_modifier.strategies.emergency import render_template
from react_modifier.strategies.exceptions import IntegrationError
from react_modifier.utils.response_parsing import extract_code

logger = logging.getLogger(__name__)

MAX_TREE_CONTEXT = 8  # file summaries sent as element-tree context
MAX_NAV_PAGE_ROUTES = 6  # nav files with this many page links are full
NAV_CANDIDATES = ("header", "navbar", "navigation", "footer", "sidebar", "menu")
APP_FILE_CANDIDATES = ("src/App.tsx", "src/App.jsx", "src/App.js", "App.tsx", "App.jsx")
USAGE_HOST_CANDIDATES = ("src/pages/Index.tsx", "src/pages/Home.tsx", "src/pages/index.tsx")
NAME_SUFFIXES = ("Page", "Component", "Section", "View")
COMPONENT_GENERATION_MAX_TOKENS = 4000

_ROUTE_PATH_RE = re.compile(r"path=[\"']([^\"']+)[\"']")
_LINK_TARGET_RE = re.compile(r"\b(?:href|to)=[\"']([^\"']+)[\"']")
_DEFAULT_EXPORT_RE = re.compile(r"export\s+default")
_NAMED_EXPORT_RE = re.compile(r"export\s+(?:const|function|class)")
_DEFAULT_IMPORT_RE = re.compile(r"import\s+\w+\s+from")
_NAMED_IMPORT_RE = re.compile(r"import\s*\{[^}]+\}\s*from")
_IMPORT_LINE_RE = re.compile(
    r"^import\b[^;\n]*?(?:\bfrom\s+)?[\"'][^\"']+[\"'];?[ \t]*$"
    r"|^import\s*\{[^}]*\}\s*from\s+[\"'][^\"']+[\"'];?[ \t]*$",
    re.MULTILINE,
)
_ROUTES_CLOSE_RE = re.compile(r"\n([ \t]*)</Routes>")
_ROUTE_LINE_RE = re.compile(r"\n([ \t]*)<Route\b")
_ROOT_CLOSE_RE = re.compile(r"\n([ \t]*)</([A-Za-z][\w.]*)?>\s*\n\s*\)")
_SINGLE_LINE_LINK_RE = re.compile(
    r"^([ \t]*)(<(Link|NavLink|a)\b[^>\n]*\b(?:to|href)=[\"'](/[^\"']*)[\"'][^>\n]*>)([^<\n]*)(</\3>)[ \t]*$",
    re.MULTILINE,
)


def normalize_route(path: str) -> str:
    """Comparable route key: no slashes or punctuation, lowercase."""
    path = re.sub(r"^\./", "", path.strip())
    return re.sub(r"[^a-z0-9]", "", path.strip("/").lower())


def clean_component_name(name: str) -> str:
    """Drop redundant suffixes (ContactPage -> Contact)."""
    for suffix in NAME_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            name = name[: -len(suffix)]
            break
    return name[:1].upper() + name[1:]


def display_name(name: str) -> str:
    return re.sub(r"(?<=[a-z0-9])(?=[A-Z])", " ", name)


def _dominant(default_count: int, named_count: int) -> str:
    if default_count and named_count and default_count == named_count:
        return "mixed"
    return "named" if named_count > default_count else "default"


def detect_project_patterns(snapshot: ProjectSnapshot) -> ProjectPatterns:
    """Learn export/import style, routing library and key file locations."""
    default_exports = named_exports = default_imports = named_imports = 0
    routing = "basic"
    route_file: Optional[str] = None
    for file in snapshot.source_files():
        default_exports += bool(_DEFAULT_EXPORT_RE.search(file.content))
        named_exports += bool(_NAMED_EXPORT_RE.search(file.content))
        default_imports += bool(_DEFAULT_IMPORT_RE.search(file.content))
        named_imports += bool(_NAMED_IMPORT_RE.search(file.content))
        for source in file.imports:
            if routing != "basic":
                break
            if source in ("react-router-dom", "react-router"):
                routing = "react-router"
            elif source == "@reach/router":
                routing = "reach-router"
            elif source == "next" or source.startswith("next/"):
                routing = "next"
        if route_file is None and "<Routes" in file.content:
            route_file = file.relative_path

    app_file = next((p for p in APP_FILE_CANDIDATES if snapshot.get(p) is not None), None)
    if app_file is None:
        main = snapshot.main_file()
        app_file = main.relative_path if main else None

    return ProjectPatterns(
        export_pattern=_dominant(default_exports, named_exports),
        import_pattern=_dominant(default_imports, named_imports),
        routing_pattern=routing,
        app_file_path=app_file,
        route_file_path=route_file or app_file,
    )


def extract_existing_routes(snapshot: ProjectSnapshot, patterns: ProjectPatterns) -> list[str]:
    routes: list[str] = []
    for path in {patterns.app_file_path, patterns.route_file_path} - {None}:
        file = snapshot.get(path)
        if file is None:
            continue
        for route in _ROUTE_PATH_RE.findall(file.content):
            if route not in routes:
                routes.append(route)
    return routes


def build_element_tree_context(snapshot: ProjectSnapshot) -> str:
    """Short per-file summaries of the existing JSX, pages and layout first."""
    files = sorted(
        (f for f in snapshot.source_files() if f.elements),
        key=lambda f: (f.file_type.value != "page", not f.is_main_file, f.relative_path),
    )
    lines = []
    for file in files[:MAX_TREE_CONTEXT]:
        components = sorted({e.tag_name for e in file.elements if e.is_component})
        tags = sorted({e.tag_name for e in file.elements if not e.is_component})
        lines.append(
            f"{file.relative_path} ({file.component_name or 'anonymous'}): "
            f"components [{', '.join(components)}], tags [{', '.join(tags[:10])}]"
        )
    return "\n".join(lines)


def import_path_for(from_file: str, target_path: str, use_alias: bool) -> str:
    """Module specifier for ``target_path`` as seen from ``from_file``."""
    module = re.sub(r"\.(tsx|ts|jsx|js)$", "", target_path)
    if use_alias and module.startswith("src/"):
        return "@/" + module[len("src/"):]
    relative = posixpath.relpath(module, posixpath.dirname(from_file) or ".")
    return relative if relative.startswith(".") else "./" + relative


def import_statement(name: str, content: str, specifier: str) -> str:
    if not _DEFAULT_EXPORT_RE.search(content) and re.search(rf"export\s+(?:const|function)\s+{name}\b", content):
        return f"import {{ {name} }} from '{specifier}';"
    return f"import {name} from '{specifier}';"


def insert_import(content: str, statement: str) -> str:
    """Insert an import line after the last top-level import."""
    imports = list(_IMPORT_LINE_RE.finditer(content))
    if not imports:
        return statement + "\n" + content
    end = imports[-1].end()
    return content[:end] + "\n" + statement + content[end:]


def has_import_of(content: str, name: str) -> bool:
    return re.search(rf"^import\s+(?:{name}\b|\{{[^}}]*\b{name}\b[^}}]*\}})", content, re.MULTILINE) is not None


def insert_route(content: str, route_path: str, name: str) -> Optional[str]:
    """Add ``<Route>`` before ``</Routes>``; None when there is no Routes block."""
    closing = _ROUTES_CLOSE_RE.search(content)
    if closing is None:
        return None
    routes = list(_ROUTE_LINE_RE.finditer(content, 0, closing.start() + 1))
    indent = routes[-1].group(1) if routes else closing.group(1) + "  "
    line = f'\n{indent}<Route path="{route_path}" element={{<{name} />}} />'
    return content[:closing.start()] + line + content[closing.start():]


def insert_usage(content: str, name: str) -> Optional[str]:
    """Render ``<Name />`` just before the closing tag of the returned root JSX."""
    matches = list(_ROOT_CLOSE_RE.finditer(content))
    if not matches:
        return None
    closing = matches[-1]
    line = f"\n{closing.group(1)}  <{name} />"
    return content[:closing.start()] + line + content[closing.start():]


def page_route_links(content: str) -> list[str]:
    return [link for link in _LINK_TARGET_RE.findall(content) if link.startswith("/") and "#" not in link]


def clone_nav_link(content: str, route_path: str, label: str) -> Optional[str]:
    """Copy the last single-line page link with a new target and label."""
    links = list(_SINGLE_LINE_LINK_RE.finditer(content))
    if not links:
        return None
    last = links[-1]
    indent, opening, _, old_target, _, closing = last.groups()
    new_opening = opening.replace(f'"{old_target}"', f'"{route_path}"').replace(
        f"'{old_target}'", f"'{route_path}'"
    )
    new_line = f"\n{indent}{new_opening}{label}{closing}"
    return content[:last.end()] + new_line + content[last.end():]


def find_navigation_file(snapshot: ProjectSnapshot) -> Optional[ProjectFile]:
    """First nav candidate (by kind priority) that has links and room for more."""
    for kind in NAV_CANDIDATES:
        for file in sorted(snapshot.source_files(), key=lambda f: f.relative_path):
            stem = posixpath.splitext(posixpath.basename(file.relative_path))[0].lower()
            if stem != kind or "components/ui/" in file.relative_path:
                continue
            links = page_route_links(file.content)
            if links and len(links) < MAX_NAV_PAGE_ROUTES:
                return file
    return None


class ComponentAdditionSystem:
    """Creates a new page or component and integrates it into the project."""

    approach = APPROACH_COMPONENT_ADDITION

    def __init__(self, analyzer: Optional[ScopeAnalyzer] = None):
        self.analyzer = analyzer or ScopeAnalyzer()

    # ------------------------------------------------------------------
    # Step 1
    # ------------------------------------------------------------------

    def _target_location(
        self,
        name: str,
        is_page: bool,
        patterns: ProjectPatterns,
        snapshot: ProjectSnapshot,
    ) -> tuple[str, str]:
        if is_page and patterns.routing_pattern == "next":
            directory = "src/pages" if any(p.startswith("src/pages/") for p in snapshot.files) else "pages"
            return directory, f"{name.lower()}.tsx"
        return ("src/pages" if is_page else "src/components"), f"{name}.tsx"

    def _generate(self, prompt: str, analysis: ComponentAnalysis, session: SessionContext) -> Optional[str]:
        patterns = analysis.patterns
        generation_prompt = f"""Create a React {analysis.type} named {analysis.name} in TypeScript with Tailwind CSS.

USER REQUEST: "{prompt}"

PROJECT CONVENTIONS:
- Export style: {patterns.export_pattern} (use `export default {analysis.name};` unless the style is named)
- Import style: {patterns.import_pattern}
- Routing: {patterns.routing_pattern}
- Existing routes: {", ".join(analysis.existing_routes) or "none"}

EXISTING ELEMENT TREE:
{analysis.element_tree_context or "(empty project)"}

RULES:
1. Self-contained: import only from 'react' and packages the project already uses.
2. The main component must be named {analysis.name}.
3. Return the complete file in a single ```tsx code block."""
        try:
            response = session.ask_llm(
                generation_prompt,
                "Component Generation",
                max_tokens=COMPONENT_GENERATION_MAX_TOKENS,
            )
        except LLMError as e:
            logger.warning("Component generation failed, using template: %s", e)
            return None
        code = extract_code(response)
        if code is None or analysis.name not in code or "export" not in code:
            logger.warning("Generated component for %s was unusable, using template", analysis.name)
            return None
        return code

    def analyze_only(
        self,
        prompt: str,
        session: SessionContext,
        scope: Optional[ModificationScope] = None,
    ) -> ComponentAnalysis:
        """Step 1: learn conventions, classify the request and generate content.

        Nothing is written to disk.
        """
        snapshot = session.snapshot
        patterns = detect_project_patterns(snapshot)
        spec = scope.component if scope is not None else None
        raw_name = spec.name if spec else self.analyzer.extract_component_name(prompt)
        kind = spec.kind if spec else self.analyzer.determine_component_kind(prompt)
        name = clean_component_name(raw_name)
        is_page = kind == ComponentKind.PAGE
        directory, file_name = self._target_location(name, is_page, patterns, snapshot)

        analysis = ComponentAnalysis(
            type="page" if is_page else "component",
            name=name,
            confidence=float(scope.confidence) if scope is not None else 70.0,
            reasoning=(
                f"Creating {name} as a {'page' if is_page else 'component'} in {directory} "
                f"({patterns.routing_pattern} routing, {patterns.export_pattern} exports)"
            ),
            target_directory=directory,
            file_name=file_name,
            needs_routing=is_page and patterns.routing_pattern in ("react-router", "reach-router"),
            patterns=patterns,
            existing_routes=extract_existing_routes(snapshot, patterns),
            element_tree_context=build_element_tree_context(snapshot),
        )
        session.progress(f"Component analysis: {analysis.reasoning}")
        generated = self._generate(prompt, analysis, session)
        analysis.generated_content = generated or render_template(name, is_page)
        return analysis

    # ------------------------------------------------------------------
    # Step 2
    # ------------------------------------------------------------------

    def _write(
        self,
        session: SessionContext,
        relative_path: str,
        content: str,
        description: str,
        name: str,
        report: IntegrationReport,
    ) -> None:
        write_change(
            session, relative_path, content, self.approach, description,
            reasoning="Component integration", components=[name],
        )
        if relative_path not in report.modified_files:
            report.modified_files.append(relative_path)

    def _integrate_route(
        self,
        analysis: ComponentAnalysis,
        route_path: str,
        session: SessionContext,
        report: IntegrationReport,
    ) -> None:
        route_file = analysis.patterns.route_file_path
        if route_file is None:
            report.skipped.append("No app or route file found for route registration")
            return
        content = session.read_file(route_file)
        existing = {normalize_route(r) for r in _ROUTE_PATH_RE.findall(content)}
        updated = content
        if normalize_route(route_path) in existing:
            report.skipped.append(f"Route {route_path} already registered in {route_file}")
        else:
            with_route = insert_route(content, route_path, analysis.name)
            if with_route is None:
                report.skipped.append(f"No <Routes> block in {route_file}")
            else:
                updated = with_route
                report.routing_updated = True
        if updated != content and not has_import_of(updated, analysis.name):
            specifier = import_path_for(route_file, analysis.relative_path, "'@/" in content or '"@/' in content)
            updated = insert_import(updated, import_statement(analysis.name, analysis.generated_content, specifier))
        if updated != content:
            self._write(session, route_file, updated, f"Registered route {route_path}", analysis.name, report)
            report.app_file_updated = route_file == analysis.patterns.app_file_path

    def _integrate_usage(
        self,
        analysis: ComponentAnalysis,
        session: SessionContext,
        report: IntegrationReport,
        host: Optional[str] = None,
    ) -> None:
        if host is None:
            host = next(
                (p for p in USAGE_HOST_CANDIDATES if session.snapshot.get(p)),
                analysis.patterns.app_file_path,
            )
        if host is None:
            report.skipped.append("No page or layout file to render the component in")
            return
        content = session.read_file(host)
        if re.search(rf"<{analysis.name}\b", content):
            report.skipped.append(f"{analysis.name} already rendered in {host}")
            return
        updated = insert_usage(content, analysis.name)
        if updated is None:
            report.skipped.append(f"No root JSX element found in {host}")
            return
        if not has_import_of(updated, analysis.name):
            specifier = import_path_for(host, analysis.relative_path, "'@/" in content or '"@/' in content)
            updated = insert_import(updated, import_statement(analysis.name, analysis.generated_content, specifier))
        self._write(session, host, updated, f"Rendered {analysis.name}", analysis.name, report)
        report.usage_added = True
        report.app_file_updated = report.app_file_updated or host == analysis.patterns.app_file_path

    def _integrate_navigation(
        self,
        analysis: ComponentAnalysis,
        route_path: str,
        session: SessionContext,
        report: IntegrationReport,
    ) -> None:
        nav_file = find_navigation_file(session.snapshot)
        if nav_file is None:
            report.skipped.append("No navigation file with room for another page link")
            return
        content = session.read_file(nav_file.relative_path)
        linked = {normalize_route(link) for link in page_route_links(content)}
        if normalize_route(route_path) in linked:
            report.skipped.append(f"Route {route_path} already linked in {nav_file.relative_path}")
            return
        updated = clone_nav_link(content, route_path, display_name(analysis.name))
        if updated is None:
            report.skipped.append(f"No single-line link to clone in {nav_file.relative_path}")
            return
        self._write(
            session, nav_file.relative_path, updated, f"Added navigation link to {route_path}",
            analysis.name, report,
        )
        report.navigation_updated = True

    def integrate_only(self, analysis: ComponentAnalysis, session: SessionContext) -> IntegrationReport:
        """Step 2: write the new file and wire it into the project.

        Every edit is idempotent: existing files, routes, imports and nav
        links are left alone and the skip is recorded in the report.

        Raises:
            IntegrationError: If the analysis carries no generated content.
        """
        if not analysis.generated_content.strip():
            raise IntegrationError(f"No generated content for {analysis.name}; run analyze_only first")
        report = IntegrationReport()
        relative_path = analysis.relative_path
        if session.resolve(relative_path).exists():
            report.skipped.append(f"{relative_path} already exists")
        else:
            write_change(
                session, relative_path, analysis.generated_content, self.approach,
                f"Created {analysis.type}: {analysis.name}",
                reasoning=analysis.reasoning, created=True, components=[analysis.name],
            )
            report.created_files.append(relative_path)

        route_path = "/" + normalize_route(analysis.name)
        if analysis.type == "page":
            if analysis.needs_routing:
                self._integrate_route(analysis, route_path, session, report)
            elif analysis.patterns.routing_pattern == "next":
                report.skipped.append("File-system routing: no route registration needed")
            else:
                self._integrate_usage(analysis, session, report, host=analysis.patterns.app_file_path)
            if analysis.patterns.routing_pattern != "basic":
                self._integrate_navigation(analysis, route_path, session, report)
        else:
            self._integrate_usage(analysis, session, report)

        for reason in report.skipped:
            logger.info("Integration skipped: %s", reason)
        return report

    def execute(
        self,
        prompt: str,
        scope: ModificationScope,
        session: SessionContext,
    ) -> StrategyResult:
        """Run both steps in sequence."""
        started = time.monotonic()
        analysis = self.analyze_only(prompt, session, scope)
        report = self.integrate_only(analysis, session)
        duration = round(time.monotonic() - started, 3)

        details = {
            "analysis": analysis.model_dump(mode="json", exclude={"generated_content"}),
            "integration": report.model_dump(mode="json"),
            "duration_seconds": duration,
        }
        wired = [
            label for label, done in (
                ("route", report.routing_updated),
                ("navigation", report.navigation_updated),
                ("usage", report.usage_added),
            ) if done
        ]
        if not report.created_files and not report.modified_files:
            reasoning = f"{analysis.name} already exists and is integrated; nothing to change"
        else:
            reasoning = f"{analysis.reasoning}; integration: {', '.join(wired) or 'none'}"
        return StrategyResult(
            success=True,
            approach=self.approach,
            modified_files=report.modified_files,
            added_files=report.created_files,
            reasoning=reasoning,
            details=details,
        )
