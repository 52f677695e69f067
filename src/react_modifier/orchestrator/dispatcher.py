"""Public entry points: process_modification, analyze_only and integrate_only."""

import logging
import uuid
from pathlib import Path
from typing import Any, Callable, Optional

from pydantic import ValidationError

from react_modifier.agents.llm_client import CompletionClient
from react_modifier.agents.scope_analyzer import ScopeAnalyzer
from react_modifier.agents.snapshot_builder import ProjectSnapshot, SnapshotBuilder
from react_modifier.config import ModifierSettings
from react_modifier.integrations.collaborators import ProjectStore
from react_modifier.models import (
    ComponentAnalysis,
    IntegrationReport,
    ModificationResult,
    ModificationScope,
    ScopeKind,
    StrategyResult,
)
from react_modifier.orchestrator.graph import build_graph
from react_modifier.orchestrator.recovery import (
    EMERGENCY,
    select_final_result,
    to_modification_result,
)
from react_modifier.orchestrator.state import ModificationState, make_initial_state
from react_modifier.session.cache import (
    MODIFICATION_HISTORY_KEY,
    PROJECT_FILES_KEY,
    SESSION_SUMMARY_KEY,
    SafeSessionCache,
    SessionCache,
)
from react_modifier.session.cleanup import CleanupTimer, verify_cached_files
from react_modifier.session.context import SessionContext
from react_modifier.session.ledger import ModificationLedger
from react_modifier.session.token_tracker import TokenTracker
from react_modifier.strategies.component_addition import ComponentAdditionSystem
from react_modifier.strategies.emergency import EmergencyCreator
from react_modifier.strategies.fallback import FallbackProcessor
from react_modifier.strategies.full_file import FullFileProcessor
from react_modifier.strategies.tailwind import TailwindProcessor
from react_modifier.strategies.targeted_nodes import TargetedNodesProcessor
from react_modifier.strategies.text_based import TextBasedProcessor

logger = logging.getLogger(__name__)

SummaryCallback = Callable[[str], None]


class ModificationDispatcher:
    """Runs modification requests for one session against one project tree.

    Requests within a session must be serialized by the caller; separate
    dispatchers share nothing mutable except the injected cache.
    """

    def __init__(
        self,
        base_path: str,
        settings: Optional[ModifierSettings] = None,
        llm: Optional[CompletionClient] = None,
        session_id: Optional[str] = None,
        cache: Optional[SessionCache] = None,
        project_store: Optional[ProjectStore] = None,
        on_progress: Optional[Callable[[str], None]] = None,
        builder: Optional[SnapshotBuilder] = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            base_path: Root of the React project to modify.
            settings: Tunables; defaults when None.
            llm: Completion client. Without one every LLM-backed step
                degrades to its deterministic path.
            session_id: Cache and ledger key; generated when None.
            cache: Optional session cache; failures are never fatal.
            project_store: Optional persistence for project summaries.
            on_progress: Receives user-facing progress messages.
            builder: Snapshot builder; defaults to SnapshotBuilder().
        """
        self.settings = settings or ModifierSettings()
        self.session_id = session_id or uuid.uuid4().hex
        self.cache = SafeSessionCache(cache)
        self.project_store = project_store
        root = str(Path(base_path).resolve())
        self.session = SessionContext(
            session_id=self.session_id,
            base_path=root,
            settings=self.settings,
            snapshot=ProjectSnapshot(root),
            llm=llm,
            ledger=ModificationLedger(self.session_id),
            token_tracker=TokenTracker(
                large_operation_tokens=self.settings.large_operation_tokens,
                debug=self.settings.debug_tokens,
            ),
            cache=self.cache,
            builder=builder or SnapshotBuilder(),
            on_progress=on_progress,
        )
        self.analyzer = ScopeAnalyzer(ask_llm=self.session.ask_llm if llm is not None else None)
        self.component_system = ComponentAdditionSystem(self.analyzer)
        self.executors = {
            ScopeKind.FULL_FILE: FullFileProcessor(),
            ScopeKind.TARGETED_NODES: TargetedNodesProcessor(),
            ScopeKind.TAILWIND_CHANGE: TailwindProcessor(),
            ScopeKind.TEXT_BASED_CHANGE: TextBasedProcessor(),
            ScopeKind.COMPONENT_ADDITION: self.component_system,
        }
        self.fallback = FallbackProcessor()
        self.emergency = EmergencyCreator()

    @property
    def base_path(self) -> str:
        return self.session.base_path

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def load_snapshot(self) -> ProjectSnapshot:
        """Return the session snapshot, building it at most once per session.

        Order: in-memory snapshot, verified cache entry, filesystem scan.
        """
        if not self.session.snapshot.is_empty():
            return self.session.snapshot

        cached = self._snapshot_from_cache()
        if cached is not None:
            return cached

        snapshot = self.session.builder.build(self.base_path)
        self._save_snapshot(snapshot)
        return snapshot

    def _snapshot_from_cache(self) -> Optional[ProjectSnapshot]:
        payload = self.cache.get(self.session_id, PROJECT_FILES_KEY)
        if not payload:
            return None
        try:
            snapshot = ProjectSnapshot.from_cache(self.base_path, payload)
        except (ValidationError, TypeError) as e:
            logger.warning("Discarding unreadable cached snapshot: %s", e)
            return None

        root = Path(self.base_path)
        verified, report = verify_cached_files(
            snapshot.files,
            self.base_path,
            lambda path: self.session.builder.build_file(path, root),
        )
        if not verified:
            return None
        snapshot.files = verified
        logger.info(
            "Cached snapshot: %d verified, %d updated, %d removed",
            report.verified, report.updated, report.removed,
        )
        if report.updated or report.removed:
            self._save_snapshot(snapshot)
        return snapshot

    def _save_snapshot(self, snapshot: ProjectSnapshot) -> None:
        if not snapshot.is_empty():
            self.cache.set(self.session_id, PROJECT_FILES_KEY, snapshot.to_cache())

    # ------------------------------------------------------------------
    # Collaborators
    # ------------------------------------------------------------------

    def _fetch_project_summary(self, project_id: Optional[int]) -> Optional[str]:
        if self.project_store is None or project_id is None:
            return None
        try:
            return self.project_store.get_project_summary(project_id)
        except Exception as e:
            logger.warning("Could not load project summary for %s: %s", project_id, e)
            return None

    def _publish(
        self,
        prompt: str,
        result: ModificationResult,
        project_id: Optional[int],
        on_summary_ready: Optional[SummaryCallback],
    ) -> None:
        """Persist the outcome; every collaborator failure is logged only."""
        self._save_snapshot(self.session.snapshot)
        self.cache.append_to_list(
            self.session_id,
            MODIFICATION_HISTORY_KEY,
            {
                "prompt": prompt,
                "success": result.success,
                "approach": result.approach,
                "selected_files": result.selected_files,
                "added_files": result.added_files,
            },
        )
        self.cache.set(self.session_id, SESSION_SUMMARY_KEY, result.modification_summary)

        if self.project_store is not None and project_id is not None:
            try:
                self.project_store.save_modification_summary(project_id, result.modification_summary)
                self.project_store.save_project_summary(project_id, self.session.snapshot.summary().text)
            except Exception as e:
                logger.warning("Could not persist summaries for %s: %s", project_id, e)

        if on_summary_ready is not None:
            try:
                on_summary_ready(result.modification_summary)
            except Exception as e:
                logger.warning("Summary callback failed: %s", e)

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def analyze_scope(self, prompt: str, conversation_context: Optional[str] = None) -> ModificationScope:
        """Classify a prompt without executing anything."""
        self.session.snapshot = self.load_snapshot()
        return self.analyzer.analyze_scope(
            prompt,
            self.session.snapshot.summary().text,
            conversation_context or self.session.ledger.get_contextual_summary() or None,
        )

    def process_modification(
        self,
        prompt: str,
        conversation_context: Optional[str] = None,
        db_summary: Optional[str] = None,
        project_id: Optional[int] = None,
        on_summary_ready: Optional[SummaryCallback] = None,
    ) -> ModificationResult:
        """Apply one modification request to the project.

        Never raises: every failure, including a dispatcher bug, is returned
        as a ModificationResult with ``success=False`` and an error trail.

        Args:
            prompt: The user's request.
            conversation_context: Summary of earlier turns; defaults to the
                session ledger's contextual summary.
            db_summary: Stored project summary; fetched from the project
                store when omitted and a project_id is given.
            project_id: Key for the project store.
            on_summary_ready: Receives the ledger summary once available.

        Returns:
            The structured outcome.
        """
        if not prompt or not prompt.strip():
            return ModificationResult(
                success=False,
                approach="NONE",
                reasoning="Empty modification prompt",
                error="Empty modification prompt",
            )

        if db_summary is None:
            db_summary = self._fetch_project_summary(project_id)

        timer = CleanupTimer(self.session_id, self.cache, self.settings.cleanup_timeout_seconds)
        with timer:
            result = self._run_cascade(prompt, conversation_context, db_summary)

        result.modification_summary = self.session.ledger.get_summary()
        result.token_usage = self.session.token_tracker.get_stats()
        if result.success:
            self.session.progress(f"Modification complete via {result.approach}")
        else:
            self.session.progress(f"Modification failed: {result.error or result.reasoning}")
        self._publish(prompt, result, project_id, on_summary_ready)
        return result

    def _run_cascade(
        self,
        prompt: str,
        conversation_context: Optional[str],
        db_summary: Optional[str],
    ) -> ModificationResult:
        state = make_initial_state(prompt, conversation_context, db_summary)
        last: ModificationState = state
        try:
            graph = build_graph(
                self.session,
                self.load_snapshot,
                self.analyzer,
                self.executors,
                fallback=self.fallback,
                emergency=self.emergency,
            )
            for values in graph.stream(state, stream_mode="values"):
                last = values
        except Exception as e:
            logger.error("Dispatcher failed: %s", e)
            return self._recover(prompt, last, e)

        return to_modification_result(
            last["final_result"],
            last["tier_results"],
            last["tiers_attempted"],
            last["errors"],
        )

    def _recover(self, prompt: str, last: ModificationState, error: Exception) -> ModificationResult:
        """Last resort after an unhandled exception: one emergency attempt."""
        tier_results = list(last["tier_results"])
        tiers_attempted = list(last["tiers_attempted"])
        errors = [*last["errors"], f"dispatcher error: {error}"]

        if not last["emergency_attempted"]:
            scope = last["scope"] or ModificationScope(
                kind=ScopeKind.TARGETED_NODES,
                reasoning="Dispatcher failed before scope analysis completed",
            )
            try:
                emergency_result = self.emergency.execute(prompt, scope, self.session)
            except Exception as e:
                logger.error("Emergency creation raised: %s", e)
                emergency_result = StrategyResult.failure(
                    self.emergency.approach, f"Emergency creation raised: {e}"
                )
            if emergency_result.success:
                self.session.refresh_snapshot(emergency_result.changed_files)
            tier_results.append(emergency_result)
            tiers_attempted.append(f"{EMERGENCY}:{emergency_result.approach}")

        return to_modification_result(
            select_final_result(tier_results), tier_results, tiers_attempted, errors
        )

    def analyze_only(self, prompt: str) -> ComponentAnalysis:
        """Step 1 of the component workflow; writes nothing."""
        self.session.snapshot = self.load_snapshot()
        return self.component_system.analyze_only(prompt, self.session)

    def integrate_only(self, analysis: ComponentAnalysis) -> IntegrationReport:
        """Step 2 of the component workflow.

        Raises:
            IntegrationError: If ``analysis`` has no generated content.
        """
        self.session.snapshot = self.load_snapshot()
        report = self.component_system.integrate_only(analysis, self.session)
        changed = [*report.created_files, *report.modified_files]
        if changed:
            self.session.refresh_snapshot(changed)
            self._save_snapshot(self.session.snapshot)
        return report

    def get_session_stats(self) -> dict[str, Any]:
        return {
            "session_id": self.session_id,
            "ledger": self.session.ledger.get_detailed_stats(),
            "tokens": self.session.token_tracker.get_stats(),
        }
