"""Tests for the session cache, cleanup timer and SessionContext."""

import threading
from unittest.mock import MagicMock

import pytest

from react_modifier.agents.exceptions import LLMError
from react_modifier.models import ChangeType
from react_modifier.session.cache import InMemorySessionCache, SafeSessionCache, SessionCache
from react_modifier.session.cleanup import CleanupTimer, verify_cached_files

from conftest import make_llm, make_session


class TestInMemorySessionCache:
    def test_set_get_roundtrip_copies(self):
        cache = InMemorySessionCache()
        value = {"files": ["a"]}
        cache.set("s1", "k", value)
        value["files"].append("b")
        assert cache.get("s1", "k") == {"files": ["a"]}

    def test_missing_key_is_none(self):
        assert InMemorySessionCache().get("s1", "nope") is None

    def test_append_to_list(self):
        cache = InMemorySessionCache()
        cache.append_to_list("s1", "history", 1)
        cache.append_to_list("s1", "history", 2)
        assert cache.get("s1", "history") == [1, 2]

    def test_append_replaces_non_list(self):
        cache = InMemorySessionCache()
        cache.set("s1", "history", "oops")
        cache.append_to_list("s1", "history", 1)
        assert cache.get("s1", "history") == [1]

    def test_clear_is_per_session(self):
        cache = InMemorySessionCache()
        cache.set("s1", "k", 1)
        cache.set("s2", "k", 2)
        cache.clear("s1")
        assert cache.sessions() == ["s2"]

    def test_satisfies_protocol(self):
        assert isinstance(InMemorySessionCache(), SessionCache)


class TestSafeSessionCache:
    def test_no_backend(self):
        cache = SafeSessionCache(None)
        assert cache.available is False
        assert cache.get("s", "k") is None
        assert cache.set("s", "k", 1) is False
        assert cache.append_to_list("s", "k", 1) is False
        assert cache.clear("s") is False

    def test_backend_failures_degrade(self):
        backend = MagicMock()
        backend.get.side_effect = ConnectionError("down")
        backend.set.side_effect = ConnectionError("down")
        backend.append_to_list.side_effect = ConnectionError("down")
        backend.clear.side_effect = ConnectionError("down")
        cache = SafeSessionCache(backend)
        assert cache.get("s", "k") is None
        assert cache.set("s", "k", 1) is False
        assert cache.append_to_list("s", "k", 1) is False
        assert cache.clear("s") is False

    def test_backend_success(self):
        cache = SafeSessionCache(InMemorySessionCache())
        assert cache.set("s", "k", 1) is True
        assert cache.get("s", "k") == 1


class TestCleanupTimer:
    def test_run_cleanup_removes_state(self, tmp_path):
        backend = InMemorySessionCache()
        backend.set("s1", "k", 1)
        temp_dir = tmp_path / "work"
        temp_dir.mkdir()
        (temp_dir / "f.txt").write_text("x")
        callback = MagicMock()

        timer = CleanupTimer("s1", SafeSessionCache(backend), on_timeout=callback)
        timer.register_temp_dir(temp_dir)
        timer.run_cleanup()

        assert timer.fired is True
        assert not temp_dir.exists()
        assert backend.get("s1", "k") is None
        callback.assert_called_once_with("s1")

    def test_fires_after_timeout(self):
        fired = threading.Event()
        timer = CleanupTimer(
            "s1", SafeSessionCache(None), timeout_seconds=0.01,
            on_timeout=lambda _: fired.set(),
        )
        timer.start()
        assert fired.wait(timeout=5)

    def test_context_manager_cancels(self):
        callback = MagicMock()
        with CleanupTimer("s1", SafeSessionCache(None), timeout_seconds=60, on_timeout=callback) as timer:
            assert timer._timer is not None
        assert timer._timer is None
        assert timer.fired is False
        callback.assert_not_called()


class TestVerifyCachedFiles:
    def test_unchanged_files_verified(self, session, react_project):
        files = dict(session.snapshot.files)
        verified, report = verify_cached_files(
            files, str(react_project), lambda p: session.builder.build_file(p, react_project)
        )
        assert report.total_cached == len(files)
        assert report.verified == len(files)
        assert report.issues == []
        assert set(verified) == set(files)

    def test_drifted_content_rebuilt(self, session, react_project):
        files = dict(session.snapshot.files)
        (react_project / "src/pages/Home.tsx").write_text("const Home = () => null;\nexport default Home;\n")
        verified, report = verify_cached_files(
            files, str(react_project), lambda p: session.builder.build_file(p, react_project)
        )
        assert report.updated == 1
        assert "Welcome" not in verified["src/pages/Home.tsx"].content

    def test_missing_file_dropped(self, session, react_project):
        files = dict(session.snapshot.files)
        (react_project / "src/pages/Home.tsx").unlink()
        verified, report = verify_cached_files(
            files, str(react_project), lambda p: session.builder.build_file(p, react_project)
        )
        assert "src/pages/Home.tsx" not in verified
        assert report.removed == 1
        assert report.issues == ["Missing on disk: src/pages/Home.tsx"]

    def test_path_without_src_prefix_relocated(self, session, react_project):
        record = session.snapshot.get("src/App.tsx")
        verified, report = verify_cached_files(
            {"App.tsx": record}, str(react_project),
            lambda p: session.builder.build_file(p, react_project),
        )
        assert list(verified) == ["src/App.tsx"]
        assert report.updated == 1


class TestSessionContext:
    def test_ask_llm_without_client(self, session):
        with pytest.raises(LLMError, match="No LLM client configured for scope-analysis"):
            session.ask_llm("prompt", "scope-analysis")

    def test_ask_llm_records_usage(self, react_project):
        session = make_session(react_project, llm=make_llm("answer"))
        assert session.ask_llm("prompt", "full-file") == "answer"
        assert session.token_tracker.api_calls == 1
        assert session.token_tracker.get_operation_counts() == {"full-file": 1}
        _, kwargs = session.llm.complete.call_args
        assert kwargs["max_tokens"] == 4000
        assert kwargs["temperature"] == 0.1

    def test_ask_llm_wraps_provider_errors(self, react_project):
        llm = MagicMock()
        llm.complete.side_effect = RuntimeError("rate limited")
        session = make_session(react_project, llm=llm)
        with pytest.raises(LLMError, match="rate limited"):
            session.ask_llm("prompt", "full-file")
        assert session.token_tracker.api_calls == 0

    def test_resolve_rejects_escape(self, session):
        with pytest.raises(ValueError, match="escapes project root"):
            session.resolve("../outside.txt")

    def test_write_and_read(self, session):
        session.write_file("src/new/Thing.tsx", "x")
        assert session.read_file("src/new/Thing.tsx") == "x"

    def test_record_goes_to_ledger(self, session):
        session.record(ChangeType.MODIFIED, "src/App.tsx", "d", approach="FULL_FILE")
        assert session.ledger.changes[0].approach == "FULL_FILE"

    def test_progress_callback_failure_ignored(self, session):
        session.on_progress = MagicMock(side_effect=RuntimeError("ui gone"))
        session.progress("working")
        session.on_progress.assert_called_once_with("working")

    def test_refresh_snapshot(self, session, react_project):
        (react_project / "src/pages/About.tsx").write_text(
            "const About = () => <div>About</div>;\nexport default About;\n"
        )
        session.refresh_snapshot(["src/pages/About.tsx"])
        assert "src/pages/About.tsx" in session.snapshot
