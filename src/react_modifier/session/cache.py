"""Session key-value cache interface and best-effort wrapper."""

import copy
import logging
import threading
from typing import Any, Optional, Protocol, runtime_checkable

logger = logging.getLogger(__name__)

PROJECT_FILES_KEY = "project_files"
MODIFICATION_HISTORY_KEY = "modification_history"
SESSION_SUMMARY_KEY = "session_summary"


@runtime_checkable
class SessionCache(Protocol):
    """Key-value store scoped by session id (e.g. backed by Redis)."""

    def get(self, session_id: str, key: str) -> Any: ...

    def set(self, session_id: str, key: str, value: Any) -> None: ...

    def append_to_list(self, session_id: str, list_key: str, item: Any) -> None: ...

    def clear(self, session_id: str) -> None: ...


class InMemorySessionCache:
    """Process-local SessionCache, safe to share between threads."""

    def __init__(self) -> None:
        self._data: dict[str, dict[str, Any]] = {}
        self._lock = threading.Lock()

    def get(self, session_id: str, key: str) -> Any:
        with self._lock:
            return copy.deepcopy(self._data.get(session_id, {}).get(key))

    def set(self, session_id: str, key: str, value: Any) -> None:
        with self._lock:
            self._data.setdefault(session_id, {})[key] = copy.deepcopy(value)

    def append_to_list(self, session_id: str, list_key: str, item: Any) -> None:
        with self._lock:
            bucket = self._data.setdefault(session_id, {})
            existing = bucket.get(list_key)
            if not isinstance(existing, list):
                existing = []
                bucket[list_key] = existing
            existing.append(copy.deepcopy(item))

    def clear(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)

    def sessions(self) -> list[str]:
        with self._lock:
            return list(self._data)


class SafeSessionCache:
    """Wraps any SessionCache so failures never reach the caller.

    Reads degrade to ``None`` and writes to no-ops; callers treat a miss as
    "rebuild from the filesystem".
    """

    def __init__(self, cache: Optional[SessionCache]) -> None:
        self._cache = cache

    @property
    def available(self) -> bool:
        return self._cache is not None

    def get(self, session_id: str, key: str) -> Any:
        if self._cache is None:
            return None
        try:
            return self._cache.get(session_id, key)
        except Exception as exc:
            logger.warning("Cache get failed for %s/%s: %s", session_id, key, exc)
            return None

    def set(self, session_id: str, key: str, value: Any) -> bool:
        if self._cache is None:
            return False
        try:
            self._cache.set(session_id, key, value)
            return True
        except Exception as exc:
            logger.warning("Cache set failed for %s/%s: %s", session_id, key, exc)
            return False

    def append_to_list(self, session_id: str, list_key: str, item: Any) -> bool:
        if self._cache is None:
            return False
        try:
            self._cache.append_to_list(session_id, list_key, item)
            return True
        except Exception as exc:
            logger.warning("Cache append failed for %s/%s: %s", session_id, list_key, exc)
            return False

    def clear(self, session_id: str) -> bool:
        if self._cache is None:
            return False
        try:
            self._cache.clear(session_id)
            return True
        except Exception as exc:
            logger.warning("Cache clear failed for %s: %s", session_id, exc)
            return False
