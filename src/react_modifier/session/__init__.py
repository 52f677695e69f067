"""Session-scoped state: ledger, token tracking, cache and cleanup."""

from react_modifier.session.cache import InMemorySessionCache, SafeSessionCache, SessionCache
from react_modifier.session.cleanup import CleanupTimer, verify_cached_files
from react_modifier.session.context import SessionContext
from react_modifier.session.ledger import ModificationLedger
from react_modifier.session.token_tracker import TokenTracker

__all__ = [
    "CleanupTimer",
    "InMemorySessionCache",
    "ModificationLedger",
    "SafeSessionCache",
    "SessionCache",
    "SessionContext",
    "TokenTracker",
    "verify_cached_files",
]
