"""
Sync engine: normalization, conflict detection, the request-scoped
queue and the executor that writes the loop store.
"""

from .detector import Decision, Verdict, decide
from .executor import SyncExecutor
from .keys import KeyMatch, resolve_key, sanitize_key
from .normalizer import TreeNormalizer, canonicalize, same_tree
from .queue import SyncContext, SyncJob, SyncQueue
from .status import Notice, NoticeState, StatusChecker, SyncStatus, resolve_notice
from .triggers import SyncTriggers

__all__ = [
    "Decision",
    "KeyMatch",
    "Notice",
    "NoticeState",
    "StatusChecker",
    "SyncContext",
    "SyncExecutor",
    "SyncJob",
    "SyncQueue",
    "SyncStatus",
    "SyncTriggers",
    "TreeNormalizer",
    "Verdict",
    "canonicalize",
    "decide",
    "resolve_key",
    "resolve_notice",
    "same_tree",
    "sanitize_key",
]
