"""Persistence backends: menus, the loop store and the audit ledger."""

from .audit import AuditWriter
from .mirror_store import JsonMirrorStore, MemoryMirrorStore, MirrorStore
from .tree_store import JsonTreeStore, NullListener, TreeListener, slugify

__all__ = [
    "AuditWriter",
    "JsonMirrorStore",
    "JsonTreeStore",
    "MemoryMirrorStore",
    "MirrorStore",
    "NullListener",
    "TreeListener",
    "slugify",
]
