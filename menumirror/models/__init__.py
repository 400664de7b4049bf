"""Pydantic models for menus, mirror entries and sync outcomes."""

from .mirror import LoopConfig, MirrorEntry, MirrorMapping, entry_key, entry_payload
from .outcome import RefusalReason, SyncOutcome
from .tree import Menu, SourceItem

__all__ = [
    "LoopConfig",
    "Menu",
    "MirrorEntry",
    "MirrorMapping",
    "RefusalReason",
    "SourceItem",
    "SyncOutcome",
    "entry_key",
    "entry_payload",
]
