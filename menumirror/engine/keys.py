"""
Key Resolver — Find a menu's entry in the loop store.

Loop keys are addressed with dot paths in templates, so a declared key
may not contain hyphens. ``sanitize_key`` maps them to underscores.

Resolution order for a slug:
    1. An entry stored under the slug itself (wins outright)
    2. The first entry whose declared ``key`` equals the slug

A match found by rule 2 is a collision: another storage key already
claims the name.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..models.mirror import MirrorMapping, entry_key

DISALLOWED = "-"
SUBSTITUTE = "_"


def sanitize_key(key: str) -> str:
    """Make a key safe for dot-path addressing. Idempotent."""
    return key.replace(DISALLOWED, SUBSTITUTE)


@dataclass(frozen=True)
class KeyMatch:
    """A loop entry found for a slug."""

    storage_key: str
    entry: Dict[str, Any]
    slug: str

    @property
    def is_collision(self) -> bool:
        return self.storage_key != self.slug

    @property
    def declared_key(self) -> Optional[str]:
        return entry_key(self.entry)

    @property
    def needs_migration(self) -> bool:
        """True when the declared key on file is not yet sanitized."""
        key = self.declared_key
        return key is not None and key != sanitize_key(key)


def resolve_key(entries: MirrorMapping, slug: str) -> Optional[KeyMatch]:
    """Locate the entry for ``slug``; None when nothing matches."""
    if slug in entries:
        return KeyMatch(storage_key=slug, entry=entries[slug], slug=slug)
    for storage_key, entry in entries.items():
        if entry_key(entry) == slug:
            return KeyMatch(storage_key=storage_key, entry=entry, slug=slug)
    return None
