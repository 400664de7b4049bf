"""
Conflict Detector — Decide whether writing a menu into the loop store is safe.

The check is optimistic concurrency by content: the tree as it was
before this request's first edit must still equal what the loop store
holds. The menu's new state is never compared, only the old one.

## Verdicts

    FIRST_SYNC      no entry for the slug yet             → write
    OVERRIDE        user override is active               → write
    SNAPSHOT_MATCH  before-snapshot equals stored payload → write
    COLLISION       entry found under another storage key → refuse
    UNVERIFIABLE    entry exists, no before-snapshot      → refuse
    EXTERNAL_DRIFT  before-snapshot differs from payload  → refuse

The cached ``sync_enabled`` hint is recorded on the decision but never
changes the verdict: a stale ``true`` cannot authorize an unproven
write and a stale ``false`` cannot block a proven one.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from ..models.mirror import entry_payload
from ..models.outcome import RefusalReason
from .keys import KeyMatch
from .normalizer import NormalizedItem, canonicalize

logger = logging.getLogger(__name__)


class Verdict(str, Enum):
    FIRST_SYNC = "first_sync"
    OVERRIDE = "override"
    SNAPSHOT_MATCH = "snapshot_match"
    COLLISION = "collision"
    UNVERIFIABLE = "unverifiable"
    EXTERNAL_DRIFT = "external_drift"


_REFUSALS = {
    Verdict.COLLISION: RefusalReason.COLLISION,
    Verdict.UNVERIFIABLE: RefusalReason.UNVERIFIABLE,
    Verdict.EXTERNAL_DRIFT: RefusalReason.EXTERNAL_DRIFT,
}


@dataclass(frozen=True)
class Decision:
    """Outcome of the conflict check for one job."""

    verdict: Verdict
    hint: Optional[bool] = None

    @property
    def allowed(self) -> bool:
        return self.verdict not in _REFUSALS

    @property
    def reason(self) -> Optional[RefusalReason]:
        return _REFUSALS.get(self.verdict)


def decide(
    match: Optional[KeyMatch],
    before: Optional[List[NormalizedItem]],
    override: bool = False,
    hint: Optional[bool] = None,
) -> Decision:
    """
    Run the conflict check.

    Args:
        match: Resolved loop entry for the slug, or None
        before: Snapshot captured before the first edit, or None
        override: Whether the user override signal is set
        hint: Cached ``sync_enabled`` signal from editor load, if any

    Returns:
        Decision with the verdict
    """
    if match is None:
        return Decision(Verdict.FIRST_SYNC, hint)

    if override:
        return Decision(Verdict.OVERRIDE, hint)

    if match.is_collision:
        return Decision(Verdict.COLLISION, hint)

    if before is None:
        return Decision(Verdict.UNVERIFIABLE, hint)

    if canonicalize(before) != canonicalize(entry_payload(match.entry)):
        if hint is True:
            logger.info(
                f"Loop entry for '{match.slug}' changed since the editor was opened",
                extra={"menu_slug": match.slug},
            )
        return Decision(Verdict.EXTERNAL_DRIFT, hint)

    return Decision(Verdict.SNAPSHOT_MATCH, hint)
