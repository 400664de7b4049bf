"""
Sync Executor — Write one queued menu into the loop store.

Steps for a job:
1. Read the loop store (uninitialized → ``mirror_inactive`` notice, skip)
2. Resolve the entry for the slug and run the conflict check
3. On refusal, record a notice and skip
4. Normalize the CURRENT tree (never the snapshot) and write the entry
   under the raw slug, with the sanitized key as its declared key
5. Clear override and notice, set ``sync_enabled`` and ``sync_completed``

Unexpected exceptions are caught here and turned into a failed outcome,
so one bad menu never aborts the rest of a drain.

Deletion propagation (``remove_entry``) bypasses the queue: it has to
run while the menu's slug can still be looked up.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..errors import TreeNotFound, WriteFault
from ..models.mirror import LoopConfig, MirrorEntry
from ..models.outcome import RefusalReason, SyncOutcome
from ..observability.metrics import metrics
from ..persistence.audit import AuditWriter
from ..persistence.mirror_store import MirrorStore
from ..persistence.tree_store import JsonTreeStore
from ..signals import NoticeType, SignalStore, Topics
from .detector import Verdict, decide
from .keys import resolve_key, sanitize_key
from .normalizer import TreeNormalizer
from .queue import SyncJob

logger = logging.getLogger(__name__)

_NOTICE_FOR_REFUSAL = {
    RefusalReason.COLLISION: NoticeType.SLUG_CONFLICT,
    RefusalReason.EXTERNAL_DRIFT: NoticeType.OUT_OF_SYNC,
    RefusalReason.UNVERIFIABLE: NoticeType.OUT_OF_SYNC,
}


class SyncExecutor:
    """Runs sync jobs against the tree store and loop store."""

    def __init__(
        self,
        tree: JsonTreeStore,
        mirror: MirrorStore,
        signals: SignalStore,
        normalizer: Optional[TreeNormalizer] = None,
        audit: Optional[AuditWriter] = None,
    ):
        self.tree = tree
        self.mirror = mirror
        self.signals = signals
        self.normalizer = normalizer or TreeNormalizer()
        self.audit = audit

    def execute(self, job: SyncJob) -> SyncOutcome:
        """Run one job. Never raises."""
        try:
            outcome = self._execute(job)
        except Exception as e:
            fault = WriteFault(job.menu_slug, e)
            logger.error(
                str(fault),
                exc_info=True,
                extra={"menu_slug": job.menu_slug, "menu_id": job.menu_id},
            )
            outcome = SyncOutcome.failed(
                job.menu_slug,
                error_code="write_fault",
                error_message=str(fault),
                menu_id=job.menu_id,
            )

        self._record(outcome)
        return outcome

    def _execute(self, job: SyncJob) -> SyncOutcome:
        slug = job.menu_slug

        entries = self.mirror.read()
        if entries is None:
            self.signals.set(Topics.CONFLICT_NOTICE, slug, NoticeType.MIRROR_INACTIVE)
            return SyncOutcome.skipped(slug, RefusalReason.MIRROR_UNAVAILABLE, menu_id=job.menu_id)

        try:
            menu = self.tree.get_menu(job.menu_id)
        except TreeNotFound:
            return SyncOutcome.skipped(slug, RefusalReason.MENU_MISSING, menu_id=job.menu_id)

        match = resolve_key(entries, slug)
        decision = decide(
            match,
            job.before,
            override=self.signals.is_set(Topics.OVERRIDE_ENABLED, slug),
            hint=self.signals.get(Topics.SYNC_ENABLED, slug),
        )

        if not decision.allowed:
            self.signals.set(Topics.CONFLICT_NOTICE, slug, _NOTICE_FOR_REFUSAL[decision.reason])
            logger.warning(
                f"Not syncing '{slug}': {decision.verdict.value}",
                extra={"menu_slug": slug, "menu_id": job.menu_id},
            )
            return SyncOutcome.skipped(slug, decision.reason, menu_id=job.menu_id)

        data = self.normalizer.normalize(menu.items)
        new_key = sanitize_key(slug)
        entry = MirrorEntry(name=menu.name, key=new_key, config=LoopConfig(data=data))

        entries[slug] = entry.to_storage()
        self.mirror.write(entries)
        metrics.set_gauge("mirror_entries", len(entries))

        self.signals.delete(Topics.OVERRIDE_ENABLED, slug)
        self.signals.delete(Topics.CONFLICT_NOTICE, slug)
        self.signals.set(Topics.SYNC_ENABLED, slug, True)
        self.signals.set(Topics.SYNC_COMPLETED, slug, True)

        migrated_from = None
        if slug != new_key:
            previous_key = match.declared_key if match else None
            if previous_key != new_key:
                self.signals.set(Topics.KEY_MIGRATED, slug, new_key)
                migrated_from = previous_key
            self.signals.delete(Topics.KEY_MIGRATION_PENDING, slug)

        logger.info(
            f"Synced '{slug}' → key '{new_key}' ({len(data)} top-level items, {decision.verdict.value})",
            extra={"menu_slug": slug, "menu_id": job.menu_id},
        )

        details = {"key": new_key, "verdict": decision.verdict.value, "items": len(data)}
        if migrated_from:
            details["migrated_from"] = migrated_from
        if decision.verdict == Verdict.OVERRIDE:
            details["override"] = True
        return SyncOutcome.ok(slug, menu_id=job.menu_id, details=details)

    def _record(self, outcome: SyncOutcome) -> None:
        labels = {"outcome": outcome.status}
        if outcome.reason is not None:
            labels["reason"] = outcome.reason.value
        metrics.increment("sync_total", labels=labels)
        if self.audit:
            self.audit.emit_outcome(outcome)

    def remove_entry(self, menu_slug: str) -> bool:
        """
        Remove the loop entry matching a menu being deleted.

        Returns True if an entry was removed. A missing store or entry is
        a no-op.
        """
        entries = self.mirror.read()
        if entries is None:
            return False

        match = resolve_key(entries, menu_slug)
        if match is None:
            logger.debug(f"No loop entry for deleted menu '{menu_slug}'", extra={"menu_slug": menu_slug})
            return False

        del entries[match.storage_key]
        self.mirror.write(entries)
        metrics.set_gauge("mirror_entries", len(entries))

        logger.info(
            f"Removed loop entry '{match.storage_key}' for deleted menu '{menu_slug}'",
            extra={"menu_slug": menu_slug},
        )
        if self.audit:
            self.audit.emit(
                "mirror_entry_removed",
                menu_slug,
                details={"storage_key": match.storage_key},
            )
        return True
