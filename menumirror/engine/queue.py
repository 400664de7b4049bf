"""
Sync Queue — Request-scoped collection of pending menu syncs.

Tree events fire before a request has finished saving items, so the
mirror write is deferred: events only enqueue a job, and the queue is
drained once at end-of-request.

Each menu is queued at most once per request. The first enqueue captures
the before-snapshot; later events for the same menu are absorbed and
never replace it.

## Usage

    context = SyncContext(origin=RequestOrigin.API, actor=actor, queue=queue)
    ...  # tree mutations call context.queue.enqueue(menu_id)
    context.finish(executor, capability="edit_theme_options")
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from ..access import Actor, RequestOrigin
from ..errors import SignalStoreError, TreeNotFound
from ..models.outcome import SyncOutcome
from ..observability.metrics import metrics
from ..persistence.audit import AuditWriter
from ..persistence.tree_store import JsonTreeStore
from ..signals import SignalStore, Topics
from .normalizer import NormalizedItem, TreeNormalizer

if TYPE_CHECKING:
    from .executor import SyncExecutor

logger = logging.getLogger(__name__)


@dataclass
class SyncJob:
    """One pending sync: which menu, and what it looked like before."""

    menu_id: int
    menu_slug: str
    before: Optional[List[NormalizedItem]] = None


class SyncQueue:
    """At most one job per menu, drained once."""

    def __init__(
        self,
        tree: JsonTreeStore,
        normalizer: TreeNormalizer,
        signals: SignalStore,
        audit: Optional[AuditWriter] = None,
    ):
        self.tree = tree
        self.normalizer = normalizer
        self.signals = signals
        self.audit = audit
        self._jobs: Dict[int, SyncJob] = {}

    def __len__(self) -> int:
        return len(self._jobs)

    def __contains__(self, menu_id: int) -> bool:
        return menu_id in self._jobs

    @property
    def jobs(self) -> List[SyncJob]:
        return list(self._jobs.values())

    def enqueue(self, menu_id: int) -> Optional[SyncJob]:
        """
        Queue a menu, capturing its current tree as the before-snapshot.

        Returns the job (new or already queued), or None if the menu
        does not exist.
        """
        existing = self._jobs.get(menu_id)
        if existing is not None:
            return existing

        try:
            menu = self.tree.get_menu(menu_id)
        except TreeNotFound:
            logger.warning(f"Not queueing sync for unknown menu {menu_id}", extra={"menu_id": menu_id})
            return None

        job = SyncJob(
            menu_id=menu_id,
            menu_slug=menu.slug,
            before=self.normalizer.snapshot(menu.items),
        )
        self._jobs[menu_id] = job
        self.signals.set(Topics.SYNC_IN_PROGRESS, menu.slug, True)

        logger.debug(
            f"Queued sync for '{menu.slug}' (snapshot={'yes' if job.before is not None else 'none'})",
            extra={"menu_id": menu_id, "menu_slug": menu.slug},
        )
        if self.audit:
            self.audit.emit(
                "sync_queued",
                menu.slug,
                menu_id=menu_id,
                details={"snapshot": job.before is not None},
            )
        return job

    def discard(self, menu_id: int) -> None:
        """Forget a queued menu without running it."""
        job = self._jobs.pop(menu_id, None)
        if job is not None:
            self.signals.delete(Topics.SYNC_IN_PROGRESS, job.menu_slug)

    def clear(self) -> None:
        self._jobs.clear()

    def drain(self, executor: SyncExecutor) -> List[SyncOutcome]:
        """
        Run every queued job, then empty the queue.

        ``sync_in_progress`` is always cleared; any outcome other than
        ok sets ``sync_failed``. One job's failure never stops the rest.
        """
        start = time.time()
        outcomes: List[SyncOutcome] = []
        try:
            for job in self.jobs:
                outcome = executor.execute(job)
                self._settle(job, outcome)
                outcomes.append(outcome)
        finally:
            self.clear()

        duration_ms = int((time.time() - start) * 1000)
        metrics.timing("drain_duration_ms", duration_ms)
        if outcomes:
            written = sum(1 for o in outcomes if o.succeeded)
            logger.info(f"Drained {len(outcomes)} sync job(s): {written} written ({duration_ms}ms)")
        return outcomes

    def _settle(self, job: SyncJob, outcome: SyncOutcome) -> None:
        """Post-run signal updates; a store fault is logged, not raised."""
        try:
            self.signals.delete(Topics.SYNC_IN_PROGRESS, job.menu_slug)
            if not outcome.succeeded:
                self.signals.set(Topics.SYNC_FAILED, job.menu_slug, True)
        except SignalStoreError as e:
            logger.error(
                f"Could not record outcome signals for '{job.menu_slug}': {e}",
                extra={"menu_id": job.menu_id, "menu_slug": job.menu_slug},
            )


@dataclass
class SyncContext:
    """Everything the end-of-request hook needs, scoped to one request."""

    queue: SyncQueue
    origin: RequestOrigin = RequestOrigin.PUBLIC
    actor: Actor = field(default_factory=Actor.anonymous)

    def authorized(self, capability: str) -> bool:
        return self.origin.may_drain and self.actor.can(capability)

    def finish(self, executor: SyncExecutor, capability: str) -> List[SyncOutcome]:
        """
        End-of-request hook.

        Drains only for admin/API requests whose actor holds
        ``capability``; otherwise the queue is dropped unrun.
        """
        if not len(self.queue):
            return []
        if not self.authorized(capability):
            logger.debug(
                f"Dropping {len(self.queue)} queued sync(s): "
                f"origin={self.origin.value} actor={self.actor.name}"
            )
            self.queue.clear()
            return []
        return self.queue.drain(executor)
