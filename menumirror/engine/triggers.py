"""
Sync Triggers — Tree change notifications wired to the sync engine.

Every create/change/item event enqueues the menu on the request's
queue. A menu about to be deleted has its loop entry removed right away
(when the request is authorized) and any queued job for it dropped.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

from .executor import SyncExecutor
from .queue import SyncContext

logger = logging.getLogger(__name__)


class SyncTriggers:
    """A ``TreeListener`` bound to one request's sync context."""

    def __init__(self, context: SyncContext, executor: SyncExecutor, capability: str):
        self.context = context
        self.executor = executor
        self.capability = capability

    def on_created(self, menu_id: int) -> None:
        self.context.queue.enqueue(menu_id)

    def on_changed(self, menu_id: int) -> None:
        self.context.queue.enqueue(menu_id)

    def on_item_changed(self, menu_id: int, item_id: int) -> None:
        self.context.queue.enqueue(menu_id)

    def on_item_deleted(self, menu_id: int, item_id: int) -> None:
        self.context.queue.enqueue(menu_id)

    def on_deleting(self, menu_id: int, metadata: Dict[str, Any]) -> None:
        self.context.queue.discard(menu_id)

        slug = metadata.get("slug")
        if not slug:
            return
        if not self.context.authorized(self.capability):
            logger.debug(f"Not removing loop entry for '{slug}': request not authorized")
            return
        self.executor.remove_entry(slug)
