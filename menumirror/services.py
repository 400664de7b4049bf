"""
Services — The stores and engine objects for one project root.

Built once from ``SyncSettings`` and shared by the admin server and the
CLI. Anything request-scoped (the sync queue) is created per request
through ``new_context``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .access import Actor, RequestOrigin, TokenVerifier
from .config import SyncSettings
from .engine import StatusChecker, SyncContext, SyncExecutor, SyncQueue, SyncTriggers, TreeNormalizer
from .persistence import AuditWriter, JsonMirrorStore, JsonTreeStore, MirrorStore
from .signals import FileSignalStore, SignalStore

logger = logging.getLogger(__name__)

# Action name the override and completion-poll tokens are bound to
SYNC_ACTION = "menu_sync_override"


@dataclass
class Services:
    settings: SyncSettings
    tree: JsonTreeStore
    mirror: MirrorStore
    signals: SignalStore
    normalizer: TreeNormalizer
    audit: AuditWriter
    executor: SyncExecutor
    status: StatusChecker
    tokens: TokenVerifier

    @classmethod
    def from_settings(
        cls,
        settings: SyncSettings,
        mirror: Optional[MirrorStore] = None,
        signals: Optional[SignalStore] = None,
        clock: Callable[[], float] = time.time,
    ) -> "Services":
        tree = JsonTreeStore(settings.menus_path)
        if mirror is None:
            mirror = JsonMirrorStore(settings.mirror_path)
        if signals is None:
            signals = FileSignalStore(
                settings.signals_path,
                ttl_overrides=settings.signal_ttls,
                clock=clock,
            )
        normalizer = TreeNormalizer()
        audit = AuditWriter(settings.audit_path)

        logger.debug(f"Services ready (state_dir={settings.state_dir})")
        return cls(
            settings=settings,
            tree=tree,
            mirror=mirror,
            signals=signals,
            normalizer=normalizer,
            audit=audit,
            executor=SyncExecutor(tree, mirror, signals, normalizer, audit),
            status=StatusChecker(tree, mirror, signals, normalizer),
            tokens=TokenVerifier(settings.secret),
        )

    def new_context(self, origin: RequestOrigin, actor: Actor) -> SyncContext:
        queue = SyncQueue(self.tree, self.normalizer, self.signals, self.audit)
        return SyncContext(queue=queue, origin=origin, actor=actor)

    def triggers(self, context: SyncContext) -> SyncTriggers:
        return SyncTriggers(context, self.executor, self.settings.capability)

    def finish(self, context: SyncContext):
        """End-of-request drain for a context."""
        return context.finish(self.executor, self.settings.capability)
