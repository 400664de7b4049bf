"""
Sync Status — Editor-load check and the notice shown to the user.

``StatusChecker.check`` runs when a menu is opened for editing. It
compares the current tree with the loop store and records the
``sync_enabled`` hint and a conflict notice for later requests.

``resolve_notice`` turns the live signals for a slug into one named
notice state, in priority order:

    MIRROR_INACTIVE    loop store missing; no override control
    SLUG_CONFLICT      notice set, override off; override control shown
    OUT_OF_SYNC        notice set, override off; override control shown
    SYNCING            sync in progress or override on (dismissible)
    MIGRATION_PENDING  only a declared-key migration is pending
    IDLE               nothing to show

The first three clear a stale ``sync_in_progress`` flag, since no write
is coming for them.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Dict, Optional

from ..models.mirror import entry_payload
from ..persistence.mirror_store import MirrorStore
from ..persistence.tree_store import JsonTreeStore
from ..signals import NoticeType, SignalStore, Topics
from .keys import resolve_key, sanitize_key
from .normalizer import TreeNormalizer, same_tree

logger = logging.getLogger(__name__)

MESSAGES = {
    NoticeType.MIRROR_INACTIVE: "Please initialize the loop store to sync menus.",
    NoticeType.SLUG_CONFLICT: (
        "The key '{slug}' is already used by another loop. This menu will be saved "
        "but not synced, to avoid overwriting that loop."
    ),
    NoticeType.OUT_OF_SYNC: (
        "The loop for '{slug}' is no longer in sync. This can happen if the loop was "
        "edited, or if pages referenced by this menu changed. This menu will be saved "
        "but not synced."
    ),
}
OVERRIDE_LABEL = "Allow syncing despite the conflict"
SYNCING_MESSAGE = "Syncing..."
MIGRATION_MESSAGE = (
    "The menu key '{old_key}' contains hyphens which are no longer supported. "
    "Saving this menu will update the key to '{new_key}'. After this menu is synced, "
    "please update any templates that reference this loop."
)


class NoticeState(str, Enum):
    MIRROR_INACTIVE = "mirror_inactive"
    SLUG_CONFLICT = "slug_conflict"
    OUT_OF_SYNC = "out_of_sync"
    SYNCING = "syncing"
    MIGRATION_PENDING = "migration_pending"
    IDLE = "idle"

    @property
    def shows_override(self) -> bool:
        return self in (NoticeState.SLUG_CONFLICT, NoticeState.OUT_OF_SYNC)

    @property
    def dismissible(self) -> bool:
        return self in (NoticeState.SYNCING, NoticeState.MIGRATION_PENDING)

    @property
    def is_syncing(self) -> bool:
        return self == NoticeState.SYNCING


@dataclass
class Notice:
    """What the status endpoint renders for one slug."""

    state: NoticeState
    menu_slug: str
    menu_name: str = ""
    message: str = ""
    show_override: bool = False
    dismissible: bool = False
    override_enabled: bool = False
    migration: Optional[Dict[str, str]] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["state"] = self.state.value
        return data


def resolve_notice(signals: SignalStore, slug: str, menu_name: str = "") -> Notice:
    """Collapse the live signals for ``slug`` into one notice."""
    notice = signals.get(Topics.CONFLICT_NOTICE, slug)
    override = signals.is_set(Topics.OVERRIDE_ENABLED, slug)
    in_progress = signals.is_set(Topics.SYNC_IN_PROGRESS, slug)
    old_key = signals.get(Topics.KEY_MIGRATION_PENDING, slug)

    migration = None
    if old_key is not None:
        new_key = sanitize_key(old_key)
        migration = {
            "old_key": old_key,
            "new_key": new_key,
            "message": MIGRATION_MESSAGE.format(old_key=old_key, new_key=new_key),
        }

    if notice == NoticeType.MIRROR_INACTIVE:
        signals.delete(Topics.SYNC_IN_PROGRESS, slug)
        state = NoticeState.MIRROR_INACTIVE
    elif notice is not None and not override:
        signals.delete(Topics.SYNC_IN_PROGRESS, slug)
        state = NoticeState(notice.value)
    elif in_progress or override:
        state = NoticeState.SYNCING
    elif migration is not None:
        state = NoticeState.MIGRATION_PENDING
    else:
        state = NoticeState.IDLE

    if state == NoticeState.SYNCING:
        message = SYNCING_MESSAGE
    elif state == NoticeState.MIGRATION_PENDING:
        message = migration["message"]
    elif state == NoticeState.IDLE:
        message = ""
    else:
        message = MESSAGES[NoticeType(state.value)].format(slug=slug)

    return Notice(
        state=state,
        menu_slug=slug,
        menu_name=menu_name,
        message=message,
        show_override=state.shows_override,
        dismissible=state.dismissible,
        override_enabled=override,
        migration=migration,
    )


@dataclass
class SyncStatus:
    """Result of an editor-load check."""

    menu_slug: str
    enabled: bool
    notice: Optional[NoticeType] = None
    needs_migration: Optional[str] = None


class StatusChecker:
    """Compares a menu with its loop entry and records the result as signals."""

    def __init__(
        self,
        tree: JsonTreeStore,
        mirror: MirrorStore,
        signals: SignalStore,
        normalizer: Optional[TreeNormalizer] = None,
    ):
        self.tree = tree
        self.mirror = mirror
        self.signals = signals
        self.normalizer = normalizer or TreeNormalizer()

    def check(self, menu_id: int) -> SyncStatus:
        """Run the check for a menu. Raises TreeNotFound for unknown ids."""
        menu = self.tree.get_menu(menu_id)
        slug = menu.slug
        current = self.normalizer.normalize(menu.items)

        entries = self.mirror.read()
        if entries is None:
            return self._record(SyncStatus(slug, False, NoticeType.MIRROR_INACTIVE))

        match = resolve_key(entries, slug)
        if match is None:
            return self._record(SyncStatus(slug, True))

        needs_migration = match.declared_key if match.needs_migration else None
        if needs_migration:
            self.signals.set(Topics.KEY_MIGRATION_PENDING, slug, needs_migration)

        if match.is_collision:
            return self._record(SyncStatus(slug, False, NoticeType.SLUG_CONFLICT, needs_migration))

        stored = entry_payload(match.entry)
        if same_tree(current, stored):
            return self._record(SyncStatus(slug, True, None, needs_migration))

        if not current and stored:
            notice = NoticeType.SLUG_CONFLICT
        else:
            notice = NoticeType.OUT_OF_SYNC
        return self._record(SyncStatus(slug, False, notice, needs_migration))

    def _record(self, status: SyncStatus) -> SyncStatus:
        self.signals.set(Topics.SYNC_ENABLED, status.menu_slug, status.enabled)
        if status.notice is None:
            self.signals.delete(Topics.CONFLICT_NOTICE, status.menu_slug)
        else:
            self.signals.set(Topics.CONFLICT_NOTICE, status.menu_slug, status.notice)
        logger.info(
            f"Status for '{status.menu_slug}': enabled={status.enabled} "
            f"notice={status.notice.value if status.notice else 'none'}",
            extra={"menu_slug": status.menu_slug},
        )
        return status
