"""Typed exception hierarchy for menu mirroring.

Refusals decided by the conflict detector are not exceptions; they are
``RefusalReason`` values carried in a skipped outcome. Exceptions here cover
lookups that cannot proceed and faults caught at the drain boundary.
"""


class MenuMirrorError(Exception):
    """Base exception for all menu mirror errors."""
    pass


class TreeNotFound(MenuMirrorError):
    """Raised when a menu id does not resolve to a menu in the tree store."""

    def __init__(self, menu_id: int):
        super().__init__(f"Menu {menu_id} not found")
        self.menu_id = menu_id


class WriteFault(MenuMirrorError):
    """Wraps an unexpected fault raised while normalizing or writing a mirror entry."""

    def __init__(self, menu_slug: str, cause: BaseException):
        super().__init__(f"Sync of '{menu_slug}' failed: {cause}")
        self.menu_slug = menu_slug
        self.cause = cause


class SignalStoreError(MenuMirrorError):
    """Raised when the signal file cannot be locked or parsed for a write."""
    pass
