"""
Signal Topics — Typed mailbox slots shared between requests.

Each topic fixes the value type and default lifetime of its signals, so
callers cannot write a string where a flag is expected. Every topic is
meaningful on its own; readers must not assume two topics change
together.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, Tuple, Type, TypeVar

T = TypeVar("T")

MINUTE = 60
HOUR = 60 * MINUTE


class NoticeType(str, Enum):
    """Why the mirror is not being written for a menu."""
    MIRROR_INACTIVE = "mirror_inactive"
    SLUG_CONFLICT = "slug_conflict"
    OUT_OF_SYNC = "out_of_sync"


@dataclass(frozen=True)
class SignalTopic(Generic[T]):
    """A named signal slot with a value type and default TTL."""

    name: str
    value_type: Type[T]
    ttl_seconds: int

    def validate(self, value: Any) -> T:
        """Check a value before it is written."""
        if self.value_type is bool:
            if not isinstance(value, bool):
                raise TypeError(f"Signal '{self.name}' expects bool, got {type(value).__name__}")
            return value
        if issubclass(self.value_type, Enum):
            return self.value_type(value)
        if not isinstance(value, self.value_type):
            raise TypeError(
                f"Signal '{self.name}' expects {self.value_type.__name__}, "
                f"got {type(value).__name__}"
            )
        return value

    def encode(self, value: T) -> Any:
        return value.value if isinstance(value, Enum) else value

    def decode(self, raw: Any) -> Optional[T]:
        """Turn a stored value back into the topic's type, or None if it doesn't fit."""
        try:
            return self.validate(raw)
        except (TypeError, ValueError):
            return None


class Topics:
    """All topics used by the sync engine."""

    SYNC_ENABLED: SignalTopic[bool] = SignalTopic("sync_enabled", bool, HOUR)
    SYNC_IN_PROGRESS: SignalTopic[bool] = SignalTopic("sync_in_progress", bool, MINUTE)
    SYNC_COMPLETED: SignalTopic[bool] = SignalTopic("sync_completed", bool, MINUTE)
    SYNC_FAILED: SignalTopic[bool] = SignalTopic("sync_failed", bool, MINUTE)
    OVERRIDE_ENABLED: SignalTopic[bool] = SignalTopic("sync_override", bool, 5 * MINUTE)
    CONFLICT_NOTICE: SignalTopic[NoticeType] = SignalTopic("sync_notice", NoticeType, HOUR)
    KEY_MIGRATION_PENDING: SignalTopic[str] = SignalTopic("needs_key_migration", str, HOUR)
    KEY_MIGRATED: SignalTopic[str] = SignalTopic("key_migrated", str, MINUTE)

    @classmethod
    def all(cls) -> Tuple[SignalTopic, ...]:
        return (
            cls.SYNC_ENABLED,
            cls.SYNC_IN_PROGRESS,
            cls.SYNC_COMPLETED,
            cls.SYNC_FAILED,
            cls.OVERRIDE_ENABLED,
            cls.CONFLICT_NOTICE,
            cls.KEY_MIGRATION_PENDING,
            cls.KEY_MIGRATED,
        )
