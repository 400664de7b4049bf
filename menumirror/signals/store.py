"""
Signal Store — TTL'd key-value mailbox keyed by (topic, menu slug).

Two backends share the typed API:

- ``MemorySignalStore``: process-local, for tests and single-process use.
- ``FileSignalStore``: a JSON file re-read on every operation so separate
  requests (and processes) see each other's writes.

Semantics are last-writer-wins per slot with no compare-and-swap.
Expired signals read as absent and are purged on the next write.

## Usage

    from menumirror.signals import FileSignalStore, Topics

    signals = FileSignalStore(Path("state/signals.json"))
    signals.set(Topics.SYNC_IN_PROGRESS, "main-menu", True)
    if signals.pop(Topics.SYNC_COMPLETED, "main-menu"):
        ...
"""

from __future__ import annotations

import fcntl
import json
import logging
import os
import tempfile
import threading
import time
from abc import ABC, abstractmethod
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from ..errors import SignalStoreError
from .topics import SignalTopic, Topics

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Stored record: {"value": <json value>, "expires_at": <epoch seconds>}
Record = Dict[str, Any]


def _slot(topic: SignalTopic, key: str) -> str:
    return f"{topic.name}:{key}"


class SignalStore(ABC):
    """Typed front-end over a raw slot → record backend."""

    def __init__(
        self,
        ttl_overrides: Optional[Dict[str, int]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_overrides = dict(ttl_overrides or {})
        self.clock = clock

    # ─── Backend ────────────────────────────────────────────

    @abstractmethod
    def _load(self, slot: str) -> Optional[Record]:
        """Return the raw record for a slot, expired or not."""

    @abstractmethod
    def _store(self, slot: str, record: Record) -> None:
        """Write a record, replacing any previous one."""

    @abstractmethod
    def _remove(self, slot: str) -> None:
        """Drop a slot if present."""

    # ─── Typed API ──────────────────────────────────────────

    def ttl_for(self, topic: SignalTopic) -> int:
        return int(self.ttl_overrides.get(topic.name, topic.ttl_seconds))

    def set(self, topic: SignalTopic[T], key: str, value: T, ttl: Optional[int] = None) -> None:
        """Write a signal. ``ttl`` defaults to the topic's lifetime."""
        checked = topic.validate(value)
        lifetime = ttl if ttl is not None else self.ttl_for(topic)
        self._store(_slot(topic, key), {
            "value": topic.encode(checked),
            "expires_at": self.clock() + lifetime,
        })
        logger.debug(
            f"signal set {topic.name}[{key}]={checked!r} ttl={lifetime}s",
            extra={"topic": topic.name, "menu_slug": key},
        )

    def get(self, topic: SignalTopic[T], key: str) -> Optional[T]:
        """Read a signal; None when absent, expired or of the wrong type."""
        record = self._load(_slot(topic, key))
        if record is None:
            return None
        if record.get("expires_at", 0) <= self.clock():
            return None
        value = topic.decode(record.get("value"))
        if value is None:
            logger.warning(
                f"Discarding malformed signal {topic.name}[{key}]: {record.get('value')!r}",
                extra={"topic": topic.name, "menu_slug": key},
            )
        return value

    def delete(self, topic: SignalTopic, key: str) -> None:
        self._remove(_slot(topic, key))

    def pop(self, topic: SignalTopic[T], key: str) -> Optional[T]:
        """Consuming read: return the signal and clear it."""
        value = self.get(topic, key)
        if value is not None:
            self.delete(topic, key)
        return value

    def is_set(self, topic: SignalTopic[bool], key: str) -> bool:
        return self.get(topic, key) is True

    def snapshot(self, key: str) -> Dict[str, Any]:
        """All live signals for one menu slug, keyed by topic name."""
        result: Dict[str, Any] = {}
        for topic in Topics.all():
            value = self.get(topic, key)
            if value is not None:
                result[topic.name] = topic.encode(value)
        return result


class MemorySignalStore(SignalStore):
    """Process-local signal store."""

    def __init__(self, ttl_overrides=None, clock=time.time):
        super().__init__(ttl_overrides, clock)
        self._records: Dict[str, Record] = {}
        self._lock = threading.Lock()

    def _load(self, slot: str) -> Optional[Record]:
        with self._lock:
            record = self._records.get(slot)
            return dict(record) if record else None

    def _store(self, slot: str, record: Record) -> None:
        with self._lock:
            now = self.clock()
            self._records = {
                k: v for k, v in self._records.items() if v.get("expires_at", 0) > now
            }
            self._records[slot] = record

    def _remove(self, slot: str) -> None:
        with self._lock:
            self._records.pop(slot, None)

    def __len__(self) -> int:
        """Number of live (unexpired) signals."""
        now = self.clock()
        with self._lock:
            return sum(1 for v in self._records.values() if v.get("expires_at", 0) > now)


class FileSignalStore(SignalStore):
    """
    JSON-file signal store.

    Reads parse the file fresh and take no lock; writes replace it through
    a unique temp file, so a reader always sees a whole file. Every
    read-modify-write holds an exclusive ``flock`` on ``<name>.lock`` so
    writers in other processes never drop each other's slots.

    A file that cannot be parsed reads as empty, but is never overwritten:
    writes raise ``SignalStoreError`` until it is repaired or removed.
    """

    def __init__(
        self,
        path: Path,
        ttl_overrides=None,
        clock=time.time,
        lock_timeout: float = 10.0,
    ):
        super().__init__(ttl_overrides, clock)
        self.path = path
        self.lock_path = path.with_name(f"{path.name}.lock")
        self.lock_timeout = lock_timeout
        self._lock = threading.Lock()

    @contextmanager
    def _exclusive(self) -> Iterator[None]:
        """Hold the cross-process write lock."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._lock, open(self.lock_path, "a") as lock_file:
            deadline = time.monotonic() + self.lock_timeout
            while True:
                try:
                    fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                    break
                except BlockingIOError:
                    if time.monotonic() > deadline:
                        raise SignalStoreError(
                            f"Timeout acquiring {self.lock_path} after {self.lock_timeout}s"
                        )
                    time.sleep(0.01)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _read_all(self, strict: bool = False) -> Dict[str, Record]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            if strict:
                raise SignalStoreError(f"Refusing to rewrite unreadable signal store {self.path}: {e}") from e
            logger.error(f"Failed to read signal store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            if strict:
                raise SignalStoreError(f"Refusing to rewrite signal store {self.path}: not a JSON object")
            return {}
        return data

    def _write_all(self, records: Dict[str, Record]) -> None:
        fd, temp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(records, f, indent=2)
                f.write("\n")
            os.replace(temp_name, self.path)
        except BaseException:
            Path(temp_name).unlink(missing_ok=True)
            raise

    def _load(self, slot: str) -> Optional[Record]:
        record = self._read_all().get(slot)
        return record if isinstance(record, dict) else None

    def _store(self, slot: str, record: Record) -> None:
        with self._exclusive():
            now = self.clock()
            records = {
                k: v for k, v in self._read_all(strict=True).items()
                if isinstance(v, dict) and v.get("expires_at", 0) > now
            }
            records[slot] = record
            self._write_all(records)

    def _remove(self, slot: str) -> None:
        with self._exclusive():
            records = self._read_all(strict=True)
            if slot in records:
                del records[slot]
                self._write_all(records)
