"""
Mirror Store — The loop store owned by the templating subsystem.

The store is a single mapping of storage key → loop entry. A store that
has never been initialized reads as ``None``, which the sync engine
treats as "mirror not active" rather than an error.
"""

from __future__ import annotations

import copy
import json
import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from ..models.mirror import MirrorMapping

logger = logging.getLogger(__name__)


class MirrorStore(ABC):
    """Whole-mapping read/write access to the loop store."""

    @abstractmethod
    def read(self) -> Optional[MirrorMapping]:
        """Current mapping, or None when the store is uninitialized."""

    @abstractmethod
    def write(self, mapping: MirrorMapping) -> None:
        """Replace the whole mapping."""

    def initialize(self) -> bool:
        """Create an empty store. Returns False if one already exists."""
        if self.read() is not None:
            return False
        self.write({})
        return True


class JsonMirrorStore(MirrorStore):
    """Loop store persisted as a JSON object on disk."""

    def __init__(self, path: Path):
        self.path = path

    def read(self) -> Optional[MirrorMapping]:
        if not self.path.exists():
            return None
        with self.path.open("r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            logger.warning(f"Mirror store {self.path} does not hold an object, treating as inactive")
            return None
        return data

    def write(self, mapping: MirrorMapping) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(mapping, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(temp_path, self.path)
        logger.debug(f"Mirror store written: {len(mapping)} entries → {self.path.name}")


class MemoryMirrorStore(MirrorStore):
    """In-memory loop store. ``None`` means uninitialized."""

    def __init__(self, mapping: Optional[MirrorMapping] = None):
        self._mapping = copy.deepcopy(mapping) if mapping is not None else None
        self.writes = 0

    def read(self) -> Optional[MirrorMapping]:
        return copy.deepcopy(self._mapping) if self._mapping is not None else None

    def write(self, mapping: MirrorMapping) -> None:
        self._mapping = copy.deepcopy(mapping)
        self.writes += 1
