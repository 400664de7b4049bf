"""
Mirror Models — Shape of one loop entry in the mirror store.

The mirror store belongs to another subsystem and may hold entries we
did not write (or that were edited by hand), so reads work on raw dicts
and only the entries we build go through ``MirrorEntry``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Storage-key → raw entry, as persisted by the mirror store
MirrorMapping = Dict[str, Dict[str, Any]]


class LoopConfig(BaseModel):
    """Payload carried by a loop entry."""

    type: Literal["json"] = "json"
    data: List[Dict[str, Any]] = Field(default_factory=list)


class MirrorEntry(BaseModel):
    """A loop entry written by the sync executor."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    key: str
    is_global: bool = Field(default=True, alias="global")
    config: LoopConfig = Field(default_factory=LoopConfig)

    def to_storage(self) -> Dict[str, Any]:
        """Serialize with the field names the loop store expects."""
        return self.model_dump(by_alias=True)


def entry_payload(entry: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Extract ``config.data`` from a raw entry, tolerating missing pieces."""
    if not isinstance(entry, dict):
        return []
    config = entry.get("config")
    if not isinstance(config, dict):
        return []
    data = config.get("data")
    return data if isinstance(data, list) else []


def entry_key(entry: Optional[Dict[str, Any]]) -> Optional[str]:
    """Declared key of a raw entry, if it has one."""
    if not isinstance(entry, dict):
        return None
    key = entry.get("key")
    return key if isinstance(key, str) else None
