"""
Tree Models — Pydantic schemas for the host's menu data.

The tree store owns these records; the sync engine only reads them.
Unknown keys on an item are kept as extension fields so that filter
hooks can pass them through to the mirror.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class SourceItem(BaseModel):
    """A single menu item as stored by the host."""

    model_config = ConfigDict(extra="allow")

    id: int
    title: str = ""
    url: str = ""
    classes: List[str] = Field(default_factory=list)
    target: str = ""
    parent_id: int = 0

    @property
    def is_root(self) -> bool:
        return self.parent_id == 0

    @property
    def extension_fields(self) -> Dict[str, Any]:
        """Fields the host attached beyond the core schema."""
        return dict(self.model_extra or {})


class Menu(BaseModel):
    """A menu record: identity plus its ordered items."""

    id: int
    name: str
    slug: str
    items: List[SourceItem] = Field(default_factory=list)

    def find_item(self, item_id: int) -> Optional[SourceItem]:
        for item in self.items:
            if item.id == item_id:
                return item
        return None
