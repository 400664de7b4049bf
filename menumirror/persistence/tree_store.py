"""
Tree Store — JSON-file backend for menus and their items.

Plays the host side of the sync engine: it owns the source trees and
fires change notifications to a listener passed in by the caller.

File layout (``state/menus.json``):

    {
        "next_menu_id": 3,
        "next_item_id": 12,
        "menus": [{"id": 1, "name": "Main", "slug": "main", "items": [...]}]
    }

## Notification order

- ``create_menu``: apply, then ``on_created``
- ``update_menu``: ``on_changed`` BEFORE applying, then one
  ``on_item_changed`` per saved item and ``on_item_deleted`` per removed item
- ``save_item``: ``on_changed`` BEFORE applying, then ``on_item_changed``
- ``delete_item``: ``on_item_deleted`` before removal
- ``delete_menu``: ``on_deleting`` before removal

## Usage

    store = JsonTreeStore(Path("state/menus.json"))
    menu = store.create_menu("Main Menu", listener=triggers)
    store.update_menu(menu.id, items=[{"title": "Home", "url": "/"}], listener=triggers)
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from ..errors import TreeNotFound
from ..models.tree import Menu, SourceItem

logger = logging.getLogger(__name__)


class TreeListener(Protocol):
    """Receiver of tree change notifications."""

    def on_created(self, menu_id: int) -> None: ...

    def on_changed(self, menu_id: int) -> None: ...

    def on_item_changed(self, menu_id: int, item_id: int) -> None: ...

    def on_item_deleted(self, menu_id: int, item_id: int) -> None: ...

    def on_deleting(self, menu_id: int, metadata: Dict[str, Any]) -> None: ...


class NullListener:
    """Listener that ignores every notification."""

    def on_created(self, menu_id: int) -> None:
        pass

    def on_changed(self, menu_id: int) -> None:
        pass

    def on_item_changed(self, menu_id: int, item_id: int) -> None:
        pass

    def on_item_deleted(self, menu_id: int, item_id: int) -> None:
        pass

    def on_deleting(self, menu_id: int, metadata: Dict[str, Any]) -> None:
        pass


def slugify(name: str) -> str:
    """Lowercase, runs of non-alphanumerics become a single hyphen."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "menu"


class JsonTreeStore:
    """Menus persisted as one JSON document, re-read on every call."""

    def __init__(self, path: Path):
        self.path = path
        self._lock = threading.RLock()

    # ─── Raw document ───────────────────────────────────────

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"next_menu_id": 1, "next_item_id": 1, "menus": []}
        with self.path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, doc: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        temp_path = self.path.with_suffix(".tmp")
        with temp_path.open("w", encoding="utf-8") as f:
            json.dump(doc, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(temp_path, self.path)

    @staticmethod
    def _find(doc: Dict[str, Any], menu_id: int) -> Dict[str, Any]:
        for raw in doc["menus"]:
            if raw["id"] == menu_id:
                return raw
        raise TreeNotFound(menu_id)

    # ─── Reads ──────────────────────────────────────────────

    def list_menus(self) -> List[Menu]:
        return [Menu(**raw) for raw in self._load()["menus"]]

    def get_menu(self, menu_id: int) -> Menu:
        """Return a menu or raise TreeNotFound."""
        return Menu(**self._find(self._load(), menu_id))

    def read_tree(self, menu_id: int) -> List[SourceItem]:
        """Items of a menu in stored order."""
        return self.get_menu(menu_id).items

    def slug_of(self, menu_id: int) -> str:
        return self.get_menu(menu_id).slug

    def name_of(self, menu_id: int) -> str:
        return self.get_menu(menu_id).name

    def find_by_slug(self, slug: str) -> Optional[Menu]:
        for menu in self.list_menus():
            if menu.slug == slug:
                return menu
        return None

    # ─── Mutations ──────────────────────────────────────────

    def create_menu(
        self,
        name: str,
        slug: Optional[str] = None,
        listener: Optional[TreeListener] = None,
    ) -> Menu:
        """Create an empty menu with a slug unique across the store."""
        listener = listener or NullListener()
        with self._lock:
            doc = self._load()
            taken = {raw["slug"] for raw in doc["menus"]}
            base = slugify(slug or name)
            candidate = base
            suffix = 2
            while candidate in taken:
                candidate = f"{base}-{suffix}"
                suffix += 1

            menu = Menu(id=doc["next_menu_id"], name=name, slug=candidate)
            doc["next_menu_id"] += 1
            doc["menus"].append(menu.model_dump())
            self._save(doc)

        logger.info(f"Menu created: {menu.slug} (id={menu.id})", extra={"menu_id": menu.id})
        listener.on_created(menu.id)
        return menu

    def update_menu(
        self,
        menu_id: int,
        name: Optional[str] = None,
        items: Optional[Sequence[Dict[str, Any]]] = None,
        listener: Optional[TreeListener] = None,
    ) -> Menu:
        """
        Rename a menu and/or replace its items.

        Items without an ``id`` get a fresh one. Items missing from
        ``items`` are removed.
        """
        listener = listener or NullListener()
        self.get_menu(menu_id)
        listener.on_changed(menu_id)

        saved_ids: List[int] = []
        removed_ids: List[int] = []
        with self._lock:
            doc = self._load()
            raw = self._find(doc, menu_id)
            if name is not None:
                raw["name"] = name
            if items is not None:
                new_items = [self._assign_id(doc, dict(item)) for item in items]
                saved_ids = [item["id"] for item in new_items]
                removed_ids = [
                    old["id"] for old in raw["items"] if old["id"] not in set(saved_ids)
                ]
                raw["items"] = [SourceItem(**item).model_dump() for item in new_items]
            self._save(doc)

        for item_id in saved_ids:
            listener.on_item_changed(menu_id, item_id)
        for item_id in removed_ids:
            listener.on_item_deleted(menu_id, item_id)

        logger.info(
            f"Menu {menu_id} updated: {len(saved_ids)} saved, {len(removed_ids)} removed",
            extra={"menu_id": menu_id},
        )
        return self.get_menu(menu_id)

    def save_item(
        self,
        menu_id: int,
        item: Dict[str, Any],
        listener: Optional[TreeListener] = None,
    ) -> SourceItem:
        """Insert or update one item; ``on_changed`` fires before the write."""
        listener = listener or NullListener()
        self.get_menu(menu_id)
        listener.on_changed(menu_id)

        with self._lock:
            doc = self._load()
            raw = self._find(doc, menu_id)
            stored = SourceItem(**self._assign_id(doc, dict(item))).model_dump()
            for index, existing in enumerate(raw["items"]):
                if existing["id"] == stored["id"]:
                    raw["items"][index] = stored
                    break
            else:
                raw["items"].append(stored)
            self._save(doc)

        listener.on_item_changed(menu_id, stored["id"])
        return SourceItem(**stored)

    def delete_item(
        self,
        menu_id: int,
        item_id: int,
        listener: Optional[TreeListener] = None,
    ) -> bool:
        """Remove one item. Returns False if it wasn't there."""
        listener = listener or NullListener()
        if not any(i.id == item_id for i in self.read_tree(menu_id)):
            return False
        listener.on_item_deleted(menu_id, item_id)

        with self._lock:
            doc = self._load()
            raw = self._find(doc, menu_id)
            raw["items"] = [i for i in raw["items"] if i["id"] != item_id]
            self._save(doc)

        return True

    def delete_menu(self, menu_id: int, listener: Optional[TreeListener] = None) -> None:
        """Remove a menu; the listener sees its slug and name first."""
        listener = listener or NullListener()
        menu = self.get_menu(menu_id)
        listener.on_deleting(menu_id, {"slug": menu.slug, "name": menu.name})

        with self._lock:
            doc = self._load()
            doc["menus"] = [raw for raw in doc["menus"] if raw["id"] != menu_id]
            self._save(doc)

        logger.info(f"Menu deleted: {menu.slug} (id={menu_id})", extra={"menu_id": menu_id})

    @staticmethod
    def _assign_id(doc: Dict[str, Any], item: Dict[str, Any]) -> Dict[str, Any]:
        if item.get("id") is None:
            item["id"] = doc["next_item_id"]
        doc["next_item_id"] = max(doc["next_item_id"], int(item["id"]) + 1)
        return item
