"""
Tree Normalizer — Source items to the nested loop payload.

The normalized form is what gets written into the mirror and what
conflict detection compares. Two trees with the same content and
structure always serialize to the same canonical string.

## Build

Two passes over an arena keyed by item id:

1. Index every item and record child ids per parent, in stored order.
2. Assemble nested dicts starting from the roots (``parent_id == 0``).

Items whose parent is missing are unreachable from a root and are dropped.

## Output item

    {"label": "Home", "url": "/", "classes": "a b", "target": "_blank",
     "children": [...]}

``classes``, ``target`` and ``children`` are present only when non-empty.
Extension fields stored on the item are carried over unless they would
replace one of the fields above. Filter hooks run once per item, before
its children are attached.
"""

from __future__ import annotations

import html
import json
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from ..models.tree import SourceItem

logger = logging.getLogger(__name__)

NormalizedItem = Dict[str, Any]

# (normalized item, raw item) -> normalized item
FilterHook = Callable[[NormalizedItem, SourceItem], NormalizedItem]

CORE_FIELDS = frozenset({"label", "url", "classes", "target", "children"})


def canonicalize(tree: Optional[Sequence[NormalizedItem]]) -> str:
    """Byte-stable serialization used as the equality oracle."""
    return json.dumps(
        list(tree or []),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )


def same_tree(a: Optional[Sequence[NormalizedItem]], b: Optional[Sequence[NormalizedItem]]) -> bool:
    return canonicalize(a) == canonicalize(b)


class TreeNormalizer:
    """Turns a flat, parent-linked item list into nested loop data."""

    def __init__(self, hooks: Optional[Sequence[FilterHook]] = None):
        self.hooks: List[FilterHook] = list(hooks or [])

    def add_hook(self, hook: FilterHook) -> None:
        self.hooks.append(hook)

    def normalize(self, items: Sequence[SourceItem]) -> List[NormalizedItem]:
        arena: Dict[int, SourceItem] = {}
        children: Dict[int, List[int]] = {}
        roots: List[int] = []

        for item in items:
            if item.id in arena:
                logger.warning(f"Duplicate menu item id {item.id}, keeping the first")
                continue
            arena[item.id] = item
            if item.is_root:
                roots.append(item.id)
            else:
                children.setdefault(item.parent_id, []).append(item.id)

        dropped = len(arena) - self._count_reachable(roots, children)
        if dropped:
            logger.debug(f"Dropped {dropped} item(s) not reachable from a root")

        return [self._build(item_id, arena, children, set()) for item_id in roots]

    def snapshot(self, items: Sequence[SourceItem]) -> Optional[List[NormalizedItem]]:
        """Normalized tree, or None when there are no items at all."""
        if not items:
            return None
        return self.normalize(items)

    def _build(
        self,
        item_id: int,
        arena: Dict[int, SourceItem],
        children: Dict[int, List[int]],
        seen: set,
    ) -> NormalizedItem:
        raw = arena[item_id]
        node = self._convert(raw)
        for hook in self.hooks:
            node = hook(node, raw)

        seen = seen | {item_id}
        kids = [
            self._build(child_id, arena, children, seen)
            for child_id in children.get(item_id, [])
            if child_id not in seen
        ]
        if kids:
            node["children"] = kids
        return node

    @staticmethod
    def _convert(raw: SourceItem) -> NormalizedItem:
        node: NormalizedItem = {
            "label": html.unescape(raw.title),
            "url": raw.url,
        }
        classes = " ".join(c for c in raw.classes if c)
        if classes:
            node["classes"] = classes
        if raw.target:
            node["target"] = raw.target
        for name, value in raw.extension_fields.items():
            if name not in CORE_FIELDS:
                node[name] = value
        return node

    @staticmethod
    def _count_reachable(roots: List[int], children: Dict[int, List[int]]) -> int:
        seen = set()
        stack = list(roots)
        while stack:
            item_id = stack.pop()
            if item_id in seen:
                continue
            seen.add(item_id)
            stack.extend(children.get(item_id, []))
        return len(seen)
