"""
Audit Ledger — Append-only NDJSON record of sync activity.

Each line is one JSON object (newline-delimited JSON).
Events are never edited, only appended.

Event types:
    sync_queued, sync_written, sync_skipped, sync_failed,
    mirror_entry_removed, override_changed
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

from ..models.outcome import SyncOutcome


class AuditWriter:
    """
    Append-only NDJSON audit ledger writer.

    Usage:
        audit = AuditWriter(Path("audit/sync.ndjson"))
        audit.emit("sync_queued", menu_slug="main-menu", menu_id=3)
    """

    def __init__(self, path: Path):
        """Initialize the audit writer."""
        self.path = path
        self._ensure_exists()

    def _ensure_exists(self) -> None:
        """Ensure the audit file and directory exist."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if not self.path.exists():
            self.path.touch()

    def emit(
        self,
        event_type: str,
        menu_slug: str,
        level: str = "info",
        menu_id: Optional[int] = None,
        reason: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> str:
        """
        Emit an audit event.

        Args:
            event_type: Type of event (sync_queued, sync_written, etc.)
            menu_slug: Slug of the menu the event concerns
            level: Log level (info, warning, error)
            menu_id: Menu id, when known
            reason: Refusal reason for skipped syncs
            details: Additional event details

        Returns:
            Generated event_id
        """
        event_id = f"E-{uuid4().hex[:8].upper()}"
        now = datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")

        entry: Dict[str, Any] = {
            "ts_iso": now,
            "event_id": event_id,
            "menu_slug": menu_slug,
            "level": level,
            "type": event_type,
        }

        if menu_id is not None:
            entry["menu_id"] = menu_id
        if reason is not None:
            entry["reason"] = reason
        if details is not None:
            entry["details"] = details

        with self.path.open("a", encoding="utf-8") as f:
            f.write(json.dumps(entry) + "\n")

        return event_id

    def emit_outcome(self, outcome: SyncOutcome) -> str:
        """Record the result of one executed job."""
        if outcome.status == "ok":
            return self.emit(
                "sync_written",
                outcome.menu_slug,
                menu_id=outcome.menu_id,
                details=outcome.details,
            )
        if outcome.status == "skipped":
            return self.emit(
                "sync_skipped",
                outcome.menu_slug,
                level="warning",
                menu_id=outcome.menu_id,
                reason=outcome.reason.value if outcome.reason else None,
            )
        return self.emit(
            "sync_failed",
            outcome.menu_slug,
            level="error",
            menu_id=outcome.menu_id,
            details=outcome.error.model_dump() if outcome.error else None,
        )

    def emit_override_changed(self, menu_slug: str, enabled: bool) -> str:
        """Emit an override_changed event."""
        return self.emit(
            "override_changed",
            menu_slug,
            level="warning" if enabled else "info",
            details={"enabled": enabled},
        )
