"""
Outcome Model — Result of executing one sync job.

Every job produces an outcome, regardless of success or failure.
Skips are expected and carry a refusal reason; only faults fail.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field


class RefusalReason(str, Enum):
    """Why a job was skipped instead of written."""
    MIRROR_UNAVAILABLE = "mirror_unavailable"
    UNVERIFIABLE = "unverifiable"
    COLLISION = "collision"
    EXTERNAL_DRIFT = "external_drift"
    MENU_MISSING = "menu_missing"


class ErrorDetails(BaseModel):
    """Details about a write fault."""

    code: str
    message: str


class SyncOutcome(BaseModel):
    """
    Result of a sync job.

    ``status`` is the tag; ``reason`` is set for skips and ``error`` for
    failures.
    """

    status: Literal["ok", "skipped", "failed"]
    menu_slug: str
    menu_id: Optional[int] = None
    reason: Optional[RefusalReason] = None
    ts_iso: str = Field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )
    details: Optional[Dict[str, Any]] = None
    error: Optional[ErrorDetails] = None

    @property
    def succeeded(self) -> bool:
        return self.status == "ok"

    @classmethod
    def ok(
        cls,
        menu_slug: str,
        menu_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> "SyncOutcome":
        """Create a successful outcome."""
        return cls(status="ok", menu_slug=menu_slug, menu_id=menu_id, details=details)

    @classmethod
    def skipped(
        cls,
        menu_slug: str,
        reason: RefusalReason,
        menu_id: Optional[int] = None,
    ) -> "SyncOutcome":
        """Create a skipped outcome."""
        return cls(status="skipped", menu_slug=menu_slug, menu_id=menu_id, reason=reason)

    @classmethod
    def failed(
        cls,
        menu_slug: str,
        error_code: str,
        error_message: str,
        menu_id: Optional[int] = None,
    ) -> "SyncOutcome":
        """Create a failed outcome."""
        return cls(
            status="failed",
            menu_slug=menu_slug,
            menu_id=menu_id,
            error=ErrorDetails(code=error_code, message=error_message),
        )
