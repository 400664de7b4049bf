"""
Admin server shared helpers.

Accessors for the per-app services and the per-request sync context,
plus the request checks shared by the sync endpoints.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Tuple

from flask import current_app, g, jsonify, request

from ..engine import SyncContext, SyncTriggers
from ..services import SYNC_ACTION, Services

logger = logging.getLogger(__name__)


def services() -> Services:
    return current_app.config["SERVICES"]


def sync_context() -> SyncContext:
    return g.sync


def listener() -> SyncTriggers:
    """Tree listener bound to the current request's queue."""
    return services().triggers(sync_context())


def payload() -> Dict[str, Any]:
    """Request body as a dict, from JSON or form data."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict()


def error(message: str, status: int):
    return jsonify({"success": False, "error": message}), status


def require_capability():
    """Return an error response unless the actor holds the capability."""
    if not sync_context().actor.can(services().settings.capability):
        return error("Insufficient permissions.", 403)
    return None


def checked_sync_request() -> Tuple[Optional[str], Any]:
    """
    Validate a sync endpoint request.

    Order: token, then capability, then menu slug.

    Returns:
        (menu_slug, None) when valid, else (None, error response)
    """
    data = payload()
    if not services().tokens.verify(data.get("nonce"), SYNC_ACTION):
        return None, error("Invalid nonce.", 403)

    denied = require_capability()
    if denied is not None:
        return None, denied

    menu_slug = str(data.get("menu_slug") or "").strip()
    if not menu_slug:
        return None, error("Menu slug required.", 400)

    return menu_slug, None
