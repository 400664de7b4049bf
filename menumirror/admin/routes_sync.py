"""
Admin API — Sync status, override and completion-poll endpoints.

Blueprint: sync_bp
Prefix: /api/sync
Routes:
    /api/sync/status      (GET  — editor-load check + notice for a menu)
    /api/sync/override    (POST — set or clear the override signal)
    /api/sync/completed   (POST — consume completion/failure signals)
"""

from __future__ import annotations

import logging

from flask import Blueprint, jsonify, request

from ..engine import resolve_notice
from ..services import SYNC_ACTION
from ..signals import Topics
from .helpers import checked_sync_request, error, payload, require_capability, services

logger = logging.getLogger(__name__)

sync_bp = Blueprint("sync", __name__)


@sync_bp.route("/status", methods=["GET"])
def api_sync_status():
    """
    Notice for a menu, as the editor shows it.

    ``?menu_id=`` runs the editor-load check first; ``?menu_slug=``
    only reads the current signals.
    """
    denied = require_capability()
    if denied is not None:
        return denied

    svc = services()
    menu_id = request.args.get("menu_id", type=int)
    menu_slug = request.args.get("menu_slug", "").strip()
    menu_name = ""

    if menu_id is not None:
        menu = svc.tree.get_menu(menu_id)
        svc.status.check(menu_id)
        menu_slug, menu_name = menu.slug, menu.name
    elif menu_slug:
        menu = svc.tree.find_by_slug(menu_slug)
        menu_name = menu.name if menu else ""
    else:
        return error("Menu slug required.", 400)

    notice = resolve_notice(svc.signals, menu_slug, menu_name)
    data = notice.to_dict()
    data["nonce"] = svc.tokens.issue(SYNC_ACTION)
    return jsonify({"success": True, "data": data})


@sync_bp.route("/override", methods=["POST"])
def api_sync_override():
    """Enable (5 min) or clear the override for a menu slug."""
    menu_slug, failure = checked_sync_request()
    if failure is not None:
        return failure

    svc = services()
    enabled = str(payload().get("override", "0")).strip().lower() in ("1", "true")
    if enabled:
        svc.signals.set(Topics.OVERRIDE_ENABLED, menu_slug, True)
        message = "Override enabled."
    else:
        svc.signals.delete(Topics.OVERRIDE_ENABLED, menu_slug)
        message = "Override cleared."

    svc.audit.emit_override_changed(menu_slug, enabled)
    logger.info(f"Override {'enabled' if enabled else 'cleared'} for '{menu_slug}'")
    return jsonify({"success": True, "data": {"message": message}})


@sync_bp.route("/completed", methods=["POST"])
def api_sync_completed():
    """
    Consume the terminal signal for a menu slug.

    Completion wins over failure; each is cleared once reported.
    """
    menu_slug, failure = checked_sync_request()
    if failure is not None:
        return failure

    signals = services().signals
    if signals.pop(Topics.SYNC_COMPLETED, menu_slug):
        data = {"sync_completed": True}
        new_key = signals.pop(Topics.KEY_MIGRATED, menu_slug)
        if new_key is not None:
            data["key_migrated"] = new_key
        return jsonify({"success": True, "data": data})

    if signals.pop(Topics.SYNC_FAILED, menu_slug):
        return jsonify({"success": True, "data": {"sync_failed": True}})

    return jsonify({"success": True, "data": {"sync_completed": False}})
