"""
Admin API — Health and metrics endpoints.

Blueprint: core_bp
Routes:
    /api/health     (GET — store availability)
    /api/metrics    (GET — Prometheus text format)
"""

from __future__ import annotations

from flask import Blueprint, Response, jsonify

from .. import __version__
from ..observability.metrics import metrics
from .helpers import services

core_bp = Blueprint("core", __name__)


@core_bp.route("/api/health")
def api_health():
    """Report whether the loop store is active and how many menus exist."""
    svc = services()
    entries = svc.mirror.read()
    return jsonify({
        "version": __version__,
        "mirror_active": entries is not None,
        "mirror_entries": len(entries) if entries is not None else 0,
        "menus": len(svc.tree.list_menus()),
    })


@core_bp.route("/api/metrics")
def api_metrics():
    return Response(metrics.export_prometheus(), mimetype="text/plain; version=0.0.4")
