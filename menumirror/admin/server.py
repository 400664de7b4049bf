"""
Local Admin Server — Flask app hosting the menu API and sync endpoints.

Every request gets its own sync context on ``flask.g``: tree mutations
enqueue into it, and the teardown hook drains it once the request is
over. Only /api/ and /admin/ requests from an actor with the configured
capability ever drain.

It should NEVER be exposed to the internet.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional

from flask import Flask, g, jsonify, request
from pydantic import ValidationError

from ..access import ADMIN_TOKEN_HEADER, RequestOrigin, actor_for_token
from ..config import SyncSettings, load_settings
from ..errors import TreeNotFound
from ..logging_config import setup_logging
from ..services import Services
from .routes_core import core_bp
from .routes_menus import menus_bp, public_bp
from .routes_sync import sync_bp

logger = logging.getLogger(__name__)

# Endpoints hit once a second by the polling client
POLL_ENDPOINTS = ("/api/sync/completed", "/api/sync/status")


def create_app(
    settings: Optional[SyncSettings] = None,
    services: Optional[Services] = None,
    project_root: Optional[Path] = None,
) -> Flask:
    """Create the Flask application."""
    project_root = project_root or Path.cwd()
    if services is None:
        settings = settings or load_settings(project_root)
        services = Services.from_settings(settings)

    app = Flask(__name__)
    app.config["PROJECT_ROOT"] = project_root
    app.config["SERVICES"] = services
    app.config["JSON_SORT_KEYS"] = False

    # ── Register Blueprints ───────────────────────────────────────
    app.register_blueprint(core_bp)                                 # /api/health, /api/metrics
    app.register_blueprint(menus_bp, url_prefix="/api/menus")       # /api/menus/*
    app.register_blueprint(sync_bp, url_prefix="/api/sync")         # /api/sync/*
    app.register_blueprint(public_bp)                               # /menus/<slug>

    # ── Error Handlers ────────────────────────────────────────────

    @app.errorhandler(TreeNotFound)
    def menu_not_found(e):
        return jsonify({"success": False, "error": str(e)}), 404

    @app.errorhandler(ValidationError)
    def invalid_payload(e):
        return jsonify({"success": False, "error": "Invalid payload", "details": json.loads(e.json(include_url=False))}), 400

    @app.errorhandler(500)
    def internal_server_error(e):
        """Catch-all: return JSON for any unhandled 500 so clients never see raw HTML."""
        logger.error(f"Unhandled 500 on {request.method} {request.path}: {e}", exc_info=True)
        return jsonify({
            "success": False,
            "error": f"Internal server error: {str(e)}",
        }), 500

    # ── Request Context & Logging ─────────────────────────────────

    @app.before_request
    def open_sync_context():
        """Record start time and give the request its own sync queue."""
        g.start_time = time.time()
        origin = RequestOrigin.from_path(request.path)
        actor = actor_for_token(
            request.headers.get(ADMIN_TOKEN_HEADER),
            services.settings.admin_token,
            services.settings.capability,
        )
        g.sync = services.new_context(origin, actor)

    @app.after_request
    def log_request_end(response):
        """Log request with duration for API endpoints."""
        duration_ms = int((time.time() - g.get("start_time", time.time())) * 1000)

        if request.path.startswith("/api/"):
            # Demote polling endpoints to DEBUG to reduce noise
            is_poll = request.path in POLL_ENDPOINTS
            log_fn = logger.debug if is_poll else logger.info
            log_fn(f"{request.method} {request.path} → {response.status_code} ({duration_ms}ms)")
        return response

    @app.teardown_request
    def drain_sync_queue(exc):
        """End-of-request hook: run whatever the request queued."""
        context = g.pop("sync", None)
        if context is None:
            return
        try:
            services.finish(context)
        except Exception as e:
            logger.error(f"Sync drain failed after {request.path}: {e}", exc_info=True)

    logger.info(f"Admin server initialized (state_dir={services.settings.state_dir})")

    return app


def run_server(
    host: str = "127.0.0.1",
    port: int = 5050,
    debug: bool = False,
    project_root: Optional[Path] = None,
) -> None:
    """
    Run the admin server.

    Args:
        host: Bind address (default: localhost only)
        port: Port to run on
        debug: Enable Flask debug mode and DEBUG logging
        project_root: Directory holding menumirror.yaml, state/ and audit/
    """
    setup_logging(level="DEBUG" if debug else None)

    app = create_app(project_root=project_root)

    url = f"http://{host}:{port}"
    debug_tag = " [DEBUG]" if debug else ""

    print(f"""
╔══════════════════════════════════════════════════════════════╗
║              MENU MIRROR ADMIN{debug_tag:<32} ║
╠══════════════════════════════════════════════════════════════╣
║                                                              ║
║  Admin API running at:                                       ║
║  → {url:<54} ║
║                                                              ║
║  Press Ctrl+C to stop                                        ║
║                                                              ║
║  ⚠️  This server is for LOCAL USE ONLY                       ║
║     Never expose to the internet!                            ║
║                                                              ║
╚══════════════════════════════════════════════════════════════╝
""")

    app.run(host=host, port=port, debug=debug, use_reloader=False)


if __name__ == "__main__":
    run_server()
