"""
Tests for the core admin endpoints (health, metrics) and request handling.
"""

from __future__ import annotations

import logging

import pytest

pytest.importorskip("flask")


class TestHealth:

    def test_reports_store_state(self, client, services, mirror):
        services.tree.create_menu("Footer")
        mirror.write({"footer": {"key": "footer"}})

        data = client.get("/api/health").get_json()

        assert data["mirror_active"] is True
        assert data["mirror_entries"] == 1
        assert data["menus"] == 1

    def test_inactive_mirror(self, settings, signals):
        from menumirror.admin.server import create_app
        from menumirror.persistence import MemoryMirrorStore
        from menumirror.services import Services

        services = Services.from_settings(settings, mirror=MemoryMirrorStore(None), signals=signals)
        data = create_app(services=services).test_client().get("/api/health").get_json()

        assert data["mirror_active"] is False
        assert data["mirror_entries"] == 0


class TestMetrics:

    def test_prometheus_text(self, client, auth):
        client.post("/api/menus", json={"name": "Footer"}, headers=auth)

        resp = client.get("/api/metrics")

        assert resp.status_code == 200
        assert resp.mimetype == "text/plain"
        body = resp.get_data(as_text=True)
        assert "# TYPE menumirror_sync_total counter" in body
        assert 'menumirror_sync_total{outcome="ok"} 1.0' in body


class TestRequestLogging:

    def test_poll_endpoints_logged_at_debug(self, client, auth, nonce, caplog):
        with caplog.at_level(logging.DEBUG, logger="menumirror.admin.server"):
            client.post("/api/sync/completed", json={"menu_slug": "footer", "nonce": nonce}, headers=auth)
            client.get("/api/menus")

        levels = {r.getMessage().split(" ")[1]: r.levelno for r in caplog.records if "→" in r.getMessage()}
        assert levels["/api/sync/completed"] == logging.DEBUG
        assert levels["/api/menus"] == logging.INFO
