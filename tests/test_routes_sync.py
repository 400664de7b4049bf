"""
Tests for the /api/sync/* endpoints (status, override, completion poll).
"""

from __future__ import annotations

import json

import pytest

from menumirror.signals import NoticeType, Topics

pytest.importorskip("flask")


# ── Status ───────────────────────────────────────────────────────────


class TestSyncStatus:

    def test_requires_capability(self, client):
        resp = client.get("/api/sync/status?menu_slug=footer")
        assert resp.status_code == 403
        assert resp.get_json() == {"success": False, "error": "Insufficient permissions."}

    def test_by_menu_id_runs_check(self, client, auth, services, signals):
        menu = services.tree.create_menu("Footer")

        resp = client.get(f"/api/sync/status?menu_id={menu.id}", headers=auth)

        assert resp.status_code == 200
        data = resp.get_json()["data"]
        assert data["state"] == "idle"
        assert data["menu_slug"] == "footer"
        assert data["menu_name"] == "Footer"
        assert data["nonce"]
        assert signals.get(Topics.SYNC_ENABLED, "footer") is True

    def test_by_menu_id_reports_drift(self, client, auth, services, mirror):
        menu = services.tree.create_menu("Footer")
        services.tree.update_menu(menu.id, items=[{"id": 1, "title": "Home", "url": "/"}])
        mirror.write({"footer": {"key": "footer", "config": {"type": "json", "data": []}}})

        data = client.get(f"/api/sync/status?menu_id={menu.id}", headers=auth).get_json()["data"]

        assert data["state"] == "out_of_sync"
        assert data["show_override"] is True

    def test_by_slug_only_reads(self, client, auth, signals):
        signals.set(Topics.SYNC_IN_PROGRESS, "footer", True)

        data = client.get("/api/sync/status?menu_slug=footer", headers=auth).get_json()["data"]

        assert data["state"] == "syncing"
        assert signals.get(Topics.SYNC_ENABLED, "footer") is None

    def test_unknown_menu_id(self, client, auth):
        resp = client.get("/api/sync/status?menu_id=99", headers=auth)
        assert resp.status_code == 404
        assert resp.get_json()["error"] == "Menu 99 not found"

    def test_missing_menu(self, client, auth):
        resp = client.get("/api/sync/status", headers=auth)
        assert resp.status_code == 400


# ── Override ─────────────────────────────────────────────────────────


class TestSyncOverride:

    def test_enable(self, client, auth, nonce, signals, settings):
        resp = client.post(
            "/api/sync/override",
            json={"menu_slug": "footer", "override": "1", "nonce": nonce},
            headers=auth,
        )

        assert resp.status_code == 200
        assert resp.get_json()["data"]["message"] == "Override enabled."
        assert signals.is_set(Topics.OVERRIDE_ENABLED, "footer")

        events = [json.loads(line) for line in settings.audit_path.read_text().splitlines()]
        assert events[-1]["type"] == "override_changed"
        assert events[-1]["details"] == {"enabled": True}

    def test_clear(self, client, auth, nonce, signals):
        signals.set(Topics.OVERRIDE_ENABLED, "footer", True)
        resp = client.post(
            "/api/sync/override",
            json={"menu_slug": "footer", "override": "0", "nonce": nonce},
            headers=auth,
        )
        assert resp.get_json()["data"]["message"] == "Override cleared."
        assert not signals.is_set(Topics.OVERRIDE_ENABLED, "footer")

    def test_form_encoded(self, client, auth, nonce, signals):
        client.post(
            "/api/sync/override",
            data={"menu_slug": "footer", "override": "true", "nonce": nonce},
            headers=auth,
        )
        assert signals.is_set(Topics.OVERRIDE_ENABLED, "footer")

    def test_bad_nonce(self, client, auth, signals):
        resp = client.post(
            "/api/sync/override",
            json={"menu_slug": "footer", "override": "1", "nonce": "forged"},
            headers=auth,
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Invalid nonce."
        assert not signals.is_set(Topics.OVERRIDE_ENABLED, "footer")

    def test_nonce_checked_before_capability(self, client):
        resp = client.post("/api/sync/override", json={"menu_slug": "footer"})
        assert resp.get_json()["error"] == "Invalid nonce."

    def test_requires_capability(self, client, nonce):
        resp = client.post(
            "/api/sync/override",
            json={"menu_slug": "footer", "override": "1", "nonce": nonce},
        )
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "Insufficient permissions."

    def test_requires_slug(self, client, auth, nonce):
        resp = client.post("/api/sync/override", json={"override": "1", "nonce": nonce}, headers=auth)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Menu slug required."


# ── Completion poll ──────────────────────────────────────────────────


class TestSyncCompleted:

    def post(self, client, auth, nonce, slug="footer"):
        return client.post(
            "/api/sync/completed",
            json={"menu_slug": slug, "nonce": nonce},
            headers=auth,
        )

    def test_nothing_yet(self, client, auth, nonce):
        resp = self.post(client, auth, nonce)
        assert resp.get_json() == {"success": True, "data": {"sync_completed": False}}

    def test_completed_is_consumed(self, client, auth, nonce, signals):
        signals.set(Topics.SYNC_COMPLETED, "footer", True)

        assert self.post(client, auth, nonce).get_json()["data"] == {"sync_completed": True}
        assert self.post(client, auth, nonce).get_json()["data"] == {"sync_completed": False}

    def test_completed_with_key_migration(self, client, auth, nonce, signals):
        signals.set(Topics.SYNC_COMPLETED, "main-menu", True)
        signals.set(Topics.KEY_MIGRATED, "main-menu", "main_menu")

        data = self.post(client, auth, nonce, "main-menu").get_json()["data"]

        assert data == {"sync_completed": True, "key_migrated": "main_menu"}
        assert signals.get(Topics.KEY_MIGRATED, "main-menu") is None

    def test_failed_is_consumed(self, client, auth, nonce, signals):
        signals.set(Topics.SYNC_FAILED, "footer", True)

        assert self.post(client, auth, nonce).get_json()["data"] == {"sync_failed": True}
        assert not signals.is_set(Topics.SYNC_FAILED, "footer")

    def test_completed_wins_over_failed(self, client, auth, nonce, signals):
        signals.set(Topics.SYNC_FAILED, "footer", True)
        signals.set(Topics.SYNC_COMPLETED, "footer", True)

        assert self.post(client, auth, nonce).get_json()["data"]["sync_completed"] is True

    def test_notice_untouched(self, client, auth, nonce, signals):
        signals.set(Topics.CONFLICT_NOTICE, "footer", NoticeType.OUT_OF_SYNC)
        self.post(client, auth, nonce)
        assert signals.get(Topics.CONFLICT_NOTICE, "footer") == NoticeType.OUT_OF_SYNC

    def test_requires_nonce(self, client, auth):
        resp = client.post("/api/sync/completed", json={"menu_slug": "footer"}, headers=auth)
        assert resp.status_code == 403
