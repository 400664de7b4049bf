"""
Tests for the menumirror CLI.

Uses Click's CliRunner against a temp project root.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest import mock

import pytest
from click.testing import CliRunner

from menumirror.client import TIMEOUT_MESSAGE, PollState
from menumirror.main import cli
from menumirror.persistence import JsonTreeStore

ITEMS = [
    {"id": 1, "title": "Home", "url": "/"},
    {"id": 2, "title": "Blog", "url": "/blog"},
]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def root(tmp_path: Path, monkeypatch) -> Path:
    for name in ("MENUMIRROR_STATE_DIR", "MENUMIRROR_AUDIT_DIR", "MENUMIRROR_ADMIN_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    return tmp_path


def invoke(runner, root, *args):
    return runner.invoke(cli, ["--root", str(root), *args])


def make_menu(root: Path, name="Footer", items=ITEMS):
    tree = JsonTreeStore(root / "state" / "menus.json")
    menu = tree.create_menu(name)
    tree.update_menu(menu.id, items=items)
    return menu


def loops(root: Path):
    return json.loads((root / "state" / "loops.json").read_text())


class TestInitMirror:

    def test_creates_store(self, runner, root):
        result = invoke(runner, root, "init-mirror")
        assert result.exit_code == 0
        assert "initialized" in result.output
        assert loops(root) == {}

    def test_idempotent(self, runner, root):
        invoke(runner, root, "init-mirror")
        result = invoke(runner, root, "init-mirror")
        assert "already active" in result.output


class TestSync:

    def test_first_sync(self, runner, root):
        invoke(runner, root, "init-mirror")
        menu = make_menu(root)

        result = invoke(runner, root, "sync", str(menu.id))

        assert result.exit_code == 0, result.output
        assert "footer synced as 'footer'" in result.output
        assert [n["label"] for n in loops(root)["footer"]["config"]["data"]] == ["Home", "Blog"]

    def test_inactive_store(self, runner, root):
        menu = make_menu(root)
        result = invoke(runner, root, "sync", str(menu.id))

        assert result.exit_code == 1
        assert "not synced: mirror_unavailable" in result.output

    def test_unknown_menu(self, runner, root):
        result = invoke(runner, root, "sync", "9")
        assert result.exit_code == 1
        assert "Menu 9 not found" in result.output

    def test_drift_refused_then_overridden(self, runner, root):
        invoke(runner, root, "init-mirror")
        menu = make_menu(root)
        (root / "state" / "loops.json").write_text(json.dumps({
            "footer": {"name": "Footer", "key": "footer", "config": {"type": "json", "data": []}},
        }))

        refused = invoke(runner, root, "sync", str(menu.id))
        assert refused.exit_code == 1
        assert "external_drift" in refused.output

        forced = invoke(runner, root, "sync", str(menu.id), "--override")
        assert forced.exit_code == 0, forced.output
        assert len(loops(root)["footer"]["config"]["data"]) == 2

    def test_audit_written(self, runner, root):
        invoke(runner, root, "init-mirror")
        menu = make_menu(root)
        invoke(runner, root, "sync", str(menu.id))

        lines = (root / "audit" / "sync.ndjson").read_text().splitlines()
        assert [json.loads(line)["type"] for line in lines] == ["sync_queued", "sync_written"]


class TestCheck:

    def test_json_output(self, runner, root):
        invoke(runner, root, "init-mirror")
        menu = make_menu(root)

        result = invoke(runner, root, "check", str(menu.id), "--json")

        data = json.loads(result.output)
        assert data["enabled"] is True
        assert data["notice"]["state"] == "idle"

    def test_reports_conflict(self, runner, root):
        menu = make_menu(root)
        (root / "state").mkdir(exist_ok=True)
        (root / "state" / "loops.json").write_text(json.dumps({
            "site-footer": {"key": "footer", "config": {"type": "json", "data": []}},
        }))

        result = invoke(runner, root, "check", str(menu.id))

        assert "not syncing" in result.output
        assert "slug_conflict" in result.output


class TestSignals:

    def test_override_on_and_off(self, runner, root):
        result = invoke(runner, root, "override", "footer", "--on")
        assert "Override enabled for 'footer' (300s)" in result.output
        assert "sync_override" in invoke(runner, root, "signals", "footer").output

        invoke(runner, root, "override", "footer", "--off")
        assert "No live signals" in invoke(runner, root, "signals", "footer").output


class TestMenus:

    def test_lists_menus(self, runner, root):
        invoke(runner, root, "init-mirror")
        menu = make_menu(root)
        invoke(runner, root, "sync", str(menu.id))
        make_menu(root, name="Sidebar")

        result = invoke(runner, root, "menus")

        assert "✓" in result.output
        assert "sidebar" in result.output

    def test_warns_when_store_missing(self, runner, root):
        result = invoke(runner, root, "menus")
        assert "not initialized" in result.output


class TestMetricsCommand:

    def test_json(self, runner, root):
        result = invoke(runner, root, "metrics", "--format", "json")
        data = json.loads(result.output)
        assert "menumirror_sync_total" in data["counters"]


class TestPoll:

    def test_timed_out(self, runner, root):
        with mock.patch("menumirror.client.PollingClient") as client_cls:
            poller = client_cls.return_value
            poller.fetch_notice.return_value = {"state": "syncing", "menu_slug": "footer"}
            poller.start.return_value = True
            poller.run.return_value = PollState.TIMED_OUT
            poller.message = TIMEOUT_MESSAGE
            poller.show_override = True
            poller.override_label = "Allow syncing despite the conflict"

            result = invoke(runner, root, "poll", "footer", "--token", "t")

        assert result.exit_code == 1
        assert TIMEOUT_MESSAGE in result.output
        assert "override footer --on" in result.output

    def test_nothing_running(self, runner, root):
        with mock.patch("menumirror.client.PollingClient") as client_cls:
            poller = client_cls.return_value
            poller.fetch_notice.return_value = {"state": "idle", "menu_slug": "footer", "message": ""}
            poller.start.return_value = False

            result = invoke(runner, root, "poll", "footer")

        assert result.exit_code == 0
        assert "No sync running for 'footer'" in result.output
