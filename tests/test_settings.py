"""
Tests for settings loading (YAML file + MENUMIRROR_* environment).
"""

from __future__ import annotations

from pathlib import Path

import pytest

from menumirror.config import DEFAULT_SECRET, SETTINGS_FILENAME, SyncSettings, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for suffix in ("STATE_DIR", "AUDIT_DIR", "CAPABILITY", "ADMIN_TOKEN", "SECRET", "MAX_POLLS", "POLL_INTERVAL"):
        monkeypatch.delenv(f"MENUMIRROR_{suffix}", raising=False)


class TestDefaults:

    def test_defaults(self, tmp_path: Path):
        settings = load_settings(tmp_path)

        assert settings.capability == "edit_theme_options"
        assert settings.max_polls == 15
        assert settings.poll_interval_seconds == 1.0
        assert settings.state_dir == tmp_path / "state"
        assert settings.menus_path == tmp_path / "state" / "menus.json"
        assert settings.mirror_path == tmp_path / "state" / "loops.json"
        assert settings.signals_path == tmp_path / "state" / "signals.json"
        assert settings.audit_path == tmp_path / "audit" / "sync.ndjson"

    def test_invalid_values_rejected(self):
        with pytest.raises(ValueError):
            SyncSettings(max_polls=0)


class TestYaml:

    def test_file_values(self, tmp_path: Path):
        (tmp_path / SETTINGS_FILENAME).write_text(
            "capability: manage_menus\n"
            "max_polls: 5\n"
            "signal_ttls:\n"
            "  sync_override: 600\n"
        )
        settings = load_settings(tmp_path)

        assert settings.capability == "manage_menus"
        assert settings.max_polls == 5
        assert settings.signal_ttls == {"sync_override": 600}

    def test_empty_file(self, tmp_path: Path):
        (tmp_path / SETTINGS_FILENAME).write_text("")
        assert load_settings(tmp_path).max_polls == 15

    def test_absolute_dirs_kept(self, tmp_path: Path):
        elsewhere = tmp_path / "elsewhere"
        (tmp_path / SETTINGS_FILENAME).write_text(f"state_dir: {elsewhere}\n")
        assert load_settings(tmp_path).state_dir == elsewhere


class TestEnvironment:

    def test_env_overrides_file(self, tmp_path: Path, monkeypatch):
        (tmp_path / SETTINGS_FILENAME).write_text("max_polls: 5\n")
        monkeypatch.setenv("MENUMIRROR_MAX_POLLS", "20")
        monkeypatch.setenv("MENUMIRROR_ADMIN_TOKEN", "secret-token")

        settings = load_settings(tmp_path)

        assert settings.max_polls == 20
        assert settings.admin_token == "secret-token"

    def test_invalid_env_ignored(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("MENUMIRROR_POLL_INTERVAL", "soon")
        assert load_settings(tmp_path).poll_interval_seconds == 1.0

    def test_missing_admin_token_warns(self, tmp_path: Path, caplog):
        load_settings(tmp_path)
        assert "ADMIN_TOKEN is not set" in caplog.text

    def test_default_secret_warns(self, tmp_path: Path, caplog):
        settings = load_settings(tmp_path)
        assert settings.secret == DEFAULT_SECRET
        assert "SECRET is not set" in caplog.text

    def test_custom_secret_does_not_warn(self, tmp_path: Path, monkeypatch, caplog):
        monkeypatch.setenv("MENUMIRROR_SECRET", "a-long-random-secret")
        settings = load_settings(tmp_path)
        assert settings.secret == "a-long-random-secret"
        assert "SECRET is not set" not in caplog.text
