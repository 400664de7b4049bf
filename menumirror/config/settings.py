"""
Sync Settings — Load configuration from YAML and MENUMIRROR_* variables.

Resolution order (later wins):
    1. Model defaults
    2. menumirror.yaml in the project root (optional)
    3. MENUMIRROR_* environment variables

Minimal config for a local admin server:
    MENUMIRROR_ADMIN_TOKEN=change-me
    MENUMIRROR_SECRET=some-long-random-string

Per-topic TTL overrides are given in the YAML file:

    signal_ttls:
      sync_override: 600
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

SETTINGS_FILENAME = "menumirror.yaml"

# Public fallback; action tokens signed with it can be forged
DEFAULT_SECRET = "menumirror-dev-secret"

_ENV_PREFIX = "MENUMIRROR_"

# env suffix → (field name, caster)
_ENV_FIELDS = {
    "STATE_DIR": ("state_dir", Path),
    "AUDIT_DIR": ("audit_dir", Path),
    "CAPABILITY": ("capability", str),
    "ADMIN_TOKEN": ("admin_token", str),
    "SECRET": ("secret", str),
    "MAX_POLLS": ("max_polls", int),
    "POLL_INTERVAL": ("poll_interval_seconds", float),
}


class SyncSettings(BaseModel):
    """Runtime settings for the sync engine and admin server."""

    state_dir: Path = Path("state")
    audit_dir: Path = Path("audit")

    # Capability an actor needs before queued syncs are drained
    capability: str = "edit_theme_options"
    admin_token: Optional[str] = None
    secret: str = DEFAULT_SECRET

    max_polls: int = Field(default=15, ge=1)
    poll_interval_seconds: float = Field(default=1.0, gt=0)

    signal_ttls: Dict[str, int] = Field(default_factory=dict)

    @property
    def menus_path(self) -> Path:
        return self.state_dir / "menus.json"

    @property
    def mirror_path(self) -> Path:
        return self.state_dir / "loops.json"

    @property
    def signals_path(self) -> Path:
        return self.state_dir / "signals.json"

    @property
    def audit_path(self) -> Path:
        return self.audit_dir / "sync.ndjson"

    def rooted_at(self, root: Path) -> "SyncSettings":
        """Return a copy with relative directories resolved against ``root``."""
        updates = {}
        if not self.state_dir.is_absolute():
            updates["state_dir"] = root / self.state_dir
        if not self.audit_dir.is_absolute():
            updates["audit_dir"] = root / self.audit_dir
        return self.model_copy(update=updates)

    @classmethod
    def from_env(cls, base: Optional["SyncSettings"] = None) -> "SyncSettings":
        """Apply MENUMIRROR_* environment variables on top of ``base``."""
        data: Dict[str, Any] = (base or cls()).model_dump()

        for suffix, (field_name, caster) in _ENV_FIELDS.items():
            raw = os.environ.get(f"{_ENV_PREFIX}{suffix}")
            if raw is None or raw == "":
                continue
            try:
                data[field_name] = caster(raw)
            except ValueError:
                logger.warning(f"{_ENV_PREFIX}{suffix}={raw!r} is not valid, ignoring")

        return cls(**data)


def load_settings(root: Optional[Path] = None, path: Optional[Path] = None) -> SyncSettings:
    """
    Load settings for a project root.

    Args:
        root: Project root; relative state/audit dirs resolve against it.
              Defaults to the current working directory.
        path: Explicit YAML file. Defaults to ``<root>/menumirror.yaml``.

    Returns:
        Fully resolved SyncSettings
    """
    root = root or Path.cwd()
    path = path or root / SETTINGS_FILENAME

    settings = SyncSettings()
    if path.exists():
        with path.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        settings = SyncSettings(**data)
        logger.info(f"Loaded settings from {path}")

    settings = SyncSettings.from_env(settings)

    if not settings.admin_token:
        logger.warning(
            f"{_ENV_PREFIX}ADMIN_TOKEN is not set; admin and API requests will have no capabilities"
        )

    if settings.secret == DEFAULT_SECRET:
        logger.warning(
            f"{_ENV_PREFIX}SECRET is not set; action tokens are signed with the public default secret"
        )

    return settings.rooted_at(root)
