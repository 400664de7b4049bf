"""
Shared fixtures for engine and admin route tests.

Engine fixtures run against a temp menus file with an in-memory loop
store and signal store on a controllable clock. The Flask app fixture
wires the same stores into ``Services`` so route tests can inspect them
directly after a request has drained.
"""

from __future__ import annotations

import copy
from pathlib import Path

import pytest

pytest.importorskip("flask")

ADMIN_TOKEN = "test-admin-token"

_MAIN_ITEMS = [
    {"id": 1, "title": "Home", "url": "/"},
    {"id": 2, "title": "About &amp; Team", "url": "/about", "classes": ["nav", ""]},
    {"id": 3, "title": "Careers", "url": "/about/careers", "parent_id": 2, "target": "_blank"},
]

_MAIN_TREE = [
    {"label": "Home", "url": "/"},
    {
        "label": "About & Team",
        "url": "/about",
        "classes": "nav",
        "children": [
            {"label": "Careers", "url": "/about/careers", "target": "_blank"},
        ],
    },
]


class FakeClock:
    """Callable clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def reset_metrics():
    """Metrics are process-global; start every test from zero."""
    from menumirror.observability.metrics import metrics

    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def main_items():
    """Three items: two roots, one child, with an entity and an empty class."""
    return copy.deepcopy(_MAIN_ITEMS)


@pytest.fixture
def main_tree():
    """What ``main_items`` normalizes to."""
    return copy.deepcopy(_MAIN_TREE)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings(tmp_path: Path):
    from menumirror.config import SyncSettings

    return SyncSettings(
        state_dir=tmp_path / "state",
        audit_dir=tmp_path / "audit",
        admin_token=ADMIN_TOKEN,
        secret="test-secret",
    )


@pytest.fixture
def tree(settings):
    from menumirror.persistence import JsonTreeStore

    return JsonTreeStore(settings.menus_path)


@pytest.fixture
def mirror():
    """Initialized, empty loop store."""
    from menumirror.persistence import MemoryMirrorStore

    return MemoryMirrorStore({})


@pytest.fixture
def signals(clock):
    from menumirror.signals import MemorySignalStore

    return MemorySignalStore(clock=clock)


@pytest.fixture
def normalizer():
    from menumirror.engine import TreeNormalizer

    return TreeNormalizer()


@pytest.fixture
def audit(settings):
    from menumirror.persistence import AuditWriter

    return AuditWriter(settings.audit_path)


@pytest.fixture
def executor(tree, mirror, signals, normalizer, audit):
    from menumirror.engine import SyncExecutor

    return SyncExecutor(tree, mirror, signals, normalizer, audit)


@pytest.fixture
def queue(tree, normalizer, signals, audit):
    from menumirror.engine import SyncQueue

    return SyncQueue(tree, normalizer, signals, audit)


@pytest.fixture
def make_menu(tree):
    """Create a menu (optionally with items) without triggering any sync."""

    def _make(name: str = "Main Menu", items=None, slug=None):
        menu = tree.create_menu(name, slug=slug)
        if items:
            menu = tree.update_menu(menu.id, items=items)
        return menu

    return _make


@pytest.fixture
def services(settings, mirror, signals):
    """Services over the same menus file as the ``tree`` fixture."""
    from menumirror.services import Services

    return Services.from_settings(settings, mirror=mirror, signals=signals)


@pytest.fixture
def app(services, tmp_path: Path):
    """Flask test app sharing the fixture stores."""
    from menumirror.admin.server import create_app

    app = create_app(services=services, project_root=tmp_path)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def auth():
    """Headers that make a request an administrator's."""
    from menumirror.access import ADMIN_TOKEN_HEADER

    return {ADMIN_TOKEN_HEADER: ADMIN_TOKEN}


@pytest.fixture
def nonce(services):
    from menumirror.services import SYNC_ACTION

    return services.tokens.issue(SYNC_ACTION)
