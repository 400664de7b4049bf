"""
Local Admin Server — menu editing API and sync endpoints.

Usage:
    python -m menumirror.admin
    # Serves http://localhost:5050

Features:
    - Edit menus and their items (each edit queues a loop sync)
    - Check sync status and the conflict notice for a menu
    - Enable or clear the conflict override
    - Poll for sync completion
"""

from .server import create_app, run_server

__all__ = ["create_app", "run_server"]
