"""
Run the admin server directly.

Usage:
    python -m menumirror.admin
    python -m menumirror.admin --port 8000
    python -m menumirror.admin --root /srv/site
"""

import argparse
from pathlib import Path

from .server import run_server


def main():
    parser = argparse.ArgumentParser(description="Menu Mirror Admin Server")
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=5050, help="Port (default: 5050)")
    parser.add_argument("--root", type=Path, default=None, help="Project root (default: cwd)")
    parser.add_argument("--debug", action="store_true", help="Enable debug mode")

    args = parser.parse_args()

    run_server(
        host=args.host,
        port=args.port,
        debug=args.debug,
        project_root=args.root,
    )


if __name__ == "__main__":
    main()
