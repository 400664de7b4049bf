"""CLI subcommand groups, registered on the main ``cli`` group."""

from .sync import check, init_mirror, override, poll, signals, sync

__all__ = ["check", "init_mirror", "override", "poll", "signals", "sync"]
