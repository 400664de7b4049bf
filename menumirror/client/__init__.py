"""Polling client for sync completion."""

from .poller import (
    COMPLETED_MESSAGE,
    FAILED_MESSAGE,
    KEY_MIGRATED_MESSAGE,
    TIMEOUT_MESSAGE,
    PollingClient,
    PollState,
)

__all__ = [
    "COMPLETED_MESSAGE",
    "FAILED_MESSAGE",
    "KEY_MIGRATED_MESSAGE",
    "TIMEOUT_MESSAGE",
    "PollingClient",
    "PollState",
]
