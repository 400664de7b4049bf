"""
Polling Client — waits for a queued sync to finish after a save.

Runs in a later request than the save. It reads the terminal signals
through the completion-poll endpoint once per interval until one of
them appears or the poll budget runs out:

    IDLE ──start()──▶ POLLING ──▶ COMPLETED | FAILED | TIMED_OUT

Polling only starts when the notice for the menu is the syncing one.
The budget exists because a write request can die before its drain
runs, leaving no terminal signal at all.

## Usage

    with httpx.Client(base_url="http://127.0.0.1:5050") as http:
        poller = PollingClient(http, admin_token="...")
        notice = poller.fetch_notice("main-menu")
        if poller.start(notice):
            poller.run()
        print(poller.message)
"""

from __future__ import annotations

import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, Optional

import httpx

from ..access import ADMIN_TOKEN_HEADER
from ..engine.status import OVERRIDE_LABEL, NoticeState

logger = logging.getLogger(__name__)

DEFAULT_MAX_POLLS = 15
DEFAULT_INTERVAL_SECONDS = 1.0

STATUS_ENDPOINT = "/api/sync/status"
COMPLETED_ENDPOINT = "/api/sync/completed"

COMPLETED_MESSAGE = "{name} has been synced"
FAILED_MESSAGE = "Failed to sync menu. Please try again."
TIMEOUT_MESSAGE = "Sync timed out. Please try saving the menu again."
KEY_MIGRATED_MESSAGE = (
    "The new menu key is '{key}'. Please update any templates that reference this loop."
)


class PollState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    COMPLETED = "completed"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in (PollState.COMPLETED, PollState.FAILED, PollState.TIMED_OUT)


class PollingClient:
    """Drives the poll loop for one menu at a time."""

    def __init__(
        self,
        http: httpx.Client,
        admin_token: Optional[str] = None,
        max_polls: int = DEFAULT_MAX_POLLS,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.http = http
        self.admin_token = admin_token
        self.max_polls = max_polls
        self.interval_seconds = interval_seconds
        self._sleep = sleep

        self.state = PollState.IDLE
        self.poll_count = 0
        self.menu_slug: Optional[str] = None
        self.menu_name = ""
        self.nonce: Optional[str] = None
        self.message = ""
        self.key_migrated: Optional[str] = None
        self.show_override = False
        self.override_label = OVERRIDE_LABEL
        self.last_error: Optional[str] = None

    # ── HTTP ──────────────────────────────────────────────────────

    def _headers(self) -> Dict[str, str]:
        if not self.admin_token:
            return {}
        return {ADMIN_TOKEN_HEADER: self.admin_token}

    def fetch_notice(self, menu_slug: str) -> Dict[str, Any]:
        """Read the notice for a menu. Raises httpx errors as-is."""
        response = self.http.get(
            STATUS_ENDPOINT,
            params={"menu_slug": menu_slug},
            headers=self._headers(),
        )
        response.raise_for_status()
        return response.json()["data"]

    # ── State machine ─────────────────────────────────────────────

    def start(self, notice: Dict[str, Any]) -> bool:
        """
        Begin polling for the menu in ``notice``.

        Returns False, leaving the client idle, unless the notice says a
        sync is underway.
        """
        if notice.get("state") != NoticeState.SYNCING.value:
            logger.debug(f"Not polling: notice state is {notice.get('state')!r}")
            return False

        self.state = PollState.POLLING
        self.poll_count = 0
        self.menu_slug = notice["menu_slug"]
        self.menu_name = notice.get("menu_name") or self.menu_slug
        self.nonce = notice.get("nonce")
        self.message = notice.get("message", "")
        self.key_migrated = None
        self.show_override = False
        self.last_error = None
        logger.info(f"Polling for sync of '{self.menu_slug}'", extra={"menu_slug": self.menu_slug})
        return True

    def tick(self) -> PollState:
        """Run one poll. No-op outside POLLING."""
        if self.state != PollState.POLLING:
            return self.state

        self.poll_count += 1
        if self.poll_count > self.max_polls:
            self._time_out()
            return self.state

        try:
            response = self.http.post(
                COMPLETED_ENDPOINT,
                json={"menu_slug": self.menu_slug, "nonce": self.nonce},
                headers=self._headers(),
            )
            response.raise_for_status()
            data = response.json().get("data") or {}
        except (httpx.HTTPError, ValueError) as e:
            # Stop quietly; the notice stays as it was
            logger.warning(f"Poll for '{self.menu_slug}' failed: {e}", extra={"menu_slug": self.menu_slug})
            self.last_error = str(e)
            self.state = PollState.IDLE
            return self.state

        if data.get("sync_completed"):
            self._complete(data.get("key_migrated"))
        elif data.get("sync_failed"):
            self._fail()
        return self.state

    def run(self) -> PollState:
        """Tick until a terminal state, sleeping ``interval_seconds`` between ticks."""
        while self.state == PollState.POLLING:
            self.tick()
            if self.state == PollState.POLLING:
                self._sleep(self.interval_seconds)
        return self.state

    # ── Terminal states ───────────────────────────────────────────

    def _complete(self, key_migrated: Optional[str]) -> None:
        self.state = PollState.COMPLETED
        self.message = COMPLETED_MESSAGE.format(name=self.menu_name)
        self.show_override = False
        if key_migrated:
            self.key_migrated = key_migrated
            self.message = f"{self.message}. {KEY_MIGRATED_MESSAGE.format(key=key_migrated)}"
        logger.info(f"Sync of '{self.menu_slug}' completed after {self.poll_count} poll(s)")

    def _fail(self) -> None:
        self.state = PollState.FAILED
        self.message = FAILED_MESSAGE
        self.show_override = True
        logger.warning(f"Sync of '{self.menu_slug}' failed")

    def _time_out(self) -> None:
        self.state = PollState.TIMED_OUT
        self.poll_count = self.max_polls
        self.message = TIMEOUT_MESSAGE
        self.show_override = True
        logger.warning(f"Gave up waiting for '{self.menu_slug}' after {self.max_polls} polls")
