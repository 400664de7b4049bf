"""
Access — Request origin, actor capabilities and CSRF tokens.

Queued syncs only drain for administrative or API requests made by an
actor holding the configured capability. Endpoints that change sync
state additionally require a token bound to the action name.
"""

from __future__ import annotations

import hashlib
import hmac
from dataclasses import dataclass, field
from enum import Enum
from typing import FrozenSet, Optional

ADMIN_TOKEN_HEADER = "X-Admin-Token"


class RequestOrigin(str, Enum):
    ADMIN = "admin"
    API = "api"
    PUBLIC = "public"

    @classmethod
    def from_path(cls, path: str) -> "RequestOrigin":
        if path.startswith("/api/"):
            return cls.API
        if path.startswith("/admin/"):
            return cls.ADMIN
        return cls.PUBLIC

    @property
    def may_drain(self) -> bool:
        return self in (RequestOrigin.ADMIN, RequestOrigin.API)


@dataclass(frozen=True)
class Actor:
    """Whoever is making the current request."""

    name: str = "anonymous"
    capabilities: FrozenSet[str] = field(default_factory=frozenset)

    def can(self, capability: str) -> bool:
        return capability in self.capabilities

    @classmethod
    def anonymous(cls) -> "Actor":
        return cls()

    @classmethod
    def admin(cls, capability: str) -> "Actor":
        return cls(name="admin", capabilities=frozenset({capability}))


def actor_for_token(
    presented: Optional[str],
    admin_token: Optional[str],
    capability: str,
) -> Actor:
    """Resolve the actor from the admin token header."""
    if presented and admin_token and hmac.compare_digest(presented, admin_token):
        return Actor.admin(capability)
    return Actor.anonymous()


class TokenVerifier:
    """Issues and checks per-action CSRF tokens."""

    def __init__(self, secret: str):
        self._secret = secret.encode("utf-8")

    def issue(self, action: str) -> str:
        return hmac.new(self._secret, action.encode("utf-8"), hashlib.sha256).hexdigest()

    def verify(self, token: Optional[str], action: str) -> bool:
        if not token:
            return False
        return hmac.compare_digest(token, self.issue(action))
