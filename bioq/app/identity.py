from __future__ import annotations

"""Identity provider seam. OAuth itself lives outside this package."""

from dataclasses import dataclass
from typing import Optional, Protocol


class IdentityProvider(Protocol):
    def current_user_id(self) -> Optional[str]: ...


class AnonymousIdentity:
    def current_user_id(self) -> Optional[str]:
        return None


@dataclass
class StaticIdentity:
    """A fixed, already-authenticated user (CLI --user, tests)."""

    user_id: Optional[str]

    def current_user_id(self) -> Optional[str]:
        return self.user_id or None


def safe_user_id(identity: Optional[IdentityProvider]) -> Optional[str]:
    if identity is None:
        return None
    try:
        return identity.current_user_id()
    except Exception:
        return None
