from __future__ import annotations

"""Weekly Challenge gate: who may start today's session."""

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from storage.store import has_attempt

from ..storage.session_store import SessionStore
from .explain import trace as xtrace
from .identity import IdentityProvider, safe_user_id


@dataclass(frozen=True)
class GateDecision:
    allowed: bool
    reason: str
    user_id: Optional[str] = None


def played_today(
    store: SessionStore,
    date: str,
    *,
    data_dir: Optional[Path] = None,
    user_id: Optional[str] = None,
    device_id: Optional[str] = None,
) -> bool:
    """Local marker first, then the attempt table; a remote hit is cached locally."""
    if store.has_played(date):
        return True
    if data_dir is None:
        return False
    try:
        hit = has_attempt(Path(data_dir), date, user_id=user_id, device_id=device_id)
    except Exception:
        # local flag still works
        return False
    if hit:
        store.mark_played(date)
    return hit


def check_weekly_gate(
    store: SessionStore,
    date: str,
    *,
    identity: Optional[IdentityProvider],
    require_sign_in: bool = True,
    data_dir: Optional[Path] = None,
    device_id: Optional[str] = None,
) -> GateDecision:
    user_id = safe_user_id(identity)
    if require_sign_in and not user_id:
        return GateDecision(False, "Sign in to play the Weekly Challenge.")
    if played_today(store, date, data_dir=data_dir, user_id=user_id, device_id=device_id):
        xtrace("weekly_gate_closed", {"date": date})
        return GateDecision(False, "You already played today.", user_id)
    return GateDecision(True, "ok", user_id)
