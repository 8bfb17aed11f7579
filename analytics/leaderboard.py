from __future__ import annotations

"""Client-side weekly leaderboard.

Attempts are grouped by identity (``u:<user>`` when signed in, else
``d:<device>``), points and time are summed over the week, and rows are
ordered by points descending with total time as the tie-breaker.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np
import pandas as pd

from bioq.app.explain import trace as xtrace
from bioq.util.randomness import hash_seed
from storage.schema import identity_key

from .config import LeaderboardConfig

LEADERBOARD_COLUMNS = ["rank", "key", "name", "avatar", "points", "total_ms", "medal"]


def avatar_for(identity: str, cfg: Optional[LeaderboardConfig] = None) -> str:
    cfg = cfg or LeaderboardConfig()
    return cfg.avatars[hash_seed(identity) % len(cfg.avatars)]


def aggregate_week(attempts: pd.DataFrame) -> pd.DataFrame:
    """Sum points and total_ms per identity; returns columns key, user_id, device_id, points, total_ms."""
    if attempts.empty:
        return pd.DataFrame(
            {
                "key": pd.Series(dtype="string"),
                "user_id": pd.Series(dtype="string"),
                "device_id": pd.Series(dtype="string"),
                "points": pd.Series(dtype="int64"),
                "total_ms": pd.Series(dtype="int64"),
            }
        )
    df = attempts.copy()
    df["key"] = [identity_key(u, d) for u, d in zip(df["user_id"], df["device_id"])]
    df["points"] = df["points"].fillna(0).astype("int64")
    df["total_ms"] = df["total_ms"].fillna(0).astype("int64")
    agg = (
        df.groupby("key", sort=False)
        .agg(user_id=("user_id", "first"), device_id=("device_id", "first"), points=("points", "sum"), total_ms=("total_ms", "sum"))
        .reset_index()
    )
    return agg


def rank_rows(agg: pd.DataFrame) -> pd.DataFrame:
    """Order by points desc then total_ms asc, keeping first-appearance order on ties, and assign 1-based ranks."""
    out = agg.sort_values(["points", "total_ms"], ascending=[False, True], kind="stable").reset_index(drop=True)
    out["rank"] = np.arange(1, len(out) + 1, dtype="int64")
    return out


def build_leaderboard(
    attempts: pd.DataFrame,
    *,
    me_key: Optional[str] = None,
    profiles: Optional[Dict[str, Dict[str, Optional[str]]]] = None,
    cfg: Optional[LeaderboardConfig] = None,
) -> pd.DataFrame:
    """Full ranked leaderboard with display names, avatars and medals.

    `profiles` maps user id -> {"display_name", "avatar_url"}.
    """
    cfg = cfg or LeaderboardConfig()
    profiles = profiles or {}
    ranked = rank_rows(aggregate_week(attempts))
    names: List[str] = []
    avatars: List[str] = []
    for key, user_id in zip(ranked["key"], ranked["user_id"]):
        computed = avatar_for(key, cfg)
        prof = profiles.get(str(user_id)) if key.startswith("u:") else None
        if key == me_key:
            name = cfg.me_label
        elif prof is not None:
            name = prof.get("display_name") or cfg.anonymous_label
        else:
            name = f"{cfg.anonymous_label} · {key[-4:]}"
        names.append(name)
        avatars.append((prof or {}).get("avatar_url") or computed)
    ranked["name"] = names
    ranked["avatar"] = avatars
    ranked["medal"] = [cfg.medals[r - 1] if r <= len(cfg.medals) else "" for r in ranked["rank"]]
    xtrace("leaderboard_built", {"players": len(ranked), "me": me_key})
    return ranked[LEADERBOARD_COLUMNS]


@dataclass
class LeaderboardView:
    top: pd.DataFrame
    me: Optional[pd.Series]
    me_rank: Optional[int]

    @property
    def me_in_top(self) -> bool:
        return self.me_rank is not None and self.me_rank <= len(self.top)


def leaderboard_view(board: pd.DataFrame, *, me_key: Optional[str], top_n: int = 10) -> LeaderboardView:
    """Top-N slice plus the caller's own row (possibly outside the top)."""
    top = board.head(top_n)
    if me_key is None:
        return LeaderboardView(top=top, me=None, me_rank=None)
    hits = board[board["key"] == me_key]
    if hits.empty:
        return LeaderboardView(top=top, me=None, me_rank=None)
    me = hits.iloc[0]
    return LeaderboardView(top=top, me=me, me_rank=int(me["rank"]))
