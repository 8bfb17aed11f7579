from __future__ import annotations

"""Leaderboard configuration using Pydantic."""

from typing import List

from pydantic import BaseModel, Field


class LeaderboardConfig(BaseModel):
    """Knobs for building and rendering a weekly leaderboard.

    - top_n: rows shown before the caller's own row is appended
    - medals: labels for ranks 1..len(medals)
    - avatars: avatar paths; an identity always maps to the same one
    - me_label: display name used for the caller's own row
    """

    top_n: int = Field(10, ge=1)
    medals: List[str] = Field(default_factory=lambda: ["gold", "silver", "bronze"])
    avatars: List[str] = Field(default_factory=lambda: [f"/avatars/a{i:02d}.svg" for i in range(1, 13)])
    me_label: str = "You"
    anonymous_label: str = "Player"
