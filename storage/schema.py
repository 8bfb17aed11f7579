from __future__ import annotations

"""Schema constants and Pydantic models for the Parquet-backed attempt tables."""

from datetime import datetime, timezone
from typing import Optional

import pandas as pd
from pydantic import BaseModel, Field, field_validator, model_validator

# --- Constants ---

ATTEMPTS_DTYPES = {
    "day_date": "string",
    "week_id": "string",
    "points": "UInt16",
    "total_ms": "UInt32",
    "question_count": "UInt16",
    "t_per_q": "UInt16",
    "device_id": "string",
    "user_id": "string",
    # timezone-aware UTC timestamps
    "created_at": pd.DatetimeTZDtype(tz="UTC"),
}

TROPHIES_DTYPES = {
    "identity": "string",
    "wins_1st": "UInt32",
    "wins_2nd": "UInt32",
    "wins_3rd": "UInt32",
}

FINALIZED_DTYPES = {
    "week_id": "string",
    "finalized_at": pd.DatetimeTZDtype(tz="UTC"),
}


def identity_key(user_id: Optional[str], device_id: Optional[str]) -> str:
    """Leaderboard identity: signed-in user first, else the device."""
    if user_id is not None and not pd.isna(user_id) and str(user_id):
        return f"u:{user_id}"
    if device_id is None or pd.isna(device_id) or not str(device_id):
        return "d:anon"
    return f"d:{device_id}"


# --- Pydantic models ---

class AttemptRow(BaseModel):
    day_date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    week_id: str = Field(pattern=r"^\d{4}-W\d{2}$")
    points: int = Field(ge=0, le=65535)
    total_ms: int = Field(ge=0, le=4294967295)
    question_count: int = Field(ge=1, le=65535)
    t_per_q: int = Field(ge=1, le=65535)
    device_id: str
    user_id: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @model_validator(mode="after")
    def _points_le_questions(self) -> "AttemptRow":
        if self.points > self.question_count:
            raise ValueError("points must be <= question_count")
        return self

    @field_validator("created_at")
    @classmethod
    def _ensure_utc(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @property
    def identity(self) -> str:
        return identity_key(self.user_id, self.device_id)
