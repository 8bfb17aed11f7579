from __future__ import annotations

"""Records handed to external collaborators."""

from datetime import datetime, timezone
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator

REPORT_ISSUES = ("incorrect_answer", "incorrect_question", "ambiguous", "typo", "offensive", "other")


class AttemptSummary(BaseModel):
    """Outcome of one completed weekly session."""

    date: str
    week_id: str
    score: int = Field(ge=0)
    total_elapsed_ms: int = Field(ge=0)
    question_count: int = Field(ge=1)
    time_budget_ms: int = Field(gt=0)
    device_id: str
    user_id: Optional[str] = None

    @property
    def identity(self) -> str:
        return f"u:{self.user_id}" if self.user_id else f"d:{self.device_id}"


class QuestionReport(BaseModel):
    question_id: str
    category: str
    difficulty: str
    selected: Optional[int] = None
    correct_index: int
    issues: Dict[str, bool] = Field(default_factory=dict)
    other: Optional[str] = None
    mode: str = "normal"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    device_id: Optional[str] = None

    @field_validator("issues")
    @classmethod
    def _known_issues(cls, v: Dict[str, bool]) -> Dict[str, bool]:
        unknown = set(v) - set(REPORT_ISSUES)
        if unknown:
            raise ValueError(f"Unknown issue flags: {sorted(unknown)}")
        return {k: bool(v.get(k, False)) for k in REPORT_ISSUES}

    def has_any_issue(self) -> bool:
        return any(self.issues.values()) or bool((self.other or "").strip())
