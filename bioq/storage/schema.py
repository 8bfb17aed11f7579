from __future__ import annotations

"""Pydantic model for the persisted, resumable weekly session."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..util.calendar import week_id_for

SESSION_SCHEMA = 1


class Status(str, Enum):
    UNANSWERED = "unanswered"
    CORRECT = "correct"
    WRONG = "wrong"
    PENALIZED = "penalized"


class SessionRecord(BaseModel):
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    week_id: str = Field(pattern=r"^\d{4}-W\d{2}$")
    question_ids: List[str] = Field(min_length=1)
    current_index: int = Field(ge=0)
    statuses: List[Status]
    elapsed_ms: List[int]
    score: int = Field(ge=0)
    time_budget_ms: int = Field(gt=0)
    seed: Optional[str] = None
    schema_version: int = SESSION_SCHEMA

    @field_validator("elapsed_ms")
    @classmethod
    def _non_negative(cls, v: List[int]) -> List[int]:
        if any(int(x) < 0 for x in v):
            raise ValueError("elapsed_ms values must be >= 0")
        return v

    @model_validator(mode="after")
    def _parallel_lists(self) -> "SessionRecord":
        n = len(self.question_ids)
        if len(self.statuses) != n or len(self.elapsed_ms) != n:
            raise ValueError("statuses, elapsed_ms and question_ids must have equal length")
        if self.current_index >= n:
            raise ValueError("current_index out of range")
        if self.week_id != week_id_for(self.date):
            raise ValueError("week_id does not match date")
        if self.schema_version != SESSION_SCHEMA:
            raise ValueError(f"unsupported schema_version {self.schema_version}")
        return self

    @classmethod
    def fresh(cls, *, date: str, question_ids: List[str], time_budget_ms: int, seed: Optional[str] = None) -> "SessionRecord":
        n = len(question_ids)
        return cls(
            date=date,
            week_id=week_id_for(date),
            question_ids=list(question_ids),
            current_index=0,
            statuses=[Status.UNANSWERED] * n,
            elapsed_ms=[0] * n,
            score=0,
            time_budget_ms=int(time_budget_ms),
            seed=seed,
        )

    def total_elapsed_ms(self) -> int:
        return sum(int(x) for x in self.elapsed_ms)
