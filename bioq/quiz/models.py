from __future__ import annotations

"""Question and question bank models.

The bank is read once from JSON in the web app's shape:
``{"id", "category", "difficulty", "prompt", "options", "correctIndex", "explanation"?}``.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..app.explain import trace as xtrace
from ..errors import LoadFailure


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Question(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str = Field(min_length=1)
    category: str
    difficulty: Difficulty
    prompt: str
    options: List[str] = Field(min_length=1)
    correct_index: int = Field(alias="correctIndex", ge=0)
    explanation: Optional[str] = None

    @model_validator(mode="after")
    def _correct_index_in_range(self) -> "Question":
        if self.correct_index >= len(self.options):
            raise ValueError(f"correctIndex {self.correct_index} out of range for {len(self.options)} options")
        return self

    def is_correct(self, option_index: int) -> bool:
        return int(option_index) == self.correct_index


class QuestionBank:
    """Ordered, read-only collection of questions with unique ids."""

    def __init__(self, questions: Iterable[Question]) -> None:
        self._questions: List[Question] = list(questions)
        self._by_id: Dict[str, Question] = {}
        for q in self._questions:
            if q.id in self._by_id:
                raise ValueError(f"Duplicate question id: {q.id}")
            self._by_id[q.id] = q

    def __len__(self) -> int:
        return len(self._questions)

    def __iter__(self) -> Iterator[Question]:
        return iter(self._questions)

    def __contains__(self, qid: object) -> bool:
        return qid in self._by_id

    @property
    def questions(self) -> List[Question]:
        return list(self._questions)

    def get(self, qid: str) -> Optional[Question]:
        return self._by_id.get(qid)

    def lookup(self, ids: Iterable[str]) -> List[Question]:
        """Resolve ids in order, skipping ids the bank no longer has."""
        return [self._by_id[i] for i in ids if i in self._by_id]

    def categories(self) -> List[str]:
        seen: Dict[str, None] = {}
        for q in self._questions:
            seen.setdefault(q.category, None)
        return list(seen)

    @classmethod
    def from_records(cls, records: List[Dict[str, Any]]) -> "QuestionBank":
        return cls(Question.model_validate(r) for r in records)


def load_bank(path: str | Path) -> QuestionBank:
    """Load the question bank JSON file.

    Raises:
        LoadFailure: file missing, not JSON, not a list, or an invalid record.
    """
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise LoadFailure(f"Could not load {p.name}: file not found") from e
    except (OSError, json.JSONDecodeError) as e:
        raise LoadFailure(f"Could not load {p.name}: {e}") from e
    if not isinstance(data, list):
        raise LoadFailure(f"Could not load {p.name}: expected a list of questions")
    try:
        bank = QuestionBank.from_records(data)
    except (ValidationError, ValueError, TypeError) as e:
        raise LoadFailure(f"Could not load {p.name}: {e}") from e
    xtrace("bank_loaded", {"path": str(p), "questions": len(bank)})
    return bank
