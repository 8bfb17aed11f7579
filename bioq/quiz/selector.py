from __future__ import annotations

"""Question selection for practice rounds and the daily weekly challenge."""

import math
from typing import List, Optional

from ..util.randomness import seeded_shuffle
from .models import Difficulty, Question, QuestionBank

WEEKLY_DEFAULT_COUNT = 15
WEEKLY_HARD_RATIO = 0.8


def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def select_practice(
    bank: QuestionBank,
    *,
    n: int,
    seed: str,
    category: Optional[str] = None,
    difficulty: Optional[Difficulty | str] = None,
) -> List[Question]:
    """Filter by category/difficulty, shuffle with `seed`, take the first n."""
    pool = list(bank)
    if category:
        pool = [q for q in pool if q.category == category]
    if difficulty:
        diff = Difficulty(difficulty)
        pool = [q for q in pool if q.difficulty == diff]
    return seeded_shuffle(pool, seed)[: max(0, min(int(n), len(pool)))]


def select_weekly(
    bank: QuestionBank,
    date_key: str,
    *,
    n: int = WEEKLY_DEFAULT_COUNT,
    hard_ratio: float = WEEKLY_HARD_RATIO,
) -> List[Question]:
    """Deterministic daily pick: mostly hard, the rest medium, backfilled if short.

    Same bank content and `date_key` always give the same ordered list.
    """
    target = min(int(n), len(bank))
    if target <= 0:
        return []
    hard = [q for q in bank if q.difficulty == Difficulty.HARD]
    med = [q for q in bank if q.difficulty == Difficulty.MEDIUM]
    rest = [q for q in bank if q.difficulty not in (Difficulty.HARD, Difficulty.MEDIUM)]

    need_hard = _round_half_up(target * hard_ratio)
    need_med = target - need_hard
    picks = seeded_shuffle(hard, f"WEEKLY-HARD-{date_key}")[:need_hard]
    picks += seeded_shuffle(med, f"WEEKLY-MED-{date_key}")[:need_med]

    if len(picks) < target:
        taken = {q.id for q in picks}
        pool = (
            seeded_shuffle(hard, f"WEEKLY-HARD-FILL-{date_key}")
            + seeded_shuffle(med, f"WEEKLY-MED-FILL-{date_key}")
            + seeded_shuffle(rest, f"WEEKLY-REST-{date_key}")
        )
        for q in pool:
            if len(picks) >= target:
                break
            if q.id in taken:
                continue
            taken.add(q.id)
            picks.append(q)

    return seeded_shuffle(picks, f"WEEKLY-FINAL-{date_key}")

