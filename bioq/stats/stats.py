from __future__ import annotations

"""Finish-screen summary: score tiers, encouragement lines, formatting."""

import random
from typing import Dict, List, Optional, Sequence

from ..storage.schema import Status
from ..util.calendar import format_mmss

MESSAGES: Dict[str, List[str]] = {
    "perfect": [
        "Perfect! You nailed them all!",
        "Flawless run, amazing!",
        "Aced it from start to finish!",
        "Perfection unlocked. Bravo!",
        "Absolute mastery: 100%!",
    ],
    "near": [
        "So close to perfect, great job!",
        "Excellent work, just a hair off!",
        "Almost flawless. Impressive!",
        "You're right there. Superb!",
        "Fantastic score, nearly perfect!",
    ],
    "low": [
        "Keep playing, you'll get better in no time!",
        "Great start! Every try builds skill.",
        "Don't stop now. Progress comes fast!",
        "You've got this. Try again and level up!",
        "Learning in progress, keep it up!",
    ],
    "default": [
        "Nice work, keep the streak going!",
        "Solid score, on to the next!",
        "Good job! Want to try another?",
        "Well done, practice makes perfect!",
        "Strong effort. Play again?",
    ],
}


def score_tier(score: int, total: int) -> str:
    """perfect (100%), near (>= 90%), low (<= 20%), else default."""
    pct = (score / max(1, total)) * 100
    if pct == 100:
        return "perfect"
    if pct >= 90:
        return "near"
    if pct <= 20:
        return "low"
    return "default"


def finish_message(score: int, total: int, rng: Optional[random.Random] = None) -> str:
    rng = rng or random.Random()
    return rng.choice(MESSAGES[score_tier(score, total)])


def status_marks(statuses: Sequence[Status]) -> str:
    marks = {Status.CORRECT: "+", Status.WRONG: "x", Status.PENALIZED: "!", Status.UNANSWERED: "."}
    return "".join(marks.get(Status(s), "?") for s in statuses)


def format_summary(score: int, total: int, total_ms: int, statuses: Sequence[Status] = ()) -> str:
    """Return a human-readable summary of a finished session."""
    lines = [f"Score: {score} / {total}", f"Total time: {format_mmss(total_ms)}"]
    if statuses:
        lines.append(f"Answers: {status_marks(statuses)}")
        penalized = sum(1 for s in statuses if Status(s) == Status.PENALIZED)
        if penalized:
            lines.append(f"Penalized (left mid-question): {penalized}")
    return "\n".join(lines)
