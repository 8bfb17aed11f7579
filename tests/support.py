from __future__ import annotations

"""Shared builders for the test suite."""

from typing import List

from bioq.quiz.models import Question, QuestionBank

CATEGORIES = ["cell", "genetics", "anatomy", "physiology", "microbio", "biochem"]


class FakeClock:
    """Millisecond clock that only moves when told to."""

    def __init__(self, start: int = 1_000_000) -> None:
        self.now = start

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


def make_question(qid: str, difficulty: str = "hard", category: str = "cell", correct: int = 0) -> Question:
    return Question(
        id=qid,
        category=category,
        difficulty=difficulty,
        prompt=f"Prompt {qid}?",
        options=["A", "B", "C", "D"],
        correctIndex=correct,
        explanation=f"Because {qid}.",
    )


def make_bank(hard: int = 20, medium: int = 10, easy: int = 5) -> QuestionBank:
    questions: List[Question] = []
    n = 0
    for diff, count in (("hard", hard), ("medium", medium), ("easy", easy)):
        for i in range(count):
            questions.append(make_question(f"{diff[0]}{i:03d}", diff, CATEGORIES[n % len(CATEGORIES)], n % 4))
            n += 1
    return QuestionBank(questions)


def wrong_option(q: Question) -> int:
    return (q.correct_index + 1) % len(q.options)
