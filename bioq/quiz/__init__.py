from .models import Difficulty, Question, QuestionBank, load_bank
from .selector import select_practice, select_weekly
from .session import AnswerResult, QuestionPhase, QuizSession, SaveState, SessionPhase
from .timer import QuestionTimer, monotonic_ms

__all__ = [
    "Difficulty",
    "Question",
    "QuestionBank",
    "load_bank",
    "select_practice",
    "select_weekly",
    "AnswerResult",
    "QuestionPhase",
    "QuizSession",
    "SaveState",
    "SessionPhase",
    "QuestionTimer",
    "monotonic_ms",
]
