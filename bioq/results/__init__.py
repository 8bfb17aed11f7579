from .schema import AttemptSummary, QuestionReport, REPORT_ISSUES
from .persist import AttemptSink, MemoryAttemptSink, SaveState, persist_question_report, submit_attempt

__all__ = [
    "AttemptSummary",
    "QuestionReport",
    "REPORT_ISSUES",
    "AttemptSink",
    "MemoryAttemptSink",
    "SaveState",
    "persist_question_report",
    "submit_attempt",
]
