from __future__ import annotations

"""Attempt hand-off and best-effort question reports.

The attempt sink owns idempotency: it must refuse a second attempt for the
same identity and day with PersistenceConflict, which counts as saved here.
"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Protocol, Tuple

from ..app.explain import trace as xtrace
from ..errors import PersistenceConflict
from .schema import AttemptSummary, QuestionReport


class AttemptSink(Protocol):
    def save(self, summary: AttemptSummary) -> None: ...


@dataclass
class SaveState:
    saving: bool = False
    saved: bool = False
    error: Optional[str] = None


class MemoryAttemptSink:
    """In-process sink with the same one-per-identity-per-day rule."""

    def __init__(self) -> None:
        self.rows: Dict[Tuple[str, str], AttemptSummary] = {}

    def save(self, summary: AttemptSummary) -> None:
        key = (summary.date, summary.identity)
        if key in self.rows:
            raise PersistenceConflict(f"one_per_day: {summary.identity} already played {summary.date}")
        self.rows[key] = summary

    def all(self) -> List[AttemptSummary]:
        return list(self.rows.values())


def submit_attempt(sink: AttemptSink, summary: AttemptSummary, state: Optional[SaveState] = None) -> SaveState:
    """Save one attempt, folding a duplicate into success.

    Never raises; failures land in `state.error` for a manual retry.
    """
    state = state or SaveState()
    if state.saving or state.saved:
        return state
    state.saving = True
    state.error = None
    try:
        sink.save(summary)
        state.saved = True
        xtrace("attempt_saved", {"date": summary.date, "score": summary.score})
    except PersistenceConflict:
        state.saved = True
        xtrace("attempt_already_saved", {"date": summary.date})
    except Exception as e:
        state.error = str(e) or "Save failed"
        xtrace("attempt_save_failed", {"error": state.error})
    finally:
        state.saving = False
    return state


def persist_question_report(path: str | Path, report: QuestionReport) -> bool:
    """Append one report as an NDJSON line. Best effort."""
    if not report.has_any_issue():
        return False
    p = Path(path)
    try:
        p.parent.mkdir(parents=True, exist_ok=True)
        with p.open("a", encoding="utf-8") as f:
            f.write(json.dumps(report.model_dump(mode="json"), separators=(",", ":")) + "\n")
    except Exception:
        return False
    return True
