from __future__ import annotations

"""Day-keyed persistence of the weekly SessionRecord.

Every operation is best effort: unreadable or invalid records load as
None, and write failures are swallowed so the timed quiz never stops.
Partial updates go through `update()`, which re-reads the stored record
and applies the delta to it rather than to an in-memory copy.
"""

import json
from typing import Callable, Dict, Optional

from pydantic import ValidationError

from ..app.explain import trace as xtrace
from ..errors import CorruptLocalState
from .local import KeyValueStore
from .schema import SessionRecord, Status


def session_key(date: str) -> str:
    return f"weekly:session:{date}"


def played_key(date: str) -> str:
    return f"weekly:played:{date}"


def parse_record(raw: str) -> SessionRecord:
    """Parse a stored record.

    Raises:
        CorruptLocalState: not JSON or not a valid SessionRecord.
    """
    try:
        return SessionRecord.model_validate(json.loads(raw))
    except (ValueError, TypeError, ValidationError) as e:
        raise CorruptLocalState(str(e)) from e


class SessionStore:
    def __init__(self, kv: KeyValueStore) -> None:
        self.kv = kv

    def load(self, date: str) -> Optional[SessionRecord]:
        try:
            raw = self.kv.get(session_key(date))
        except Exception:
            return None
        if not raw:
            return None
        try:
            rec = parse_record(raw)
        except CorruptLocalState as e:
            xtrace("session_record_discarded", {"date": date, "reason": str(e)[:120]})
            return None
        if rec.date != date:
            return None
        return rec

    def save(self, record: SessionRecord) -> bool:
        try:
            self.kv.set(session_key(record.date), record.model_dump_json())
        except Exception:
            return False
        return True

    def delete(self, date: str) -> None:
        try:
            self.kv.delete(session_key(date))
        except Exception:
            pass

    def update(
        self,
        date: str,
        *,
        fallback: Callable[[], SessionRecord],
        current_index: Optional[int] = None,
        statuses: Optional[Dict[int, Status]] = None,
        elapsed_ms: Optional[Dict[int, int]] = None,
        score_delta: int = 0,
    ) -> Optional[SessionRecord]:
        """Read-merge-write a partial change into the latest stored record.

        `fallback` builds the base record when nothing valid is stored.
        Returns the record written, or None if it could not be built.
        """
        base = self.load(date)
        if base is None:
            try:
                base = fallback()
            except (ValueError, ValidationError):
                return None
        data = base.model_dump()
        n = len(data["question_ids"])
        if current_index is not None:
            data["current_index"] = max(0, min(int(current_index), n - 1))
        for idx, st in (statuses or {}).items():
            if 0 <= idx < n:
                data["statuses"][idx] = Status(st)
        for idx, ms in (elapsed_ms or {}).items():
            if 0 <= idx < n:
                data["elapsed_ms"][idx] = max(0, min(int(ms), data["time_budget_ms"]))
        if score_delta:
            data["score"] = max(0, int(data["score"]) + int(score_delta))
        try:
            merged = SessionRecord.model_validate(data)
        except ValidationError:
            return None
        self.save(merged)
        return merged

    def mark_played(self, date: str) -> None:
        try:
            self.kv.set(played_key(date), "1")
        except Exception:
            pass

    def has_played(self, date: str) -> bool:
        try:
            return self.kv.get(played_key(date)) == "1"
        except Exception:
            return False
