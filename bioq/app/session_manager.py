from __future__ import annotations

"""Session Manager: builds a QuizSession from config and drives it.

Front-end agnostic: the run loop only talks to the user through the `ui`
callbacks (`ask`, `inform`), so the CLI and tests share it.
"""

from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from ..quiz.models import QuestionBank
from ..quiz.session import MODE_WEEKLY, QuestionPhase, QuizSession
from ..results.persist import AttemptSink, SaveState, persist_question_report
from ..results.schema import REPORT_ISSUES, QuestionReport
from ..stats.stats import finish_message, format_summary
from ..storage.local import JsonFileStore, KeyValueStore, device_id
from ..storage.schema import Status
from ..storage.session_store import SessionStore
from ..util.calendar import local_date_key
from .events import TEARDOWN, EventBus
from .explain import trace as xtrace
from .identity import IdentityProvider

LOCAL_STORE_FILE = "local_store.json"
REPORTS_FILE = "reports.ndjson"
QUIT_WORDS = {"q", "quit", "exit"}


def option_letter(i: int) -> str:
    return chr(ord("A") + i)


def parse_choice(raw: str, n_options: int) -> Optional[int]:
    """Map 'A'/'b'/'2' to a 0-based option index, or None."""
    s = (raw or "").strip().upper()
    if not s:
        return None
    if s.isdigit():
        i = int(s) - 1
    elif len(s) == 1 and s.isalpha():
        i = ord(s) - ord("A")
    else:
        return None
    return i if 0 <= i < n_options else None


def open_local_store(cfg: Dict[str, Any]) -> KeyValueStore:
    return JsonFileStore(Path(cfg["data"]["dir"]) / LOCAL_STORE_FILE)


class SessionManager:
    def __init__(
        self,
        cfg: Dict[str, Any],
        bank: QuestionBank,
        *,
        kv: Optional[KeyValueStore] = None,
        sink: Optional[AttemptSink] = None,
        identity: Optional[IdentityProvider] = None,
        bus: Optional[EventBus] = None,
        today: Callable[[], str] = local_date_key,
    ) -> None:
        self.cfg = cfg
        self.bank = bank
        self.kv = kv if kv is not None else open_local_store(cfg)
        self.store = SessionStore(self.kv)
        self.sink = sink
        self.identity = identity
        self.bus = bus or EventBus()
        self.today = today
        self.session: Optional[QuizSession] = None

    def start_session(self, mode: str, overrides: Optional[Dict[str, Any]] = None, *, auto_timer: bool = True) -> bool:
        # Resolve params: config section -> CLI overrides
        overrides = overrides or {}
        if self.session is not None:
            self.session.close()
            self.session.detach()
        section = dict(self.cfg["weekly"] if mode == MODE_WEEKLY else self.cfg["practice"])
        params = {**section, **{k: v for k, v in overrides.items() if v is not None}}
        self.session = QuizSession(
            self.bank,
            mode=mode,
            n=int(params.get("questions", 10)),
            time_budget_ms=int(params.get("seconds_per_question", 20)) * 1000,
            category=params.get("category"),
            difficulty=params.get("difficulty"),
            hard_ratio=float(params.get("hard_ratio", 0.8)),
            store=self.store,
            sink=self.sink if mode == MODE_WEEKLY else None,
            identity=self.identity,
            device_id=device_id(self.kv),
            today=self.today,
            auto_timer=auto_timer,
        )
        self.session.attach(self.bus)
        return self.session.start()

    def run(self, ui: Dict[str, Callable[..., Any]]) -> Optional[Dict[str, Any]]:
        """Play the started session to the end. Returns None if the user quit."""
        assert self.session is not None
        s = self.session
        ask = ui["ask"]
        inform = ui.get("inform", print)
        if s.resumed:
            inform(f"Resuming today's challenge at question {s.index + 1}/{len(s.questions)}.")
        try:
            while not s.finished:
                q = s.current_question
                assert q is not None
                if s.question_phase == QuestionPhase.RUNNING:
                    inform(f"\n[{s.index + 1}/{len(s.questions)}] ({q.difficulty.value}) {q.prompt}")
                    for i, opt in enumerate(q.options):
                        inform(f"  {option_letter(i)}. {opt}")
                    inform(f"  ({s.remaining_ms() // 1000 + 1}s)")
                    raw = ask("Answer: ")
                    if raw.strip().lower() in QUIT_WORDS:
                        self.bus.emit(TEARDOWN)
                        return None
                    choice = parse_choice(raw, len(q.options))
                    if choice is None:
                        s.poll()
                        if s.question_phase == QuestionPhase.RUNNING:
                            inform("Pick one of the listed options.")
                            continue
                    else:
                        s.choose(choice)
                result = s.last_result()
                if result is not None:
                    if result.status == Status.PENALIZED:
                        inform(f"Penalized for leaving. Answer: {option_letter(result.correct_index)}")
                    elif result.timed_out:
                        inform(f"Time's up! Answer: {option_letter(result.correct_index)}")
                    elif result.correct:
                        inform("Correct!")
                    else:
                        inform(f"Wrong. Answer: {option_letter(result.correct_index)}")
                    if q.explanation:
                        inform(q.explanation)
                raw = ask("Enter for next (r to report, q to quit) ")
                if raw.strip().lower() == "r":
                    self._ask_report(ask, inform)
                    raw = ask("Enter for next (q to quit) ")
                if raw.strip().lower() in QUIT_WORDS:
                    self.bus.emit(TEARDOWN)
                    return None
                s.next()
        except (KeyboardInterrupt, EOFError):
            self.bus.emit(TEARDOWN)
            return None
        return self.summary()

    def summary(self) -> Dict[str, Any]:
        assert self.session is not None and self.session.summary is not None
        s = self.session
        total = len(s.questions)
        out = {
            "mode": s.mode,
            "score": s.score,
            "total": total,
            "total_ms": s.total_elapsed_ms(),
            "statuses": [st.value for st in s.statuses],
            "text": format_summary(s.score, total, s.total_elapsed_ms(), s.statuses),
            "message": finish_message(s.score, total),
        }
        if s.is_weekly:
            out["save"] = _save_state_dict(s.save_state)
        xtrace("session_summary", {k: v for k, v in out.items() if k != "text"})
        return out

    def retry_save(self) -> SaveState:
        assert self.session is not None
        return self.session.retry_save()

    def report_question(self, issues: List[str], other: Optional[str] = None) -> bool:
        """Flag a problem with the current question. Best effort."""
        s = self.session
        q = s.current_question if s is not None else None
        if q is None:
            return False
        try:
            report = QuestionReport(
                question_id=q.id,
                category=q.category,
                difficulty=q.difficulty.value,
                selected=s.selected,
                correct_index=q.correct_index,
                issues={k: True for k in issues},
                other=other,
                mode=s.mode,
                device_id=s.device_id,
            )
        except ValueError:
            return False
        ok = persist_question_report(Path(self.cfg["data"]["dir"]) / REPORTS_FILE, report)
        xtrace("question_reported", {"question_id": q.id, "ok": ok})
        return ok

    def _ask_report(self, ask: Callable[[str], str], inform: Callable[[str], None]) -> None:
        for i, name in enumerate(REPORT_ISSUES, start=1):
            inform(f"  {i}. {name.replace('_', ' ')}")
        raw = ask("Issues (e.g. 1,3): ")
        picked: List[str] = []
        for tok in raw.replace(" ", "").split(","):
            if tok.isdigit() and 1 <= int(tok) <= len(REPORT_ISSUES):
                picked.append(REPORT_ISSUES[int(tok) - 1])
        other = None
        if "other" in picked:
            other = ask("Describe the issue: ").strip() or None
        if self.report_question(picked, other):
            inform("Thanks, report sent.")
        else:
            inform("Nothing reported.")


def _save_state_dict(state: SaveState) -> Dict[str, Any]:
    return {"saved": state.saved, "error": state.error}
