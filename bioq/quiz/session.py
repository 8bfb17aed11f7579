from __future__ import annotations

"""Quiz session controller.

One QuizSession owns all mutable state of a running quiz: the question
list, per-question statuses and times, the active question timer and the
phase of both the question and the session. Weekly sessions mirror every
transition into the day's SessionRecord through SessionStore.update().

Transition table (question level, session ACTIVE):

    RUNNING --choose()--> LOCKED      status correct/wrong, elapsed measured
    RUNNING --deadline--> LOCKED      status wrong, elapsed = budget
    LOCKED  --next()----> RUNNING     next question, or session FINISHED
    RUNNING --abandon()-> SUSPENDED   weekly only: penalized, index + 1
    LOCKED  --abandon()-> SUSPENDED   weekly only: snapshot, no penalty

Once a question is LOCKED nothing but next() touches it.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from ..app.events import TEARDOWN, VISIBILITY_HIDDEN, VISIBILITY_VISIBLE, EventBus
from ..app.explain import trace as xtrace
from ..app.identity import IdentityProvider, safe_user_id
from ..results.persist import AttemptSink, SaveState, submit_attempt
from ..results.schema import AttemptSummary
from ..storage.local import device_id as local_device_id
from ..storage.schema import SessionRecord, Status
from ..storage.session_store import SessionStore
from ..util.calendar import local_date_key, week_id_for
from ..util.randomness import make_practice_seed
from .models import Question, QuestionBank
from .selector import WEEKLY_HARD_RATIO, select_practice, select_weekly
from .timer import Clock, QuestionTimer, monotonic_ms

MODE_PRACTICE = "practice"
MODE_WEEKLY = "weekly"

DEFAULTS = {
    MODE_PRACTICE: {"n": 10, "seconds": 20},
    MODE_WEEKLY: {"n": 15, "seconds": 12},
}


class QuestionPhase(str, Enum):
    RUNNING = "running"
    LOCKED = "locked"


class SessionPhase(str, Enum):
    INITIALIZING = "initializing"
    ACTIVE = "active"
    SUSPENDED = "suspended"
    FINISHED = "finished"


@dataclass(frozen=True)
class AnswerResult:
    index: int
    selected: Optional[int]
    status: Status
    elapsed_ms: int
    correct_index: int

    @property
    def correct(self) -> bool:
        return self.status == Status.CORRECT

    @property
    def timed_out(self) -> bool:
        return self.selected is None


class QuizSession:
    def __init__(
        self,
        bank: QuestionBank,
        *,
        mode: str = MODE_PRACTICE,
        n: Optional[int] = None,
        time_budget_ms: Optional[int] = None,
        category: Optional[str] = None,
        difficulty: Optional[str] = None,
        hard_ratio: float = WEEKLY_HARD_RATIO,
        store: Optional[SessionStore] = None,
        sink: Optional[AttemptSink] = None,
        identity: Optional[IdentityProvider] = None,
        device_id: Optional[str] = None,
        bus: Optional[EventBus] = None,
        clock: Clock = monotonic_ms,
        today: Callable[[], str] = local_date_key,
        auto_timer: bool = False,
    ) -> None:
        if mode not in DEFAULTS:
            raise ValueError(f"Unknown mode: {mode}")
        self.bank = bank
        self.mode = mode
        self.n = max(1, int(n if n is not None else DEFAULTS[mode]["n"]))
        self.time_budget_ms = int(time_budget_ms if time_budget_ms is not None else DEFAULTS[mode]["seconds"] * 1000)
        self.category = category
        self.difficulty = difficulty
        self.hard_ratio = hard_ratio
        self.store = store
        self.sink = sink
        self.identity = identity
        self._device_id = device_id
        self.bus = bus
        self.clock = clock
        self._today = today
        self.auto_timer = auto_timer

        self.phase = SessionPhase.INITIALIZING
        self.question_phase = QuestionPhase.LOCKED
        self.date = ""
        self.seed: Optional[str] = None
        self.questions: List[Question] = []
        self.index = 0
        self.statuses: List[Status] = []
        self.elapsed_ms: List[int] = []
        self.score = 0
        self.selected: Optional[int] = None
        self.resumed = False
        self.summary: Optional[AttemptSummary] = None
        self.save_state = SaveState()

        self._timer: Optional[QuestionTimer] = None
        self._lock = threading.RLock()
        self._handlers: List[Tuple[str, Callable[[Any], None]]] = []

    # --- properties ---------------------------------------------------

    @property
    def is_weekly(self) -> bool:
        return self.mode == MODE_WEEKLY

    @property
    def playable(self) -> bool:
        return bool(self.questions)

    @property
    def finished(self) -> bool:
        return self.phase == SessionPhase.FINISHED

    @property
    def current_question(self) -> Optional[Question]:
        if not self.questions:
            return None
        return self.questions[self.index]

    @property
    def device_id(self) -> str:
        if self._device_id is None:
            self._device_id = local_device_id(self.store.kv) if self.store is not None else "anonymous"
        return self._device_id

    def total_elapsed_ms(self) -> int:
        return sum(self.elapsed_ms)

    def remaining_ms(self) -> int:
        with self._lock:
            if self.question_phase != QuestionPhase.RUNNING or self._timer is None:
                return 0
            return self._timer.remaining_ms()

    # --- start / resume -----------------------------------------------

    def start(self) -> bool:
        """Select questions and enter the first (or resumed) question.

        Returns False when nothing is playable; the session then stays
        INITIALIZING and callers should show a message instead.
        """
        with self._lock:
            self._cancel_timer()
            self.date = self._today()
            self.phase = SessionPhase.INITIALIZING
            self.summary = None
            self.save_state = SaveState()
            self.resumed = False
            if self.is_weekly:
                self._start_weekly()
            else:
                self._start_practice()
            if not self.questions:
                xtrace("session_unplayable", {"mode": self.mode})
                return False
            self.phase = SessionPhase.ACTIVE
            xtrace(
                "session_resumed" if self.resumed else "session_started",
                {"mode": self.mode, "date": self.date, "questions": len(self.questions), "index": self.index},
            )
            self._enter_question(self.index)
            return True

    def play_again(self) -> bool:
        if self.is_weekly:
            return False
        return self.start()

    def _reset_progress(self, questions: List[Question]) -> None:
        self.questions = list(questions)
        self.index = 0
        self.statuses = [Status.UNANSWERED] * len(self.questions)
        self.elapsed_ms = [0] * len(self.questions)
        self.score = 0

    def _start_practice(self) -> None:
        self.seed = make_practice_seed()
        picks = select_practice(
            self.bank, n=self.n, seed=self.seed, category=self.category, difficulty=self.difficulty
        )
        self._reset_progress(picks)

    def _start_weekly(self) -> None:
        self.seed = f"WEEKLY-{self.date}"
        fresh = select_weekly(self.bank, self.date, n=self.n, hard_ratio=self.hard_ratio)
        rec = self.store.load(self.date) if self.store is not None else None
        if rec is not None and fresh:
            restored = self.bank.lookup(rec.question_ids)
            if len(restored) == len(rec.question_ids) == len(fresh):
                self.questions = restored
                self.index = min(rec.current_index, len(restored) - 1)
                self.statuses = list(rec.statuses)
                self.elapsed_ms = [int(x) for x in rec.elapsed_ms]
                self.score = int(rec.score)
                self.time_budget_ms = int(rec.time_budget_ms)
                self.resumed = True
                return
        if rec is not None and self.store is not None:
            self.store.delete(self.date)
        self._reset_progress(fresh)
        if fresh and self.store is not None:
            self.store.save(self._snapshot())

    # --- per-question lifecycle ---------------------------------------

    def _enter_question(self, i: int) -> None:
        self._cancel_timer()
        self.index = i
        self.selected = None
        if self.statuses[i] != Status.UNANSWERED:
            # Already resolved before a reload or a penalty; only next() applies.
            self.question_phase = QuestionPhase.LOCKED
        else:
            self.question_phase = QuestionPhase.RUNNING
            self._timer = QuestionTimer(self.time_budget_ms, self.clock)
            if self.auto_timer:
                self._timer.arm(self._on_deadline)
        self._emit("question_started", {"index": i, "phase": self.question_phase.value})

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _lock_question(self) -> None:
        self.question_phase = QuestionPhase.LOCKED
        self._cancel_timer()
        self._emit("question_locked", {"index": self.index, "status": self.statuses[self.index].value})

    def _on_deadline(self) -> None:
        with self._lock:
            if self.poll():
                return
            timer = self._timer
            if self.phase == SessionPhase.ACTIVE and self.question_phase == QuestionPhase.RUNNING and timer is not None:
                # Woke marginally early; wait out the rest.
                timer.arm(self._on_deadline)

    def poll(self) -> bool:
        """Re-sample the clock; apply the timeout on the first sample past the deadline."""
        with self._lock:
            if self.phase != SessionPhase.ACTIVE or self.question_phase != QuestionPhase.RUNNING:
                return False
            if self._timer is None or not self._timer.poll():
                return False
            self._expire()
            return True

    def _expire(self) -> None:
        i = self.index
        budget = self.time_budget_ms
        self.elapsed_ms[i] = budget
        if self.statuses[i] == Status.UNANSWERED:
            self.statuses[i] = Status.WRONG
        self._lock_question()
        xtrace("question_timeout", {"index": i})
        self._persist(statuses={i: self.statuses[i]}, elapsed_ms={i: budget})

    def choose(self, option_index: int) -> Optional[AnswerResult]:
        """Answer the current question. Ignored unless it is RUNNING.

        An answer at or after the deadline is dropped in favour of the timeout.
        """
        with self._lock:
            if self.phase != SessionPhase.ACTIVE or self.question_phase != QuestionPhase.RUNNING:
                return None
            if self.poll():
                return None
            q = self.questions[self.index]
            i = self.index
            used = self._timer.elapsed_ms() if self._timer is not None else self.time_budget_ms
            correct = q.is_correct(option_index)
            self.selected = int(option_index)
            self.statuses[i] = Status.CORRECT if correct else Status.WRONG
            self.elapsed_ms[i] = used
            self._lock_question()
            xtrace("question_answered", {"index": i, "correct": correct, "elapsed_ms": used})
            # The fallback snapshot must not already carry this point.
            self._persist(statuses={i: self.statuses[i]}, elapsed_ms={i: used}, score_delta=1 if correct else 0)
            if correct:
                self.score += 1
            return AnswerResult(
                index=i, selected=self.selected, status=self.statuses[i], elapsed_ms=used, correct_index=q.correct_index
            )

    def last_result(self) -> Optional[AnswerResult]:
        """Outcome of the current question once it is locked."""
        with self._lock:
            if self.question_phase != QuestionPhase.LOCKED or not self.questions:
                return None
            q = self.questions[self.index]
            return AnswerResult(
                index=self.index,
                selected=self.selected,
                status=self.statuses[self.index],
                elapsed_ms=self.elapsed_ms[self.index],
                correct_index=q.correct_index,
            )

    def next(self) -> bool:
        """Advance past a locked question, finishing after the last one."""
        with self._lock:
            if self.phase != SessionPhase.ACTIVE or self.question_phase != QuestionPhase.LOCKED:
                return False
            if self.index < len(self.questions) - 1:
                ni = self.index + 1
                self._persist(current_index=ni)
                self._enter_question(ni)
                xtrace("question_advanced", {"index": ni})
            else:
                self._finish()
            return True

    # --- leaving and coming back --------------------------------------

    def abandon(self, reason: str = VISIBILITY_HIDDEN) -> bool:
        """Handle the user leaving mid-session. Local writes only, no network.

        Returns True when the current question was penalized.
        """
        with self._lock:
            if not self.is_weekly or self.phase != SessionPhase.ACTIVE:
                return False
            i = self.index
            penalized = self.question_phase == QuestionPhase.RUNNING
            if penalized:
                budget = self.time_budget_ms
                ni = min(i + 1, len(self.questions) - 1)
                self.statuses[i] = Status.PENALIZED
                self.elapsed_ms[i] = budget
                self._lock_question()
                self._persist(current_index=ni, statuses={i: Status.PENALIZED}, elapsed_ms={i: budget})
                self.index = ni
            else:
                self._persist()
            self._cancel_timer()
            self.phase = SessionPhase.SUSPENDED
            xtrace("session_abandoned", {"reason": reason, "index": i, "penalized": penalized})
            return penalized

    def resume(self) -> bool:
        """Come back after abandon(); the current question gets a fresh timer."""
        with self._lock:
            if self.phase != SessionPhase.SUSPENDED:
                return False
            self.phase = SessionPhase.ACTIVE
            self._enter_question(self.index)
            return True

    def close(self) -> None:
        """Teardown: penalize if needed, then stop the timer for good."""
        with self._lock:
            self.abandon(TEARDOWN)
            self._cancel_timer()

    def attach(self, bus: EventBus) -> None:
        """Wire host signals from `bus` into this session."""
        self.detach()
        self.bus = bus
        self._handlers = [
            (VISIBILITY_HIDDEN, lambda _p: self.abandon(VISIBILITY_HIDDEN)),
            (VISIBILITY_VISIBLE, lambda _p: self.resume()),
            (TEARDOWN, lambda _p: self.close()),
        ]
        for event, handler in self._handlers:
            bus.subscribe(event, handler)

    def detach(self) -> None:
        if self.bus is not None:
            for event, handler in self._handlers:
                self.bus.unsubscribe(event, handler)
        self._handlers = []

    # --- finish -------------------------------------------------------

    def _finish(self) -> None:
        self._cancel_timer()
        self.phase = SessionPhase.FINISHED
        self.summary = AttemptSummary(
            date=self.date,
            week_id=week_id_for(self.date),
            score=self.score,
            total_elapsed_ms=self.total_elapsed_ms(),
            question_count=len(self.questions),
            time_budget_ms=self.time_budget_ms,
            device_id=self.device_id,
            user_id=safe_user_id(self.identity),
        )
        xtrace("session_finished", {"mode": self.mode, "score": self.score, "total_ms": self.summary.total_elapsed_ms})
        if self.is_weekly:
            if self.store is not None:
                self.store.delete(self.date)
                self.store.mark_played(self.date)
            self._submit()
        self._emit("finished", self.summary)

    def _submit(self) -> None:
        if self.sink is None or self.summary is None:
            return
        submit_attempt(self.sink, self.summary, self.save_state)
        if self.save_state.saved:
            self._emit("attempt_saved", self.summary)

    def retry_save(self) -> SaveState:
        """Manual retry after a failed attempt save."""
        with self._lock:
            if self.is_weekly and self.finished and not self.save_state.saved:
                self._submit()
            return self.save_state

    # --- persistence --------------------------------------------------

    def _snapshot(self) -> SessionRecord:
        return SessionRecord(
            date=self.date,
            week_id=week_id_for(self.date),
            question_ids=[q.id for q in self.questions],
            current_index=self.index,
            statuses=list(self.statuses),
            elapsed_ms=list(self.elapsed_ms),
            score=self.score,
            time_budget_ms=self.time_budget_ms,
            seed=self.seed,
        )

    def _persist(self, **delta) -> None:
        if not self.is_weekly or self.store is None:
            return
        self.store.update(self.date, fallback=self._snapshot, **delta)

    def _emit(self, event: str, payload) -> None:
        if self.bus is not None:
            self.bus.emit(event, payload)
