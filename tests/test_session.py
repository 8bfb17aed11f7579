import threading
import unittest

from bioq.app.events import TEARDOWN, VISIBILITY_HIDDEN, VISIBILITY_VISIBLE, EventBus
from bioq.app.identity import StaticIdentity
from bioq.errors import PersistenceFailure
from bioq.quiz.models import QuestionBank
from bioq.quiz.session import QuestionPhase, QuizSession, SessionPhase
from bioq.results.persist import MemoryAttemptSink
from bioq.storage.local import MemoryStore
from bioq.storage.schema import SessionRecord, Status
from bioq.storage.session_store import SessionStore, session_key

from tests.support import FakeClock, make_bank, make_question, wrong_option

DAY = "2026-10-14"


def weekly_session(kv, *, clock=None, sink=None, bank=None, n=15, bus=None, day=DAY) -> QuizSession:
    return QuizSession(
        bank or make_bank(),
        mode="weekly",
        n=n,
        store=SessionStore(kv),
        sink=sink,
        identity=StaticIdentity("alice"),
        device_id="dev-1",
        bus=bus,
        clock=clock or FakeClock(),
        today=lambda: day,
    )


class FlakySink:
    def __init__(self, failures: int = 1) -> None:
        self.failures = failures
        self.saved = []

    def save(self, summary) -> None:
        if self.failures > 0:
            self.failures -= 1
            raise PersistenceFailure("network down")
        self.saved.append(summary)


def answer(s: QuizSession, clock: FakeClock, ms: int = 1_000) -> None:
    """Answer the current question, right for even ids and wrong for odd ones."""
    q = s.current_question
    clock.advance(ms)
    s.choose(q.correct_index if int(q.id[1:]) % 2 == 0 else wrong_option(q))
    s.next()


class WeeklySessionTests(unittest.TestCase):
    def setUp(self) -> None:
        self.kv = MemoryStore()
        self.store = SessionStore(self.kv)
        self.clock = FakeClock()
        self.sink = MemoryAttemptSink()

    def test_full_run_all_correct(self) -> None:
        s = weekly_session(self.kv, clock=self.clock, sink=self.sink)
        self.assertTrue(s.start())
        self.assertEqual(s.time_budget_ms, 12_000)
        while not s.finished:
            self.clock.advance(1_000)
            self.assertIsNotNone(s.choose(s.current_question.correct_index))
            self.assertTrue(s.next())
        self.assertEqual(s.score, 15)
        self.assertEqual(s.total_elapsed_ms(), 15_000)
        self.assertIsNone(self.store.load(DAY))
        self.assertTrue(self.store.has_played(DAY))
        self.assertTrue(s.save_state.saved)
        rows = self.sink.all()
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].identity, "u:alice")
        self.assertEqual(rows[0].week_id, "2026-W42")
        self.assertEqual(rows[0].question_count, 15)

    def test_answer_is_persisted(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.clock.advance(3_000)
        res = s.choose(s.current_question.correct_index)
        self.assertTrue(res.correct)
        rec = self.store.load(DAY)
        self.assertEqual(rec.statuses[0], Status.CORRECT)
        self.assertEqual(rec.elapsed_ms[0], 3_000)
        self.assertEqual(rec.score, 1)
        s.next()
        self.assertEqual(self.store.load(DAY).current_index, 1)

    def test_point_counted_once_when_record_is_missing(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.kv.delete(session_key(DAY))
        s.choose(s.current_question.correct_index)
        self.assertEqual(self.store.load(DAY).score, 1)
        self.assertEqual(s.score, 1)

    def test_timeout_marks_wrong_with_full_budget(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.clock.advance(12_000)
        self.assertTrue(s.poll())
        self.assertFalse(s.poll())
        self.assertEqual(s.question_phase, QuestionPhase.LOCKED)
        self.assertEqual(s.statuses[0], Status.WRONG)
        self.assertEqual(s.elapsed_ms[0], 12_000)
        self.assertTrue(s.last_result().timed_out)
        self.assertEqual(self.store.load(DAY).elapsed_ms[0], 12_000)

    def test_late_answer_counts_as_timeout(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.clock.advance(12_000)
        self.assertIsNone(s.choose(s.current_question.correct_index))
        self.assertEqual(s.statuses[0], Status.WRONG)
        self.assertEqual(s.score, 0)

    def test_locked_question_ignores_input(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        q = s.current_question
        s.choose(wrong_option(q))
        self.assertIsNone(s.choose(q.correct_index))
        self.clock.advance(20_000)
        self.assertFalse(s.poll())
        self.assertEqual(s.statuses[0], Status.WRONG)
        self.assertEqual(s.score, 0)

    def test_next_requires_locked_question(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.assertFalse(s.next())
        self.assertEqual(s.index, 0)

    def test_abandon_mid_question_penalizes_and_advances(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.clock.advance(2_000)
        self.assertTrue(s.abandon())
        self.assertEqual(s.phase, SessionPhase.SUSPENDED)
        rec = self.store.load(DAY)
        self.assertEqual(rec.statuses[0], Status.PENALIZED)
        self.assertEqual(rec.elapsed_ms[0], 12_000)
        self.assertEqual(rec.current_index, 1)

        again = weekly_session(self.kv, clock=self.clock)
        again.start()
        self.assertTrue(again.resumed)
        self.assertEqual(again.index, 1)
        self.assertEqual(again.question_phase, QuestionPhase.RUNNING)
        self.assertEqual(again.remaining_ms(), 12_000)
        self.assertEqual(again.statuses[0], Status.PENALIZED)

    def test_abandon_after_answer_does_not_penalize(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        q = s.current_question
        s.choose(q.correct_index)
        self.assertFalse(s.abandon())
        rec = self.store.load(DAY)
        self.assertEqual(rec.statuses[0], Status.CORRECT)
        self.assertEqual(rec.current_index, 0)

        again = weekly_session(self.kv, clock=self.clock)
        again.start()
        self.assertEqual(again.index, 0)
        self.assertEqual(again.question_phase, QuestionPhase.LOCKED)
        self.assertIsNone(again.choose(q.correct_index))
        self.assertEqual(again.score, 1)
        self.assertTrue(again.next())
        self.assertEqual(again.index, 1)

    def test_resume_is_stable(self) -> None:
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        s.choose(s.current_question.correct_index)
        s.next()
        ids = [q.id for q in s.questions]
        for _ in range(3):
            again = weekly_session(self.kv, clock=self.clock)
            again.start()
            self.assertEqual([q.id for q in again.questions], ids)
            self.assertEqual(again.index, 1)
            self.assertEqual(again.score, 1)

    def test_resumed_run_matches_uninterrupted_run(self) -> None:
        straight = weekly_session(MemoryStore(), clock=self.clock)
        straight.start()
        while not straight.finished:
            answer(straight, self.clock)

        first = weekly_session(self.kv, clock=self.clock)
        first.start()
        for _ in range(7):
            answer(first, self.clock)
        self.assertEqual(self.store.load(DAY).current_index, 7)

        resumed = weekly_session(self.kv, clock=self.clock)
        resumed.start()
        self.assertTrue(resumed.resumed)
        self.assertEqual(resumed.index, 7)
        while not resumed.finished:
            answer(resumed, self.clock)
        self.assertEqual(resumed.score, straight.score)
        self.assertEqual(resumed.statuses, straight.statuses)
        self.assertEqual(resumed.total_elapsed_ms(), straight.total_elapsed_ms())

    def test_hiding_mid_sixth_question_penalizes_it(self) -> None:
        day = "2025-03-10"
        bus = EventBus()
        s = weekly_session(self.kv, clock=self.clock, day=day)
        s.attach(bus)
        s.start()
        for _ in range(5):
            answer(s, self.clock)
        answered = list(s.statuses[:5])
        self.clock.advance(4_000)
        bus.emit(VISIBILITY_HIDDEN)
        rec = self.store.load(day)
        self.assertEqual(rec.statuses[:5], answered)
        self.assertNotIn(Status.UNANSWERED, rec.statuses[:5])
        self.assertEqual(rec.statuses[5], Status.PENALIZED)
        self.assertEqual(rec.elapsed_ms[5], 12_000)
        self.assertEqual(rec.current_index, 6)
        self.assertEqual(rec.statuses[6:], [Status.UNANSWERED] * 9)

    def test_penalty_on_last_question_clamps_index(self) -> None:
        bank = make_bank(hard=2, medium=1, easy=0)
        s = weekly_session(self.kv, clock=self.clock, bank=bank, n=3, sink=self.sink)
        s.start()
        for _ in range(2):
            s.choose(s.current_question.correct_index)
            s.next()
        self.assertTrue(s.abandon())
        self.assertEqual(s.index, 2)
        self.assertEqual(self.store.load(DAY).current_index, 2)
        self.assertTrue(s.resume())
        self.assertEqual(s.question_phase, QuestionPhase.LOCKED)
        self.assertEqual(s.last_result().status, Status.PENALIZED)
        self.assertTrue(s.next())
        self.assertTrue(s.finished)
        self.assertEqual(self.sink.all()[0].score, 2)

    def test_host_signals_drive_abandon_and_resume(self) -> None:
        bus = EventBus()
        s = weekly_session(self.kv, clock=self.clock)
        s.attach(bus)
        s.start()
        bus.emit(VISIBILITY_HIDDEN)
        self.assertEqual(s.phase, SessionPhase.SUSPENDED)
        bus.emit(VISIBILITY_VISIBLE)
        self.assertEqual(s.phase, SessionPhase.ACTIVE)
        self.assertEqual(s.index, 1)
        self.assertEqual(s.question_phase, QuestionPhase.RUNNING)
        bus.emit(TEARDOWN)
        self.assertEqual(self.store.load(DAY).statuses[1], Status.PENALIZED)

    def test_detached_session_ignores_signals(self) -> None:
        bus = EventBus()
        s = weekly_session(self.kv, clock=self.clock)
        s.attach(bus)
        s.start()
        s.detach()
        bus.emit(VISIBILITY_HIDDEN)
        self.assertEqual(s.phase, SessionPhase.ACTIVE)
        self.assertEqual(s.statuses[0], Status.UNANSWERED)

    def test_stale_record_is_replaced(self) -> None:
        self.store.save(SessionRecord.fresh(date=DAY, question_ids=["gone"], time_budget_ms=12_000))
        s = weekly_session(self.kv, clock=self.clock)
        s.start()
        self.assertFalse(s.resumed)
        rec = self.store.load(DAY)
        self.assertEqual(len(rec.question_ids), 15)
        self.assertEqual(rec.question_ids, [q.id for q in s.questions])

    def test_duplicate_attempt_counts_as_saved(self) -> None:
        first = weekly_session(MemoryStore(), clock=self.clock, sink=self.sink, bank=make_bank(2, 1, 0), n=3)
        second = weekly_session(MemoryStore(), clock=self.clock, sink=self.sink, bank=make_bank(2, 1, 0), n=3)
        for s in (first, second):
            s.start()
            while not s.finished:
                s.choose(0)
                s.next()
            self.assertTrue(s.save_state.saved)
            self.assertIsNone(s.save_state.error)
        self.assertEqual(len(self.sink.all()), 1)

    def test_failed_save_can_be_retried(self) -> None:
        sink = FlakySink(failures=1)
        s = weekly_session(self.kv, clock=self.clock, sink=sink, bank=make_bank(2, 1, 0), n=3)
        s.start()
        while not s.finished:
            s.choose(0)
            s.next()
        self.assertFalse(s.save_state.saved)
        self.assertEqual(s.save_state.error, "network down")
        state = s.retry_save()
        self.assertTrue(state.saved)
        self.assertIsNone(state.error)
        self.assertEqual(len(sink.saved), 1)

    def test_lifecycle_events(self) -> None:
        bus = EventBus()
        seen = []
        for name in ("question_started", "question_locked", "finished", "attempt_saved"):
            bus.subscribe(name, lambda p, name=name: seen.append(name))
        s = weekly_session(self.kv, clock=self.clock, sink=self.sink, bank=make_bank(1, 0, 0), n=1, bus=bus)
        s.start()
        s.choose(0)
        s.next()
        self.assertEqual(seen, ["question_started", "question_locked", "attempt_saved", "finished"])


class PracticeSessionTests(unittest.TestCase):
    def test_practice_never_touches_storage(self) -> None:
        kv = MemoryStore()
        clock = FakeClock()
        s = QuizSession(make_bank(), mode="practice", n=5, store=SessionStore(kv), device_id="dev-1", clock=clock)
        self.assertTrue(s.start())
        self.assertEqual(len(s.questions), 5)
        self.assertEqual(s.time_budget_ms, 20_000)
        self.assertFalse(s.abandon())
        self.assertEqual(s.phase, SessionPhase.ACTIVE)
        while not s.finished:
            s.choose(s.current_question.correct_index)
            s.next()
        self.assertEqual(s.score, 5)
        self.assertEqual(kv.keys(), [])

    def single_easy_session(self, clock: FakeClock) -> QuizSession:
        bank = QuestionBank([make_question("e000", "easy", correct=2)])
        s = QuizSession(bank, mode="practice", n=1, device_id="dev-1", clock=clock)
        self.assertTrue(s.start())
        return s

    def test_single_question_answered_in_time(self) -> None:
        clock = FakeClock()
        s = self.single_easy_session(clock)
        clock.advance(4_000)
        res = s.choose(2)
        self.assertTrue(res.correct)
        self.assertEqual(s.statuses, [Status.CORRECT])
        self.assertEqual(s.score, 1)
        self.assertLess(s.elapsed_ms[0], s.time_budget_ms)

    def test_single_question_left_to_expire(self) -> None:
        clock = FakeClock()
        s = self.single_easy_session(clock)
        clock.advance(s.time_budget_ms)
        self.assertTrue(s.poll())
        self.assertEqual(s.statuses, [Status.WRONG])
        self.assertEqual(s.elapsed_ms[0], s.time_budget_ms)
        self.assertEqual(s.score, 0)

    def test_play_again_resets(self) -> None:
        s = QuizSession(make_bank(), mode="practice", n=3, device_id="dev-1", clock=FakeClock())
        s.start()
        s.choose(s.current_question.correct_index)
        self.assertTrue(s.play_again())
        self.assertEqual(s.index, 0)
        self.assertEqual(s.score, 0)
        self.assertEqual(s.statuses, [Status.UNANSWERED] * 3)

    def test_empty_filter_is_not_playable(self) -> None:
        s = QuizSession(make_bank(), mode="practice", category="botany", device_id="dev-1", clock=FakeClock())
        self.assertFalse(s.start())
        self.assertFalse(s.playable)
        self.assertEqual(s.phase, SessionPhase.INITIALIZING)
        self.assertIsNone(s.choose(0))

    def test_unknown_mode(self) -> None:
        with self.assertRaises(ValueError):
            QuizSession(make_bank(), mode="ranked")

    def test_scheduled_deadline_locks_question(self) -> None:
        bus = EventBus()
        locked = threading.Event()
        bus.subscribe("question_locked", lambda _p: locked.set())
        s = QuizSession(make_bank(), mode="practice", n=2, time_budget_ms=50, device_id="dev-1", bus=bus, auto_timer=True)
        s.start()
        self.assertTrue(locked.wait(2.0))
        self.assertEqual(s.statuses[0], Status.WRONG)
        self.assertEqual(s.elapsed_ms[0], 50)
        s.close()


if __name__ == "__main__":
    unittest.main()
