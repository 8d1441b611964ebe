"""In-memory state machine behind the assessment-taking portal.

One ``SessionRuntime`` drives one respondent through the ordered tests of
an assessment::

    landing --handle_start--> active --(all answered | timer hits 0)--> completed
                               |  ^
                 handle_toggle_pause (timer frozen, answers still editable)

Two timers run through the injected ``Clock``:

  - a 1-second repeating tick that counts ``time_left_ms`` down while the
    session is active and not paused;
  - a one-shot autosave debounce (600 ms by default).  Every answer
    change cancels and re-arms it; when it fires, a snapshot is written
    through the ``SessionSink`` (assignment progress + stored session).
    Pausing, completing and ``dispose`` of an active session write at
    once, so the remaining time is never older than the last of those.

Status changes go to the sink before local state changes.  If the tracker
refuses one (the assignment was completed elsewhere) the session ends and
the caller gets ``SessionStateError``.

Autosave delivery is at-least-once with overwrite-on-success: a failed
write is retried with exponential back-off up to ``max_save_attempts``
times, and each retry writes the latest snapshot, not the one that
failed.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Literal, Protocol

from crewfit.core.clock import Clock, TimerHandle
from crewfit.core.errors import ConflictError, DomainValidationError
from crewfit.core.metrics import AUTOSAVE_OPERATIONS, SESSION_COMPLETIONS
from crewfit.models.assessment import AssessmentTestRef
from crewfit.models.assignment import AssessmentAssignment
from crewfit.models.session import AnswerMap, AssessmentSession
from crewfit.models.test import PsychologicalTest, ScoreBand, WeightedQuestion
from crewfit.services.scoring import ScoreSummary, find_score_band, summarize_test_score

logger = logging.getLogger(__name__)

Mode = Literal["landing", "active", "completed"]

TICK_MS = 1000
DEFAULT_DURATION_MINUTES = 30


class SessionStateError(ConflictError):
    """The operation is not allowed in the session's current mode."""


class SessionValidationError(DomainValidationError):
    pass


class SessionPersistenceError(Exception):
    """Raised by a sink when a snapshot could not be written."""


@dataclass(frozen=True, slots=True)
class PortalTest:
    ref: AssessmentTestRef
    test: PsychologicalTest


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    assignment_id: str | None
    mode: str
    is_paused: bool
    answers: AnswerMap
    current_test_index: int
    current_question_index: int
    current_test_id: str | None
    current_question_id: str | None
    completed_tests: tuple[str, ...]
    time_left_ms: int
    progress_percent: int
    started_at: datetime | None
    completed_at: datetime | None
    captured_at: datetime


@dataclass(frozen=True, slots=True)
class TestResult:
    __test__ = False  # not a pytest class

    test_id: str
    title: str
    summary: ScoreSummary
    band: ScoreBand | None


class SessionSink(Protocol):
    def status_changed(self, status: str, progress_percent: int) -> None: ...
    def save(self, snapshot: SessionSnapshot) -> None: ...


class SessionRuntime:
    def __init__(
        self,
        tests: Sequence[PortalTest],
        *,
        clock: Clock,
        assignment: AssessmentAssignment | None = None,
        session: AssessmentSession | None = None,
        assessment_duration_minutes: int | None = None,
        default_duration_minutes: int = DEFAULT_DURATION_MINUTES,
        autosave_delay_ms: int = 600,
        max_save_attempts: int = 3,
        sink: SessionSink | None = None,
        on_complete: Callable[[SessionRuntime], None] | None = None,
    ) -> None:
        if not tests:
            raise ValueError("a session needs at least one test")
        self._tests = list(tests)
        self._clock = clock
        self._assignment_id = assignment.id if assignment else None
        self._sink = sink
        self._on_complete = on_complete
        self._autosave_delay_ms = autosave_delay_ms
        self._max_save_attempts = max(1, max_save_attempts)

        self._answers: AnswerMap = {
            pt.test.id: {
                q.id: session.answer_for(pt.test.id, q.id) if session else None
                for q in pt.test.questions
            }
            for pt in self._tests
        }
        self._test_index, self._question_index = self._initial_cursor()
        self._time_left_ms = self._initial_timer(
            assignment, session, assessment_duration_minutes, default_duration_minutes
        )

        already_done = self._every_question_answered() or (
            assignment is not None and assignment.status == "completed"
        )
        self._mode: Mode = "completed" if already_done else "landing"
        self._paused = False
        self._started_at = session.started_at if session else None
        self._completed_at = session.completed_at if session else None
        if already_done and self._completed_at is None and assignment is not None:
            self._completed_at = assignment.completed_at

        self._is_saving = False
        self._last_saved_at: datetime | None = (
            session.last_saved_at
            if session
            else (assignment.last_activity_at if assignment else None)
        )
        self._save_error: str | None = None
        self._save_attempts = 0
        self._tick_handle: TimerHandle | None = None
        self._save_handle: TimerHandle | None = None

    # ------------------------------------------------------------------
    # Initial state
    # ------------------------------------------------------------------

    def _initial_cursor(self) -> tuple[int, int]:
        test_index = next(
            (
                i
                for i, pt in enumerate(self._tests)
                if any(self._answers[pt.test.id][q.id] is None for q in pt.test.questions)
            ),
            len(self._tests) - 1,
        )
        return test_index, self._first_unanswered(test_index)

    def _initial_timer(
        self,
        assignment: AssessmentAssignment | None,
        session: AssessmentSession | None,
        assessment_minutes: int | None,
        default_minutes: int,
    ) -> int:
        if assignment is not None and assignment.progress.remaining_time_ms is not None:
            return max(0, assignment.progress.remaining_time_ms)
        if session is not None and session.timer_ms is not None:
            return max(0, session.timer_ms)
        minutes = assessment_minutes or sum(
            pt.test.estimated_duration_minutes or 0 for pt in self._tests
        )
        return (minutes or default_minutes) * 60 * 1000

    def _first_unanswered(self, test_index: int) -> int:
        test = self._tests[test_index].test
        per_question = self._answers[test.id]
        return next(
            (i for i, q in enumerate(test.questions) if per_question[q.id] is None), 0
        )

    # ------------------------------------------------------------------
    # Observable state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> Mode:
        return self._mode

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def time_left_ms(self) -> int:
        return self._time_left_ms

    @property
    def answers(self) -> AnswerMap:
        return {test_id: dict(per_q) for test_id, per_q in self._answers.items()}

    @property
    def tests(self) -> list[PortalTest]:
        return list(self._tests)

    @property
    def assignment_id(self) -> str | None:
        return self._assignment_id

    @property
    def current_test_index(self) -> int:
        return self._test_index

    @property
    def current_question_index(self) -> int:
        return self._question_index

    @property
    def current_test(self) -> PsychologicalTest:
        return self._tests[self._test_index].test

    @property
    def current_question(self) -> WeightedQuestion | None:
        questions = self.current_test.questions
        if not questions:
            return None
        return questions[self._question_index]

    @property
    def current_answer(self) -> int | None:
        question = self.current_question
        if question is None:
            return None
        return self._answers[self.current_test.id][question.id]

    @property
    def total_questions(self) -> int:
        return sum(len(pt.test.questions) for pt in self._tests)

    @property
    def answered_count(self) -> int:
        return sum(
            1
            for per_q in self._answers.values()
            for value in per_q.values()
            if value is not None
        )

    @property
    def progress_percent(self) -> int:
        total = self.total_questions
        if total == 0:
            return 0
        return round(100 * self.answered_count / total)

    @property
    def all_answered(self) -> bool:
        total = self.total_questions
        return total > 0 and self.answered_count == total

    @property
    def is_saving(self) -> bool:
        return self._is_saving

    @property
    def last_saved_at(self) -> datetime | None:
        return self._last_saved_at

    @property
    def save_error(self) -> str | None:
        return self._save_error

    @property
    def completed_at(self) -> datetime | None:
        return self._completed_at

    def completed_tests(self) -> tuple[str, ...]:
        return tuple(
            pt.test.id
            for pt in self._tests
            if pt.test.questions
            and all(v is not None for v in self._answers[pt.test.id].values())
        )

    def _every_question_answered(self) -> bool:
        return all(
            value is not None for per_q in self._answers.values() for value in per_q.values()
        )

    # ------------------------------------------------------------------
    # Mutators
    # ------------------------------------------------------------------

    def handle_start(self) -> None:
        if self._mode == "completed":
            raise SessionStateError("session already completed")

        if self._time_left_ms > 0:
            # The tracker may refuse; nothing local has changed yet.
            self._notify_status("in_progress")

        self._mode = "active"
        self._paused = False
        if self._started_at is None:
            self._started_at = self._clock.now()
        logger.info(
            "Session started assignment=%s time_left_ms=%d",
            self._assignment_id,
            self._time_left_ms,
            extra={"assignment_id": self._assignment_id},
        )

        if self._time_left_ms <= 0:
            self._complete("timeout")
            return
        self._arm_ticker()

    def handle_toggle_pause(self) -> bool:
        self._require_active("pause")
        pausing = not self._paused
        self._notify_status("paused" if pausing else "in_progress")

        self._paused = pausing
        if self._paused:
            self._cancel_ticker()
            # Persist the frozen timer right away.
            self._save_now()
        else:
            self._arm_ticker()
        return self._paused

    def handle_answer_change(self, value: int | None) -> None:
        # Pausing freezes the timer only; answers stay editable.
        self._require_active("answer")
        question = self.current_question
        if question is None:
            raise SessionStateError("no current question")
        if value is not None and value not in question.weights:
            raise SessionValidationError(
                f"value {value!r} is not an option weight of question {question.id}"
            )

        test_id = self.current_test.id
        self._answers = {
            **self._answers,
            test_id: {**self._answers[test_id], question.id: value},
        }
        self._save_attempts = 0
        self._schedule_autosave(self._autosave_delay_ms)

    def go_to_next_question(self) -> None:
        self._require_active("navigate")
        questions = self.current_test.questions
        if self._question_index < len(questions) - 1:
            self._question_index += 1
            return
        if self._test_index < len(self._tests) - 1:
            self._test_index += 1
            self._question_index = self._first_unanswered(self._test_index)
            return
        if self.all_answered:
            self._complete("answered")

    def go_to_previous_question(self) -> None:
        self._require_active("navigate")
        if self._question_index > 0:
            self._question_index -= 1
            return
        if self._test_index > 0:
            self._test_index -= 1
            self._question_index = max(len(self.current_test.questions) - 1, 0)

    def handle_finish(self) -> None:
        self._require_active("finish")
        if not self.all_answered:
            raise SessionStateError(
                f"{self.total_questions - self.answered_count} question(s) unanswered"
            )
        self._complete("answered")

    def dispose(self) -> None:
        """Stop the timers and write the final state of an unfinished session.

        An active session is always written so the elapsed time survives;
        otherwise only a pending autosave is flushed.  The write is tried
        once: no retry may fire after the runtime is gone.
        """
        self._cancel_ticker()
        pending = self._save_handle is not None
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        if pending or self._mode == "active":
            self._save_attempts = 0
            self._run_save(retry=False)

    def snapshot(self) -> SessionSnapshot:
        question = self.current_question
        return SessionSnapshot(
            assignment_id=self._assignment_id,
            mode=self._mode,
            is_paused=self._paused,
            answers=self.answers,
            current_test_index=self._test_index,
            current_question_index=self._question_index,
            current_test_id=self.current_test.id,
            current_question_id=question.id if question else None,
            completed_tests=self.completed_tests(),
            time_left_ms=self._time_left_ms,
            progress_percent=self.progress_percent,
            started_at=self._started_at,
            completed_at=self._completed_at,
            captured_at=self._clock.now(),
        )

    def results(self) -> list[TestResult]:
        out = []
        for pt in self._tests:
            summary = summarize_test_score(pt.test, self._answers[pt.test.id])
            out.append(
                TestResult(
                    test_id=pt.test.id,
                    title=pt.test.title,
                    summary=summary,
                    band=find_score_band(pt.test.interpretation_bands, summary.raw_score),
                )
            )
        return out

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _require_active(self, action: str) -> None:
        if self._mode != "active":
            raise SessionStateError(f"cannot {action} while session is {self._mode}")

    def _complete(self, reason: str) -> None:
        self._mode = "completed"
        self._paused = False
        self._time_left_ms = max(0, self._time_left_ms)
        self._completed_at = self._clock.now()
        self._cancel_ticker()
        SESSION_COMPLETIONS.labels(reason=reason).inc()
        logger.info(
            "Session completed assignment=%s reason=%s answered=%d/%d",
            self._assignment_id,
            reason,
            self.answered_count,
            self.total_questions,
            extra={"assignment_id": self._assignment_id},
        )

        # Final state is written right away, not after the debounce.
        self._save_now()
        self._notify_status("completed", strict=False)
        self._finished()

    def _end_after_rejection(self, status: str, exc: Exception) -> None:
        """The tracker closed the assignment elsewhere; stop taking input."""
        logger.warning(
            "Assignment=%s rejected status %s, closing session: %s",
            self._assignment_id,
            status,
            exc,
            extra={"assignment_id": self._assignment_id},
        )
        self._mode = "completed"
        self._paused = False
        if self._completed_at is None:
            self._completed_at = self._clock.now()
        self._cancel_ticker()
        if self._save_handle is not None:
            self._save_now()
        self._finished()

    def _finished(self) -> None:
        if self._on_complete is not None:
            self._on_complete(self)

    def _save_now(self) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
            self._save_handle = None
        self._save_attempts = 0
        self._is_saving = True
        self._run_save()

    def _arm_ticker(self) -> None:
        self._cancel_ticker()
        self._tick_handle = self._clock.call_later(TICK_MS, self._on_tick)

    def _cancel_ticker(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _on_tick(self) -> None:
        self._tick_handle = None
        if self._mode != "active" or self._paused:
            return
        self._time_left_ms = max(0, self._time_left_ms - TICK_MS)
        if self._time_left_ms == 0:
            self._complete("timeout")
            return
        self._arm_ticker()

    def _schedule_autosave(self, delay_ms: int) -> None:
        if self._save_handle is not None:
            self._save_handle.cancel()
        self._is_saving = True
        self._save_handle = self._clock.call_later(delay_ms, self._run_save)

    def _run_save(self, *, retry: bool = True) -> None:
        self._save_handle = None
        if self._sink is not None:
            try:
                self._sink.save(self.snapshot())
            except SessionPersistenceError as exc:
                self._save_attempts += 1
                if retry and self._save_attempts < self._max_save_attempts:
                    AUTOSAVE_OPERATIONS.labels(result="retry").inc()
                    logger.warning(
                        "Autosave failed for assignment=%s (attempt %d/%d): %s",
                        self._assignment_id,
                        self._save_attempts,
                        self._max_save_attempts,
                        exc,
                        extra={"assignment_id": self._assignment_id},
                    )
                    self._schedule_autosave(
                        self._autosave_delay_ms * 2**self._save_attempts
                    )
                    return
                AUTOSAVE_OPERATIONS.labels(result="failed").inc()
                logger.error(
                    "Autosave gave up for assignment=%s after %d attempts: %s",
                    self._assignment_id,
                    self._save_attempts,
                    exc,
                    extra={"assignment_id": self._assignment_id},
                )
                self._is_saving = False
                self._save_error = str(exc)
                self._save_attempts = 0
                return

        self._save_attempts = 0
        self._save_error = None
        self._is_saving = False
        self._last_saved_at = self._clock.now()
        AUTOSAVE_OPERATIONS.labels(result="saved").inc()

    def _notify_status(self, status: str, *, strict: bool = True) -> None:
        """Report a status change to the sink.

        A ``ConflictError`` means the assignment can no longer move to
        ``status``.  In strict mode the session is ended and the caller gets
        ``SessionStateError``; completion reports are not strict because the
        session is already over.
        """
        if self._sink is None:
            return
        try:
            self._sink.status_changed(status, self.progress_percent)
        except ConflictError as exc:
            if not strict:
                logger.warning(
                    "Assignment=%s did not accept status %s: %s",
                    self._assignment_id,
                    status,
                    exc,
                    extra={"assignment_id": self._assignment_id},
                )
                return
            self._end_after_rejection(status, exc)
            raise SessionStateError(f"assignment no longer accepts {status}: {exc}") from exc
