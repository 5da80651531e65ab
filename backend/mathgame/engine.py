from __future__ import annotations

import asyncio
import logging
import random
import uuid
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional, Protocol, Set

from .clock import Clock, RealClock, elapsed_since
from .generators import Question, generate_question, parse_answer, validate_grade
from .hints import fallback_hint
from .history import TIMEOUT_ANSWER, AnswerRecord, utc_now
from .settings import settings
from .timing import compute_time_limit

_log = logging.getLogger(__name__)

TIME_WARNING_S = 10.0
POINTS_PER_STREAK_STEP = 10
POINTS_PER_LEVEL = 100


class GameState(str, Enum):
    MENU = "menu"
    PLAYING = "playing"
    PAUSED = "paused"
    ENDED = "ended"


class GameEvent(str, Enum):
    CORRECT_ANSWER = "correct_answer"
    WRONG_ANSWER = "wrong_answer"
    TIME_WARNING = "time_warning"
    TIME_UP = "time_up"
    QUESTION_DEALT = "question_dealt"


Listener = Callable[[GameEvent], None]


class QuestionSource(Protocol):
    async def fetch_question(self, grade: int, level: int) -> Question:
        ...


class AnswerSink(Protocol):
    async def persist_answer(self, record: AnswerRecord) -> None:
        ...


class HintSource(Protocol):
    async def fetch_hint(self, question: Question) -> str:
        ...


class LocalQuestionSource:
    """Questions straight from the in-process generator."""

    def __init__(self, rng: Optional[random.Random] = None) -> None:
        self._rng = rng or random.Random()

    async def fetch_question(self, grade: int, level: int) -> Question:
        return generate_question(grade, level, rng=self._rng)


@dataclass(frozen=True)
class GameSnapshot:
    """HUD view model (pure data)."""

    state: GameState
    session_id: str
    grade: int
    question: Optional[Question]
    score: int
    streak: int
    level: int
    progress: float
    total_questions: int
    correct_answers: int
    time_remaining_s: float
    time_limit_s: int


def level_for_score(score: int) -> int:
    return score // POINTS_PER_LEVEL + 1


class GameSession:
    """One play session: menu -> playing <-> paused -> ended.

    Each instance is an explicitly owned handle; nothing is shared between
    sessions. ``tick`` and every answer submission run under one
    ``asyncio.Lock`` so a tick never observes a half-scored answer.
    Persisting the answer record and dealing the next question happen in
    background tasks and never roll back the local score.
    """

    def __init__(
        self,
        *,
        questions: QuestionSource,
        answers: Optional[AnswerSink] = None,
        hints: Optional[HintSource] = None,
        grade: int = 1,
        clock: Optional[Clock] = None,
        wall_clock: Callable[[], datetime] = utc_now,
        rng: Optional[random.Random] = None,
        next_question_delay_s: Optional[float] = None,
    ) -> None:
        self._questions = questions
        self._answers = answers
        self._hints = hints
        self._grade = validate_grade(grade)
        self._clock = clock or RealClock()
        self._wall_clock = wall_clock
        self._rng = rng or random.Random()
        if next_question_delay_s is None:
            next_question_delay_s = settings.next_question_delay_s
        if next_question_delay_s < 0:
            raise ValueError("next_question_delay_s must be >= 0")
        self._next_question_delay_s = float(next_question_delay_s)

        self._lock = asyncio.Lock()
        self._tasks: Set[asyncio.Task] = set()
        self._listeners: list[Listener] = []

        self._state = GameState.MENU
        self._session_id = ""
        self._reset_counters()
        self.persist_failures = 0

    def _reset_counters(self) -> None:
        self._current: Optional[Question] = None
        self._score = 0
        self._streak = 0
        self._level = 1
        self._progress = 0.0
        self._total_questions = 0
        self._correct_answers = 0
        self._time_limit_s = 0
        self._time_remaining_s = 0.0
        # remaining time as of the previous tick; pause() does not touch it
        self._ticked_remaining_s = 0.0
        self._question_started_at: Optional[float] = None
        self._warned = False

    # -- read side -------------------------------------------------------

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def grade(self) -> int:
        return self._grade

    @property
    def current_question(self) -> Optional[Question]:
        return self._current

    def snapshot(self) -> GameSnapshot:
        return GameSnapshot(
            state=self._state,
            session_id=self._session_id,
            grade=self._grade,
            question=self._current,
            score=self._score,
            streak=self._streak,
            level=self._level,
            progress=self._progress,
            total_questions=self._total_questions,
            correct_answers=self._correct_answers,
            time_remaining_s=self._time_remaining_s,
            time_limit_s=self._time_limit_s,
        )

    # -- observers -------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a callable that removes it.

        Listeners live until unsubscribed or until the session ends.
        """
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, event: GameEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                _log.exception("listener_failed session=%s event=%s", self._session_id, event.value)

    # -- lifecycle -------------------------------------------------------

    def set_grade(self, grade: int) -> None:
        if self._state is not GameState.MENU:
            return
        self._grade = validate_grade(grade)

    async def start(self) -> None:
        async with self._lock:
            if self._state is not GameState.MENU:
                return
            self._session_id = uuid.UUID(int=self._rng.getrandbits(128), version=4).hex
            self._reset_counters()
            self._state = GameState.PLAYING
        await self._deal_question()

    async def pause(self) -> None:
        async with self._lock:
            if self._state is not GameState.PLAYING:
                return
            self._refresh_remaining_locked()
            self._state = GameState.PAUSED

    async def resume(self) -> None:
        async with self._lock:
            if self._state is not GameState.PAUSED:
                return
            self._state = GameState.PLAYING
            if self._current is not None:
                # continue from the stored remaining time, not a fresh limit
                elapsed = self._time_limit_s - self._time_remaining_s
                self._question_started_at = self._clock.now() - elapsed

    async def end(self) -> None:
        async with self._lock:
            if self._state not in (GameState.PLAYING, GameState.PAUSED):
                return
            self._state = GameState.ENDED
            self._current = None
            self._question_started_at = None
            self._listeners.clear()

    def reset(self) -> None:
        """Return an ended session to the menu."""
        if self._state is GameState.ENDED:
            self._state = GameState.MENU

    async def drain(self) -> None:
        """Wait for outstanding persistence and question-dealing tasks."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def run_clock(self, interval_s: float = 1.0) -> None:
        """Tick every ``interval_s`` until the session ends."""
        while self._state is not GameState.ENDED:
            await asyncio.sleep(interval_s)
            await self.tick()

    # -- answers and timer -----------------------------------------------

    async def submit_answer(self, answer: int) -> bool:
        async with self._lock:
            if self._state is not GameState.PLAYING or self._current is None:
                return False
            return self._record_answer_locked(int(answer))

    async def submit_text(self, raw: str) -> Optional[bool]:
        """Submit typed or transcribed input; unparseable input is ignored (None)."""
        value = parse_answer(raw)
        if value is None:
            return None
        return await self.submit_answer(value)

    async def tick(self) -> GameSnapshot:
        async with self._lock:
            if self._state is not GameState.PLAYING or self._current is None:
                return self.snapshot()
            previous = self._ticked_remaining_s
            remaining = self._refresh_remaining_locked()
            self._ticked_remaining_s = remaining
            if not self._warned and previous > TIME_WARNING_S >= remaining:
                self._warned = True
                self._emit(GameEvent.TIME_WARNING)
            if remaining == 0:
                self._emit(GameEvent.TIME_UP)
                self._record_answer_locked(TIMEOUT_ANSWER)
            return self.snapshot()

    async def request_hint(self) -> str:
        question = self._current
        if question is None:
            return "Think step by step and try again!"
        if self._hints is not None:
            try:
                hint = await self._hints.fetch_hint(question)
                if hint:
                    return hint
            except Exception as exc:
                _log.warning("hint_fallback operation=%s error=%s", question.operation.value, exc)
        return fallback_hint(question.operation, rng=self._rng)

    def _refresh_remaining_locked(self) -> float:
        if self._question_started_at is None:
            return self._time_remaining_s
        elapsed = elapsed_since(self._clock, self._question_started_at)
        self._time_remaining_s = max(0.0, self._time_limit_s - elapsed)
        return self._time_remaining_s

    def _record_answer_locked(self, answer: int) -> bool:
        question = self._current
        if question is None:
            raise RuntimeError("no question is being asked")

        is_correct = answer == question.correct_answer and answer != TIMEOUT_ANSWER
        self._total_questions += 1
        if is_correct:
            # reward scales with the streak before this answer
            self._score += POINTS_PER_STREAK_STEP * (self._streak + 1)
            self._streak += 1
            self._correct_answers += 1
        else:
            self._streak = 0
        self._level = level_for_score(self._score)
        self._progress = min(100.0, self._correct_answers / self._total_questions * 100)

        time_spent = elapsed_since(self._clock, self._question_started_at)

        record = AnswerRecord(
            session_id=self._session_id,
            question_id=question.id,
            question_text=question.text,
            user_answer=answer,
            correct_answer=question.correct_answer,
            is_correct=is_correct,
            operation=question.operation,
            grade=self._grade,
            time_spent_s=time_spent,
            timestamp=self._wall_clock(),
            difficulty=question.difficulty,
        )

        self._current = None
        self._question_started_at = None
        self._emit(GameEvent.CORRECT_ANSWER if is_correct else GameEvent.WRONG_ANSWER)

        self._spawn(self._persist(record))
        self._spawn(self._deal_after(self._next_question_delay_s))
        return is_correct

    # -- background work -------------------------------------------------

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _persist(self, record: AnswerRecord) -> None:
        if self._answers is None:
            return
        try:
            await self._answers.persist_answer(record)
        except Exception as exc:
            self.persist_failures += 1
            _log.warning("persist_failed session=%s question=%s error=%s", record.session_id, record.question_id, exc)

    async def _deal_after(self, delay_s: float) -> None:
        if delay_s > 0:
            await asyncio.sleep(delay_s)
        await self._deal_question()

    async def _deal_question(self) -> None:
        if self._state not in (GameState.PLAYING, GameState.PAUSED):
            return
        try:
            question = await self._questions.fetch_question(self._grade, self._level)
        except Exception:
            _log.exception("deal_failed session=%s grade=%s level=%s", self._session_id, self._grade, self._level)
            return
        async with self._lock:
            if self._state not in (GameState.PLAYING, GameState.PAUSED) or self._current is not None:
                return
            self._current = question
            self._time_limit_s = compute_time_limit(question, self._grade, self._level)
            self._time_remaining_s = float(self._time_limit_s)
            self._ticked_remaining_s = self._time_remaining_s
            self._question_started_at = self._clock.now()
            self._warned = False
            self._emit(GameEvent.QUESTION_DEALT)
