"""Derived views over the answer history.

Everything here is a pure function of the ordered answer records (plus the
session grade), recomputed on every request. The live game awards
streak-scaled points; the leaderboard and the per-date progress series
count a flat 10 per correct answer.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, List, Mapping, Optional, Sequence

from .history import AnswerRecord, SessionMeta, as_utc

POINTS_PER_CORRECT = 10
WEAK_AREA_MIN_ATTEMPTS = 3
WEAK_AREA_ACCURACY = 0.7
RECENT_ACTIVITY_SIZE = 10


@dataclass(frozen=True)
class RecentActivity:
    question: str
    user_answer: int
    is_correct: bool
    time_spent: float
    timestamp: datetime


@dataclass(frozen=True)
class ProgressPoint:
    date: str
    score: int
    accuracy: int


@dataclass(frozen=True)
class StudentStats:
    id: str
    name: str
    grade: int
    total_questions: int
    correct_answers: int
    current_streak: int
    best_streak: int
    average_time: float
    weak_areas: List[str]
    recent_activity: List[RecentActivity]
    progress_over_time: List[ProgressPoint]


@dataclass(frozen=True)
class LeaderboardEntry:
    id: str
    name: str
    score: int
    grade: int
    streak: int


def round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def current_streak(history: Sequence[AnswerRecord]) -> int:
    streak = 0
    for record in reversed(history):
        if not record.is_correct:
            break
        streak += 1
    return streak


def best_streak(history: Sequence[AnswerRecord]) -> int:
    best = run = 0
    for record in history:
        run = run + 1 if record.is_correct else 0
        best = max(best, run)
    return best


def weak_areas(history: Sequence[AnswerRecord]) -> List[str]:
    """Operations with at least 3 attempts and under 70% accuracy."""
    totals: Dict[str, List[int]] = {}
    for record in history:
        op = str(getattr(record.operation, "value", record.operation))
        bucket = totals.setdefault(op, [0, 0])
        bucket[0] += 1
        if record.is_correct:
            bucket[1] += 1
    return [
        op
        for op, (total, correct) in totals.items()
        if total >= WEAK_AREA_MIN_ATTEMPTS and correct / total < WEAK_AREA_ACCURACY
    ]


def progress_over_time(history: Sequence[AnswerRecord]) -> List[ProgressPoint]:
    by_date: Dict[str, List[int]] = {}
    for record in history:
        day = as_utc(record.timestamp).date().isoformat()
        bucket = by_date.setdefault(day, [0, 0])
        bucket[0] += 1
        if record.is_correct:
            bucket[1] += 1
    return [
        ProgressPoint(
            date=day,
            score=POINTS_PER_CORRECT * correct,
            accuracy=round_half_up(correct / total * 100),
        )
        for day, (total, correct) in sorted(by_date.items())
    ]


def recent_activity(history: Sequence[AnswerRecord]) -> List[RecentActivity]:
    return [
        RecentActivity(
            question=r.question_text,
            user_answer=r.user_answer,
            is_correct=r.is_correct,
            time_spent=r.time_spent_s,
            timestamp=r.timestamp,
        )
        for r in list(history)[-RECENT_ACTIVITY_SIZE:]
    ]


def _grade_of(history: Sequence[AnswerRecord], meta: Optional[SessionMeta]) -> int:
    if meta is not None:
        return meta.grade
    return history[0].grade


def aggregate(
    session_id: str,
    history: Sequence[AnswerRecord],
    meta: Optional[SessionMeta] = None,
) -> Optional[StudentStats]:
    """Teacher-dashboard stats for one session; None for an empty history."""
    if not history:
        return None
    total = len(history)
    correct = sum(1 for r in history if r.is_correct)
    return StudentStats(
        id=session_id,
        name=f"Student {session_id[-4:]}",
        grade=_grade_of(history, meta),
        total_questions=total,
        correct_answers=correct,
        current_streak=current_streak(history),
        best_streak=best_streak(history),
        average_time=sum(r.time_spent_s for r in history) / total,
        weak_areas=weak_areas(history),
        recent_activity=recent_activity(history),
        progress_over_time=progress_over_time(history),
    )


def student_stats(
    histories: Mapping[str, Sequence[AnswerRecord]],
    meta: Optional[Mapping[str, SessionMeta]] = None,
) -> List[StudentStats]:
    meta = meta or {}
    stats = [aggregate(sid, history, meta.get(sid)) for sid, history in histories.items()]
    # stable: equal counts keep session order
    return sorted((s for s in stats if s is not None), key=lambda s: -s.correct_answers)


def rank(
    histories: Mapping[str, Sequence[AnswerRecord]],
    meta: Optional[Mapping[str, SessionMeta]] = None,
) -> List[LeaderboardEntry]:
    """Leaderboard, highest flat score first.

    Ties keep session order (earliest session first), since ``histories``
    is ordered by each session's first recorded answer.
    """
    meta = meta or {}
    entries: List[LeaderboardEntry] = []
    for sid, history in histories.items():
        if not history:
            continue
        correct = sum(1 for r in history if r.is_correct)
        entries.append(
            LeaderboardEntry(
                id=sid,
                name=f"Player {sid[-4:]}",
                score=POINTS_PER_CORRECT * correct,
                grade=_grade_of(history, meta.get(sid)),
                streak=current_streak(history),
            )
        )
    return sorted(entries, key=lambda e: -e.score)
