from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol

from sqlalchemy.orm import Session

from .generators import Operation
from .models import Answer, PlaySession

_log = logging.getLogger(__name__)

TIMEOUT_ANSWER = -1


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(ts: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored here is UTC
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(frozen=True)
class AnswerRecord:
    session_id: str
    question_id: str
    question_text: str
    user_answer: int
    correct_answer: int
    is_correct: bool
    operation: Operation
    grade: int
    time_spent_s: float
    timestamp: datetime
    difficulty: Optional[int] = None

    @property
    def timed_out(self) -> bool:
        return self.user_answer == TIMEOUT_ANSWER


@dataclass(frozen=True)
class SessionMeta:
    session_id: str
    grade: int
    started_at: datetime


class AnswerLog(Protocol):
    """Append-only, per-session ordered store of answer records."""

    def append(self, record: AnswerRecord) -> None:
        ...

    def histories(self) -> Dict[str, List[AnswerRecord]]:
        """Session id -> records in submission order, sessions in first-seen order."""
        ...

    def session_meta(self) -> Dict[str, SessionMeta]:
        ...


class MemoryAnswerLog:
    """In-process answer log. Appends take a lock; readers get a snapshot."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._answers: Dict[str, List[AnswerRecord]] = {}
        self._sessions: Dict[str, SessionMeta] = {}

    def append(self, record: AnswerRecord) -> None:
        with self._lock:
            self._answers.setdefault(record.session_id, []).append(record)
            if record.session_id not in self._sessions:
                self._sessions[record.session_id] = SessionMeta(
                    session_id=record.session_id,
                    grade=record.grade,
                    started_at=record.timestamp,
                )
        _log.info(
            "answer_saved session=%s question=%r answer=%s correct=%s",
            record.session_id,
            record.question_text,
            record.user_answer,
            record.is_correct,
        )

    async def persist_answer(self, record: AnswerRecord) -> None:
        self.append(record)

    def histories(self) -> Dict[str, List[AnswerRecord]]:
        with self._lock:
            return {sid: list(records) for sid, records in self._answers.items()}

    def session_meta(self) -> Dict[str, SessionMeta]:
        with self._lock:
            return dict(self._sessions)


def _record_from_row(row: Answer) -> AnswerRecord:
    return AnswerRecord(
        session_id=row.session_id,
        question_id=row.question_id,
        question_text=row.question_text,
        user_answer=row.user_answer,
        correct_answer=row.correct_answer,
        is_correct=bool(row.is_correct),
        operation=Operation(row.operation),
        grade=row.grade,
        time_spent_s=float(row.time_spent_s or 0.0),
        timestamp=as_utc(row.created_at),
        difficulty=row.difficulty,
    )


class SqlAnswerLog:
    """Answer log on the ``answers``/``play_sessions`` tables.

    Submission order is the autoincrement primary key, so histories come
    back in the order answers were appended.
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def append(self, record: AnswerRecord) -> None:
        db = self._db
        try:
            exists = (
                db.query(PlaySession.id)
                .filter(PlaySession.session_id == record.session_id)
                .first()
            )
            if exists is None:
                db.add(
                    PlaySession(
                        session_id=record.session_id,
                        grade=record.grade,
                        started_at=as_utc(record.timestamp),
                    )
                )
            db.add(
                Answer(
                    session_id=record.session_id,
                    question_id=record.question_id,
                    question_text=record.question_text,
                    user_answer=record.user_answer,
                    correct_answer=record.correct_answer,
                    is_correct=bool(record.is_correct),
                    operation=Operation(record.operation).value,
                    grade=record.grade,
                    difficulty=record.difficulty,
                    time_spent_s=float(record.time_spent_s),
                    created_at=as_utc(record.timestamp),
                )
            )
            db.commit()
        except Exception:
            db.rollback()
            raise
        _log.info(
            "answer_saved session=%s question=%r answer=%s correct=%s",
            record.session_id,
            record.question_text,
            record.user_answer,
            record.is_correct,
        )

    async def persist_answer(self, record: AnswerRecord) -> None:
        # blocking commit; fine for SQLite and a single local session
        self.append(record)

    def histories(self) -> Dict[str, List[AnswerRecord]]:
        out: Dict[str, List[AnswerRecord]] = {}
        for row in self._db.query(Answer).order_by(Answer.id.asc()).all():
            out.setdefault(row.session_id, []).append(_record_from_row(row))
        return out

    def session_meta(self) -> Dict[str, SessionMeta]:
        rows = self._db.query(PlaySession).order_by(PlaySession.id.asc()).all()
        return {
            row.session_id: SessionMeta(
                session_id=row.session_id,
                grade=row.grade,
                started_at=as_utc(row.started_at),
            )
            for row in rows
        }
