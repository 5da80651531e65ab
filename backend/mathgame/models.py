from __future__ import annotations

from sqlalchemy import Boolean, Column, DateTime, Float, Integer, String

from .db import Base


class PlaySession(Base):
    __tablename__ = "play_sessions"

    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String, unique=True, index=True, nullable=False)
    grade = Column(Integer, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)


class Answer(Base):
    __tablename__ = "answers"

    # autoincrement id doubles as submission order
    id = Column(Integer, primary_key=True, index=True)
    session_id = Column(String, index=True, nullable=False)
    question_id = Column(String, nullable=False)
    question_text = Column(String, nullable=False)
    user_answer = Column(Integer, nullable=False)  # -1 = timed out
    correct_answer = Column(Integer, nullable=False)
    is_correct = Column(Boolean, nullable=False)
    operation = Column(String, index=True, nullable=False)
    grade = Column(Integer, nullable=False)
    difficulty = Column(Integer, nullable=True)
    time_spent_s = Column(Float, nullable=False, default=0.0)
    created_at = Column(DateTime(timezone=True), nullable=False)
