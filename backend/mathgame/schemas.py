from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .generators import Operation, Question
from .history import AnswerRecord


class WireModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class QuestionRequest(WireModel):
    grade: int
    level: Optional[int] = Field(default=1, ge=1)


class QuestionOut(WireModel):
    id: str
    question: str
    answer: int
    difficulty: int
    operation: Operation
    grade: int

    @classmethod
    def from_question(cls, q: Question) -> "QuestionOut":
        return cls(
            id=q.id,
            question=q.text,
            answer=q.correct_answer,
            difficulty=q.difficulty,
            operation=q.operation,
            grade=q.grade,
        )

    def to_question(self) -> Question:
        return Question(
            id=self.id,
            text=self.question,
            correct_answer=self.answer,
            operation=Operation(self.operation),
            grade=self.grade,
            difficulty=self.difficulty,
        )


class AnswerIn(WireModel):
    session_id: str
    question_id: str
    question: str
    user_answer: int  # -1 = timed out
    correct_answer: int
    is_correct: bool
    operation: Operation
    grade: int
    time_spent: float = Field(default=0.0, ge=0)
    difficulty: Optional[int] = None

    @classmethod
    def from_record(cls, record: AnswerRecord) -> "AnswerIn":
        return cls(
            session_id=record.session_id,
            question_id=record.question_id,
            question=record.question_text,
            user_answer=record.user_answer,
            correct_answer=record.correct_answer,
            is_correct=record.is_correct,
            operation=record.operation,
            grade=record.grade,
            time_spent=record.time_spent_s,
            difficulty=record.difficulty,
        )

    def to_record(self, *, timestamp: datetime) -> AnswerRecord:
        return AnswerRecord(
            session_id=self.session_id,
            question_id=self.question_id,
            question_text=self.question,
            user_answer=self.user_answer,
            correct_answer=self.correct_answer,
            is_correct=self.is_correct,
            operation=Operation(self.operation),
            grade=self.grade,
            time_spent_s=self.time_spent,
            timestamp=timestamp,
            difficulty=self.difficulty,
        )


class AnswerAck(WireModel):
    success: bool
    correct: bool


class HintRequest(WireModel):
    question: Optional[str] = None
    operation: Optional[str] = Field(default=Operation.ADDITION.value)
    grade: int = 1
    correct_answer: Optional[int] = None


class HintResponse(WireModel):
    hint: str


class LeaderboardEntryOut(WireModel):
    id: str
    name: str
    score: int
    grade: int
    streak: int


class RecentActivityOut(WireModel):
    question: str
    user_answer: int
    is_correct: bool
    time_spent: float
    timestamp: datetime


class ProgressPointOut(WireModel):
    date: str
    score: int
    accuracy: int


class StudentStatsOut(WireModel):
    id: str
    name: str
    grade: int
    total_questions: int
    correct_answers: int
    current_streak: int
    best_streak: int
    average_time: float
    weak_areas: List[str]
    recent_activity: List[RecentActivityOut]
    progress_over_time: List[ProgressPointOut]


class HealthResponse(BaseModel):
    status: str
    timestamp: datetime
