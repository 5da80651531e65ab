import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .analytics import rank, student_stats
from .db import Base, engine, get_db
from .generators import GenerationError, InvalidGradeError, generate_question, validate_grade
from .hints import generate_hint
from .history import SqlAnswerLog, utc_now
from .schemas import (
    AnswerAck,
    AnswerIn,
    HealthResponse,
    HintRequest,
    HintResponse,
    LeaderboardEntryOut,
    QuestionOut,
    QuestionRequest,
    StudentStatsOut,
)
from .settings import settings

logging.basicConfig(level=settings.log_level)
_log = logging.getLogger(__name__)

app = FastAPI(title="Math Game API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=False,
)

Base.metadata.create_all(bind=engine)


def get_answer_log(db: Session = Depends(get_db)) -> SqlAnswerLog:
    return SqlAnswerLog(db)


@app.get("/api/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok", timestamp=utc_now())


@app.post("/api/game/question", response_model=QuestionOut)
def game_question(req: QuestionRequest):
    try:
        grade = validate_grade(req.grade)
    except InvalidGradeError:
        raise HTTPException(status_code=400, detail="Invalid grade level")
    try:
        question = generate_question(grade, req.level or 1)
    except GenerationError:
        # a valid grade with no template is a template-table defect
        _log.exception("question_generation_failed grade=%s level=%s", req.grade, req.level)
        raise HTTPException(status_code=500, detail="Failed to generate question")
    return QuestionOut.from_question(question)


@app.post("/api/game/answer", response_model=AnswerAck)
def game_answer(req: AnswerIn, log: SqlAnswerLog = Depends(get_answer_log)):
    try:
        log.append(req.to_record(timestamp=utc_now()))
    except SQLAlchemyError:
        _log.exception("answer_save_failed session=%s question=%s", req.session_id, req.question_id)
        raise HTTPException(status_code=500, detail="Failed to save answer")
    return AnswerAck(success=True, correct=req.is_correct)


@app.post("/api/game/hint", response_model=HintResponse)
def game_hint(req: HintRequest):
    if not req.question:
        raise HTTPException(status_code=400, detail="Question is required")
    hint = generate_hint(
        req.question,
        req.operation or "addition",
        req.grade,
        correct_answer=req.correct_answer,
    )
    return HintResponse(hint=hint)


@app.get("/api/leaderboard", response_model=List[LeaderboardEntryOut])
def leaderboard(log: SqlAnswerLog = Depends(get_answer_log)):
    try:
        entries = rank(log.histories(), log.session_meta())
    except Exception as exc:
        _log.warning("leaderboard_failed error=%s", exc)
        return []
    return [LeaderboardEntryOut.model_validate(e) for e in entries]


@app.get("/api/teacher/students", response_model=List[StudentStatsOut])
def teacher_students(log: SqlAnswerLog = Depends(get_answer_log)):
    try:
        stats = student_stats(log.histories(), log.session_meta())
    except Exception as exc:
        _log.warning("student_stats_failed error=%s", exc)
        return []
    return [StudentStatsOut.model_validate(s) for s in stats]
