from __future__ import annotations

import logging
import random
from typing import List, Optional

import httpx

from .generators import Question, generate_question
from .hints import fallback_hint
from .history import AnswerRecord
from .schemas import AnswerIn, LeaderboardEntryOut, QuestionOut, StudentStatsOut
from .settings import settings

_log = logging.getLogger(__name__)


class GameApiClient:
    """Async client for the game server.

    Every call is best effort: question fetches fall back to the local
    generator, hints to a canned hint, and read projections to ``[]``.
    Only ``persist_answer`` raises, so the caller can log the failure.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout if timeout is not None else settings.request_timeout_s,
            transport=transport,
        )
        self._rng = rng or random.Random()

    async def __aenter__(self) -> "GameApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch_question(self, grade: int, level: int) -> Question:
        try:
            r = await self._client.post("/api/game/question", json={"grade": grade, "level": level})
            r.raise_for_status()
            return QuestionOut.model_validate(r.json()).to_question()
        except Exception as exc:
            _log.warning("question_fetch_fallback grade=%s level=%s error=%s", grade, level, exc)
            return generate_question(grade, level, rng=self._rng)

    async def fetch_hint(self, question: Question) -> str:
        payload = {
            "question": question.text,
            "operation": question.operation.value,
            "grade": question.grade,
            "correctAnswer": question.correct_answer,
        }
        try:
            r = await self._client.post("/api/game/hint", json=payload)
            r.raise_for_status()
            hint = r.json().get("hint")
            if isinstance(hint, str) and hint.strip():
                return hint
            raise ValueError("empty hint")
        except Exception as exc:
            _log.warning("hint_fetch_fallback operation=%s error=%s", question.operation.value, exc)
            return fallback_hint(question.operation, rng=self._rng)

    async def persist_answer(self, record: AnswerRecord) -> None:
        body = AnswerIn.from_record(record).model_dump(mode="json", by_alias=True)
        r = await self._client.post("/api/game/answer", json=body)
        r.raise_for_status()

    async def fetch_leaderboard(self) -> List[LeaderboardEntryOut]:
        try:
            r = await self._client.get("/api/leaderboard")
            r.raise_for_status()
            return [LeaderboardEntryOut.model_validate(row) for row in r.json()]
        except Exception as exc:
            _log.warning("leaderboard_fetch_failed error=%s", exc)
            return []

    async def fetch_student_stats(self) -> List[StudentStatsOut]:
        try:
            r = await self._client.get("/api/teacher/students")
            r.raise_for_status()
            return [StudentStatsOut.model_validate(row) for row in r.json()]
        except Exception as exc:
            _log.warning("student_stats_fetch_failed error=%s", exc)
            return []
