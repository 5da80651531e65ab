import math
import random
import re
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

import sympy as sp

MIN_GRADE = 1
MAX_GRADE = 6


class Operation(str, Enum):
    ADDITION = "addition"
    SUBTRACTION = "subtraction"
    MULTIPLICATION = "multiplication"
    DIVISION = "division"


class GenerationError(ValueError):
    pass


class InvalidGradeError(GenerationError):
    def __init__(self, grade: int) -> None:
        super().__init__(f"Invalid grade level: {grade}")
        self.grade = grade


class NoTemplateError(GenerationError):
    def __init__(self, grade: int) -> None:
        super().__init__(f"No templates found for grade {grade}")
        self.grade = grade


@dataclass(frozen=True)
class QuestionTemplate:
    grade: int
    operation: Operation
    min_value: int
    max_value: int
    phrasings: Tuple[str, ...]


@dataclass(frozen=True)
class Question:
    id: str
    text: str
    correct_answer: int
    operation: Operation
    grade: int
    difficulty: int


QUESTION_TEMPLATES: List[QuestionTemplate] = [
    # Lower Primary
    QuestionTemplate(
        grade=1,
        operation=Operation.ADDITION,
        min_value=1,
        max_value=10,
        phrasings=(
            "What is {a} + {b}?",
            "Add {a} and {b}",
            "If you have {a} apples and get {b} more, how many do you have?",
            "{a} plus {b} equals what?",
        ),
    ),
    QuestionTemplate(
        grade=1,
        operation=Operation.SUBTRACTION,
        min_value=1,
        max_value=10,
        phrasings=(
            "What is {a} - {b}?",
            "Subtract {b} from {a}",
            "If you have {a} toys and give away {b}, how many are left?",
            "{a} minus {b} equals what?",
        ),
    ),
    # Upper Primary
    QuestionTemplate(
        grade=2,
        operation=Operation.ADDITION,
        min_value=10,
        max_value=50,
        phrasings=(
            "Calculate {a} + {b}",
            "What is the sum of {a} and {b}?",
            "Add {a} to {b}",
            "{a} + {b} = ?",
        ),
    ),
    QuestionTemplate(
        grade=2,
        operation=Operation.SUBTRACTION,
        min_value=10,
        max_value=50,
        phrasings=(
            "Calculate {a} - {b}",
            "What is the difference between {a} and {b}?",
            "Subtract {b} from {a}",
            "{a} - {b} = ?",
        ),
    ),
    QuestionTemplate(
        grade=2,
        operation=Operation.MULTIPLICATION,
        min_value=2,
        max_value=10,
        phrasings=(
            "What is {a} × {b}?",
            "Multiply {a} by {b}",
            "What is {a} times {b}?",
            "{a} × {b} = ?",
        ),
    ),
    # Form 1
    QuestionTemplate(
        grade=3,
        operation=Operation.ADDITION,
        min_value=50,
        max_value=200,
        phrasings=(
            "Calculate {a} + {b}",
            "What is {a} plus {b}?",
            "Find the sum: {a} + {b}",
            "{a} + {b} = ?",
        ),
    ),
    QuestionTemplate(
        grade=3,
        operation=Operation.MULTIPLICATION,
        min_value=10,
        max_value=15,
        phrasings=(
            "Calculate {a} × {b}",
            "What is {a} multiplied by {b}?",
            "Find the product: {a} × {b}",
            "{a} × {b} = ?",
        ),
    ),
    QuestionTemplate(
        grade=3,
        operation=Operation.DIVISION,
        min_value=2,
        max_value=12,
        phrasings=(
            "What is {dividend} ÷ {b}?",
            "Divide {dividend} by {b}",
            "How many times does {b} go into {dividend}?",
            "{dividend} ÷ {b} = ?",
        ),
    ),
    # Form 2-4
    QuestionTemplate(
        grade=4,
        operation=Operation.ADDITION,
        min_value=100,
        max_value=1000,
        phrasings=(
            "Calculate {a} + {b}",
            "What is the sum of {a} and {b}?",
            "Add: {a} + {b}",
            "{a} + {b} = ?",
        ),
    ),
    QuestionTemplate(
        grade=4,
        operation=Operation.MULTIPLICATION,
        min_value=15,
        max_value=25,
        phrasings=(
            "Calculate {a} × {b}",
            "What is {a} times {b}?",
            "Multiply: {a} × {b}",
            "{a} × {b} = ?",
        ),
    ),
    QuestionTemplate(
        grade=4,
        operation=Operation.DIVISION,
        min_value=5,
        max_value=20,
        phrasings=(
            "Calculate {dividend} ÷ {b}",
            "What is {dividend} divided by {b}?",
            "Divide: {dividend} ÷ {b}",
            "{dividend} ÷ {b} = ?",
        ),
    ),
]


def validate_grade(grade: int) -> int:
    if not isinstance(grade, int) or isinstance(grade, bool) or not (MIN_GRADE <= grade <= MAX_GRADE):
        raise InvalidGradeError(grade)
    return grade


def difficulty_multiplier(level: int) -> float:
    # magnitude grows with level, capped at 3x the template range
    return min(level * 0.5 + 1, 3)


def scaled_range(template: QuestionTemplate, level: int) -> Tuple[int, int]:
    mult = difficulty_multiplier(level)
    return math.floor(template.min_value * mult), math.floor(template.max_value * mult)


def templates_for_grade(grade: int) -> List[QuestionTemplate]:
    return [t for t in QUESTION_TEMPLATES if t.grade <= grade]


def generate_question(
    grade: int,
    level: int = 1,
    *,
    rng: Optional[random.Random] = None,
) -> Question:
    """Build one arithmetic question for ``grade`` at difficulty ``level``.

    Any template whose tier is at or below ``grade`` may be picked, so the
    returned question's grade is the template tier. Subtraction never goes
    negative and division always divides exactly.
    """
    if level < 1:
        raise ValueError("level must be >= 1")
    candidates = templates_for_grade(grade)
    if not candidates:
        raise NoTemplateError(grade)

    rng = rng or random.Random()
    template = rng.choice(candidates)
    phrasing = rng.choice(template.phrasings)
    lo, hi = scaled_range(template, level)

    op = template.operation
    if op is Operation.ADDITION:
        a = rng.randint(lo, hi)
        b = rng.randint(lo, hi)
        answer = a + b
        text = phrasing.format(a=a, b=b)
    elif op is Operation.SUBTRACTION:
        a = rng.randint(lo, hi)
        b = rng.randint(1, a)
        answer = a - b
        text = phrasing.format(a=a, b=b)
    elif op is Operation.MULTIPLICATION:
        a = rng.randint(lo, hi)
        b = rng.randint(lo, hi)
        answer = a * b
        text = phrasing.format(a=a, b=b)
    else:
        # pick divisor and quotient; the dividend is their product
        b = rng.randint(lo, hi)
        answer = rng.randint(lo, hi)
        dividend = b * answer
        text = phrasing.format(dividend=dividend, a=dividend, b=b)

    return Question(
        id=uuid.UUID(int=rng.getrandbits(128), version=4).hex,
        text=text,
        correct_answer=int(answer),
        operation=op,
        grade=template.grade,
        difficulty=level,
    )


_ANSWER_CHARS = re.compile(r"^[0-9+\-*/().\s]+$")


def parse_answer(raw: str) -> Optional[int]:
    """Parse typed or transcribed input into an integer answer.

    Accepts plain integers and exact integer-valued expressions such as
    ``"24/2"`` or ``"12.0"``. Anything else returns None.
    """
    text = (raw or "").strip().replace("×", "*").replace("÷", "/")
    if not text or not _ANSWER_CHARS.match(text) or "**" in text:
        return None
    try:
        value = sp.nsimplify(sp.sympify(text))
    except Exception:
        return None
    if not value.is_Integer:
        return None
    return int(value)
