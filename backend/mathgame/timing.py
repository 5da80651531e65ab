import math
import re
from typing import Dict

from .generators import Operation, Question

MIN_TIME_LIMIT_S = 15
MAX_TIME_LIMIT_S = 120

_OPERATION_FACTOR: Dict[Operation, float] = {
    Operation.ADDITION: 1.0,
    Operation.SUBTRACTION: 1.1,
    Operation.MULTIPLICATION: 1.3,
    Operation.DIVISION: 1.5,
}

# (threshold, factor); thresholds compound, so 1001 gets all three
_MAGNITUDE_FACTORS = ((100, 1.2), (500, 1.3), (1000, 1.4))

_NUMBER = re.compile(r"\d+")


def base_time_for_grade(grade: int) -> float:
    if grade <= 2:
        return 45.0
    if grade <= 4:
        return 35.0
    return 25.0


def largest_number(text: str) -> int:
    numbers = [int(n) for n in _NUMBER.findall(text or "")]
    return max(numbers) if numbers else 0


def compute_time_limit(question: Question, grade: int, level: int) -> int:
    """Seconds allowed for ``question``; always an int in [15, 120]."""
    seconds = base_time_for_grade(grade)
    seconds *= _OPERATION_FACTOR.get(Operation(question.operation), 1.0)
    seconds *= 1 + (level - 1) * 0.1

    biggest = largest_number(question.text)
    for threshold, factor in _MAGNITUDE_FACTORS:
        if biggest > threshold:
            seconds *= factor

    clamped = max(MIN_TIME_LIMIT_S, min(MAX_TIME_LIMIT_S, seconds))
    # half-up, not banker's rounding
    return int(math.floor(clamped + 0.5))
