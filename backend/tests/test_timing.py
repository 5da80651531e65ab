import random

import pytest
from mathgame.generators import Operation, Question, generate_question
from mathgame.timing import compute_time_limit, largest_number


def _q(text: str, op: Operation, grade: int = 1) -> Question:
    return Question(id="q", text=text, correct_answer=0, operation=op, grade=grade, difficulty=1)


def test_base_time_by_grade_tier():
    q = _q("What is 3 + 4?", Operation.ADDITION)
    assert compute_time_limit(q, 1, 1) == 45
    assert compute_time_limit(q, 2, 1) == 45
    assert compute_time_limit(q, 3, 1) == 35
    assert compute_time_limit(q, 4, 1) == 35
    assert compute_time_limit(q, 5, 1) == 25
    assert compute_time_limit(q, 6, 1) == 25


def test_operation_factor_rounds_half_up():
    # 35 * 1.5 = 52.5
    q = _q("What is 24 ÷ 6?", Operation.DIVISION, grade=3)
    assert compute_time_limit(q, 3, 1) == 53


def test_level_factor():
    q = _q("What is 3 + 4?", Operation.ADDITION)
    # 25 * 1.4
    assert compute_time_limit(q, 5, 5) == 35


def test_magnitude_factors_compound():
    small = _q("Calculate 150 + 20", Operation.ADDITION)
    mid = _q("Calculate 600 + 20", Operation.ADDITION)
    big = _q("Calculate 1200 + 300", Operation.ADDITION)
    assert compute_time_limit(small, 3, 1) == 42  # 35 * 1.2
    assert compute_time_limit(mid, 3, 1) == 55  # 35 * 1.2 * 1.3 = 54.6
    assert compute_time_limit(big, 3, 1) == 76  # 35 * 1.2 * 1.3 * 1.4 = 76.44


def test_thresholds_are_strict():
    q = _q("Calculate 100 + 1", Operation.ADDITION)
    assert compute_time_limit(q, 3, 1) == 35


def test_clamped_to_two_minutes():
    q = _q("What is 24 ÷ 6?", Operation.DIVISION)
    # 45 * 1.5 * 1.9 = 128.25
    assert compute_time_limit(q, 1, 10) == 120


def test_largest_number():
    assert largest_number("How many times does 7 go into 84?") == 84
    assert largest_number("no digits") == 0


@pytest.mark.parametrize("grade", range(1, 7))
def test_always_int_in_bounds_and_deterministic(grade: int):
    rng = random.Random(grade)
    for level in range(1, 15):
        q = generate_question(grade, level, rng=rng)
        limit = compute_time_limit(q, grade, level)
        assert isinstance(limit, int)
        assert 15 <= limit <= 120
        assert compute_time_limit(q, grade, level) == limit
