from datetime import datetime, timedelta, timezone

from mathgame.analytics import (
    aggregate,
    best_streak,
    current_streak,
    progress_over_time,
    rank,
    student_stats,
    weak_areas,
)
from mathgame.generators import Operation
from mathgame.history import AnswerRecord, SessionMeta

T0 = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _rec(correct: bool, op: Operation = Operation.ADDITION, *, sid: str = "session-0001", i: int = 0, ts=None, spent: float = 2.0):
    return AnswerRecord(
        session_id=sid,
        question_id=f"q{i}",
        question_text=f"What is {i} + 1?",
        user_answer=i + 1 if correct else -1,
        correct_answer=i + 1,
        is_correct=correct,
        operation=op,
        grade=2,
        time_spent_s=spent,
        timestamp=ts or T0 + timedelta(minutes=i),
    )


def _history(pattern: str, **kwargs):
    return [_rec(c == "y", i=i, **kwargs) for i, c in enumerate(pattern)]


def test_streaks():
    history = _history("yyynyyyyn" + "yy")
    assert current_streak(history) == 2
    assert best_streak(history) == 4
    assert current_streak(_history("yyn")) == 0
    assert best_streak([]) == 0
    assert current_streak([]) == 0


def test_weak_area_two_of_three_is_weak():
    history = [
        _rec(True, Operation.DIVISION, i=0),
        _rec(True, Operation.DIVISION, i=1),
        _rec(False, Operation.DIVISION, i=2),
        _rec(True, Operation.ADDITION, i=3),
        _rec(True, Operation.ADDITION, i=4),
        _rec(True, Operation.ADDITION, i=5),
    ]
    assert weak_areas(history) == ["division"]


def test_weak_area_needs_three_attempts():
    history = [_rec(False, Operation.MULTIPLICATION, i=i) for i in range(2)]
    assert weak_areas(history) == []


def test_weak_area_uses_operation_tag_not_text():
    # the text says "+", the tag says subtraction
    history = [_rec(False, Operation.SUBTRACTION, i=i) for i in range(3)]
    assert weak_areas(history) == ["subtraction"]


def test_progress_over_time_groups_by_utc_date():
    day2 = T0 + timedelta(days=1)
    history = [
        _rec(True, i=0, ts=day2),
        _rec(True, i=1, ts=T0),
        _rec(False, i=2, ts=T0 + timedelta(hours=1)),
        _rec(True, i=3, ts=T0 + timedelta(hours=2)),
        # 23:30 at UTC-5 is the next day in UTC
        _rec(False, i=4, ts=datetime(2024, 3, 1, 23, 30, tzinfo=timezone(timedelta(hours=-5)))),
    ]
    points = progress_over_time(history)
    assert [p.date for p in points] == ["2024-03-01", "2024-03-02"]
    assert (points[0].score, points[0].accuracy) == (20, 67)
    assert (points[1].score, points[1].accuracy) == (10, 50)


def test_aggregate_full_view():
    history = _history("ynyyyyyyyyyy", spent=3.0)
    stats = aggregate("session-0001", history, SessionMeta("session-0001", 2, T0))
    assert stats.name == "Student 0001"
    assert stats.grade == 2
    assert stats.total_questions == 12
    assert stats.correct_answers == 11
    assert stats.current_streak == 10
    assert stats.best_streak == 10
    assert stats.average_time == 3.0
    assert stats.weak_areas == []
    assert len(stats.recent_activity) == 10
    assert [a.question for a in stats.recent_activity] == [r.question_text for r in history[-10:]]
    assert stats.recent_activity[0].user_answer == 3
    assert stats.progress_over_time[0].score == 110


def test_aggregate_empty_history_is_excluded():
    assert aggregate("s", []) is None
    assert student_stats({"s": []}) == []


def test_student_stats_sorted_by_correct_answers():
    histories = {
        "aaaa": _history("yn", sid="aaaa"),
        "bbbb": _history("yyy", sid="bbbb"),
        "cccc": _history("ny", sid="cccc"),
    }
    assert [s.id for s in student_stats(histories)] == ["bbbb", "aaaa", "cccc"]


def test_leaderboard_orders_by_flat_score():
    histories = {
        "s-three": _history("yyyn", sid="s-three"),
        "s-five": _history("yyyyy", sid="s-five"),
    }
    entries = rank(histories)
    assert [e.id for e in entries] == ["s-five", "s-three"]
    assert [e.score for e in entries] == [50, 30]
    assert [e.streak for e in entries] == [5, 0]
    assert entries[0].name == "Player five"


def test_leaderboard_ties_keep_earliest_session_first():
    histories = {
        "first": _history("yy", sid="first"),
        "second": _history("yy", sid="second"),
        "third": _history("yyy", sid="third"),
    }
    assert [e.id for e in rank(histories)] == ["third", "first", "second"]


def test_leaderboard_grade_comes_from_session_meta():
    histories = {"abcd": _history("y", sid="abcd")}
    meta = {"abcd": SessionMeta("abcd", 5, T0)}
    assert rank(histories, meta)[0].grade == 5
    assert rank(histories)[0].grade == 2
