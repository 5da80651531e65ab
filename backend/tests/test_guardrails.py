from mathgame.guardrails import MAX_HINT_LEN, validate_hint


def test_guardrails_rejects_unsafe_markup():
    data = {"hint": "Count up! <script>alert(1)</script>"}
    ok, cleaned, reasons = validate_hint(data)
    assert ok is False
    assert "unsafe_markup" in reasons


def test_guardrails_rejects_hint_that_gives_answer_away():
    data = {"hint": "The answer is 12, well done!"}
    ok, _, reasons = validate_hint(data, correct_answer=12)
    assert ok is False
    assert reasons == ["reveals_answer"]


def test_guardrails_allows_operands_that_differ_from_answer():
    data = {"hint": "Try counting up from 7 by 5 steps."}
    ok, cleaned, reasons = validate_hint(data, correct_answer=12)
    assert ok is True
    assert reasons == []
    assert cleaned == "Try counting up from 7 by 5 steps."


def test_guardrails_accepts_simple_valid_hint():
    data = {"hint": "  Think about   sharing\nequally!  "}
    ok, cleaned, reasons = validate_hint(data)
    assert ok is True
    assert cleaned == "Think about sharing equally!"


def test_guardrails_length_and_shape():
    assert validate_hint({"hint": "x" * (MAX_HINT_LEN + 1)})[2] == ["hint_too_long"]
    assert validate_hint({"hint": ""})[2] == ["hint_empty"]
    assert validate_hint({"tip": "hello"})[2] == ["hint_missing"]
    assert validate_hint(["not", "a", "dict"])[0] is False
