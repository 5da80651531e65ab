import random

import pytest
from mathgame import hints
from mathgame.hints import DEFAULT_HINT, FALLBACK_HINTS, fallback_hint, generate_hint


class _FakeResponse:
    def __init__(self, text: str) -> None:
        self.text = text


def _fake_model(text: str = "", exc: Exception = None):
    class _Model:
        def __init__(self, model_name, generation_config=None) -> None:
            self.model_name = model_name

        def generate_content(self, prompt):
            if exc is not None:
                raise exc
            return _FakeResponse(text)

    return _Model


@pytest.fixture
def configured(monkeypatch):
    monkeypatch.setattr(hints.genai, "configure", lambda **kwargs: None)


def test_fallback_hint_per_operation():
    rng = random.Random(0)
    for op, options in FALLBACK_HINTS.items():
        assert fallback_hint(op, rng=rng) in options
    assert fallback_hint("exponents", rng=rng) in FALLBACK_HINTS["addition"]


def test_no_api_key_uses_fallback():
    hint = generate_hint("What is 6 ÷ 2?", "division", 3, api_key="")
    assert hint in FALLBACK_HINTS["division"]


def test_model_hint_is_returned(configured, monkeypatch):
    monkeypatch.setattr(hints.genai, "GenerativeModel", _fake_model('{"hint": "Count the groups of 2!"}'))
    hint = generate_hint("What is 6 ÷ 2?", "division", 3, correct_answer=3, api_key="k")
    assert hint == "Count the groups of 2!"


def test_fenced_json_is_accepted(configured, monkeypatch):
    monkeypatch.setattr(hints.genai, "GenerativeModel", _fake_model('```json\n{"hint": "Add the ones first."}\n```'))
    assert generate_hint("What is 12 + 4?", "addition", 2, api_key="k") == "Add the ones first."


def test_hint_revealing_answer_falls_back(configured, monkeypatch):
    monkeypatch.setattr(hints.genai, "GenerativeModel", _fake_model('{"hint": "It is 3!"}'))
    hint = generate_hint("What is 6 ÷ 2?", "division", 3, correct_answer=3, api_key="k")
    assert hint in FALLBACK_HINTS["division"]


def test_bad_json_falls_back(configured, monkeypatch):
    monkeypatch.setattr(hints.genai, "GenerativeModel", _fake_model("not json at all"))
    assert generate_hint("What is 5 - 2?", "subtraction", 1, api_key="k") in FALLBACK_HINTS["subtraction"]


def test_model_error_falls_back(configured, monkeypatch):
    monkeypatch.setattr(hints.genai, "GenerativeModel", _fake_model(exc=RuntimeError("quota")))
    assert generate_hint("What is 5 × 2?", "multiplication", 2, api_key="k") in FALLBACK_HINTS["multiplication"]


def test_empty_hint_uses_default(configured, monkeypatch):
    monkeypatch.setattr(hints.genai, "GenerativeModel", _fake_model("{}"))
    assert generate_hint("What is 5 + 2?", "addition", 1, api_key="k") == DEFAULT_HINT
