import json
import logging
import random
from typing import Dict, Optional, Tuple

import google.generativeai as genai

from .generators import Operation
from .guardrails import validate_hint
from .settings import settings

_log = logging.getLogger(__name__)

DEFAULT_HINT = "Try thinking about this step by step!"

FALLBACK_HINTS: Dict[str, Tuple[str, ...]] = {
    Operation.ADDITION.value: (
        "Try counting up from the bigger number!",
        "You can use your fingers to help count!",
        "Think about combining the two groups together!",
        "What happens when you put these numbers together?",
    ),
    Operation.SUBTRACTION.value: (
        "Start with the bigger number and count backwards!",
        "Think about taking away from the first number!",
        "What's left when you remove some from the group?",
        "Try using objects to help you visualize!",
    ),
    Operation.MULTIPLICATION.value: (
        "Think about adding the same number multiple times!",
        "Remember your times tables!",
        "You can draw groups to help you!",
        "What pattern do you see in the numbers?",
    ),
    Operation.DIVISION.value: (
        "How many equal groups can you make?",
        "Think about sharing equally!",
        "What number times the divisor gives you this answer?",
        "Try counting how many times the smaller number fits!",
    ),
}


def fallback_hint(operation: str, *, rng: Optional[random.Random] = None) -> str:
    key = str(getattr(operation, "value", operation))
    hints = FALLBACK_HINTS.get(key, FALLBACK_HINTS[Operation.ADDITION.value])
    return (rng or random).choice(hints)


def _hint_prompt(question: str, operation: str, grade: int) -> str:
    return (
        f"You are a helpful math tutor for grade {grade} students. "
        "Provide an encouraging, age-appropriate hint that guides the student "
        "toward the answer without giving it away. Keep it simple and positive.\n"
        f'Problem ({operation}): "{question}"\n'
        'Return ONLY compact JSON: {"hint": "your hint here"}. No code fences.'
    )


def _parse_hint_json(text: str) -> dict:
    text = (text or "").strip()
    if text.startswith("```"):
        text = text.strip("`")
        text = text.replace("json", "", 1).strip()
    return json.loads(text)


def generate_hint(
    question: str,
    operation: str,
    grade: int,
    *,
    correct_answer: Optional[int] = None,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
    rng: Optional[random.Random] = None,
) -> str:
    """Ask Gemini for a hint; any failure yields a canned hint for ``operation``."""
    op = str(getattr(operation, "value", operation))
    api_key = api_key if api_key is not None else settings.gemini_api_key
    if not api_key:
        _log.warning("no_api_key_fallback operation=%s", op)
        return fallback_hint(op, rng=rng)

    try:
        genai.configure(api_key=api_key)
        model = genai.GenerativeModel(
            model_name=model_name or settings.gemini_model,
            generation_config={
                "response_mime_type": "application/json",
                "max_output_tokens": 150,
                "temperature": 0.7,
            },
        )
        resp = model.generate_content(_hint_prompt(question, op, grade))
        data = _parse_hint_json(resp.text)
    except json.JSONDecodeError:
        _log.warning("json_parse_fallback operation=%s", op)
        return fallback_hint(op, rng=rng)
    except Exception as exc:
        _log.warning("ai_error_fallback operation=%s error=%s", op, exc)
        return fallback_hint(op, rng=rng)

    if isinstance(data, dict) and not data.get("hint"):
        return DEFAULT_HINT

    ok, hint, reasons = validate_hint(data, correct_answer=correct_answer)
    if not ok:
        _log.warning("validation_fallback operation=%s reasons=%s", op, ",".join(reasons))
        return fallback_hint(op, rng=rng)
    return hint
