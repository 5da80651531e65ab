import re
from typing import Any, Dict, List, Optional, Tuple

# Caps for model-written hints
MAX_HINT_LEN = 240
MIN_HINT_LEN = 3

# Markup or code that the client would render verbatim or unsafely
_DISALLOWED_MARKUP = re.compile(
    r"<\s*/?\s*(script|iframe|img|a|style)\b|javascript:|```|\\(input|include|write18)\b",
    flags=re.IGNORECASE,
)
_NUMBER = re.compile(r"(?<![\d.])-?\d+(?![\d.])")


def _has_unsafe_markup(s: str) -> bool:
    try:
        return bool(_DISALLOWED_MARKUP.search(s or ""))
    except Exception:
        return True


def _reveals_answer(hint: str, correct_answer: Optional[int]) -> bool:
    if correct_answer is None:
        return False
    return any(int(n) == correct_answer for n in _NUMBER.findall(hint))


def validate_hint(
    data: Dict[str, Any],
    *,
    correct_answer: Optional[int] = None,
) -> Tuple[bool, str, List[str]]:
    """
    Validate and sanitize a model-written hint payload ``{"hint": ...}``.

    Returns: (valid, cleaned_hint, reasons)
      - cleaned_hint is stripped and whitespace-collapsed
      - reasons: short reason codes for logging
    """
    reasons: List[str] = []
    raw = data.get("hint") if isinstance(data, dict) else None
    if not isinstance(raw, str):
        return False, "", ["hint_missing"]

    hint = " ".join(raw.split())
    if len(hint) < MIN_HINT_LEN:
        reasons.append("hint_empty")
    if len(hint) > MAX_HINT_LEN:
        reasons.append("hint_too_long")
    if _has_unsafe_markup(hint):
        reasons.append("unsafe_markup")
    if _reveals_answer(hint, correct_answer):
        reasons.append("reveals_answer")

    return not reasons, hint, reasons
