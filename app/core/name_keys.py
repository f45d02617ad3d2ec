import math
import re

_AMPERSANDS = re.compile(r"&+")
_PIECE_WORDS = re.compile(r"\b(?:pce|pcs|pc)\b")
_CM_WORDS = re.compile(r"\bcms\b")
_SHOT_COUNT = re.compile(r"\b\d+\s*shots?\b")
_SHOT_WORD = re.compile(r"\bshots?\b")
_NON_ALNUM = re.compile(r"[^a-z0-9]+")


def canonicalize_text(value):
    if value is None:
        return ""
    text = str(value).lower().strip()
    text = _AMPERSANDS.sub("and", text)
    text = _PIECE_WORDS.sub("pcs", text)
    return _CM_WORDS.sub("cm", text)


def strict_key(value):
    return _NON_ALNUM.sub("", canonicalize_text(value))


def relaxed_key(value):
    """Strict key with shot-count qualifiers ("160 Shots") stripped."""
    text = canonicalize_text(value)
    text = _SHOT_COUNT.sub("", text)
    text = _SHOT_WORD.sub("", text)
    return _NON_ALNUM.sub("", text)


def per_container_key(value):
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, str):
        value = value.strip().replace(",", "")
        if not value:
            return ""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ""
    if not math.isfinite(number):
        return ""
    if number.is_integer():
        return str(int(number))
    return repr(number)


__all__ = ["canonicalize_text", "per_container_key", "relaxed_key", "strict_key"]
