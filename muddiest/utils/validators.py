import re
from typing import Any

_COURSE_CODE_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9 .\-_/]{0,31}$")

def clean_str(val: Any, max_len: int = 255) -> str | None:
    """
    Collapse whitespace, trim, enforce max length. Returns None if empty after cleaning.
    """
    if val is None or not isinstance(val, str):
        return None
    s = re.sub(r"\s+", " ", val).strip()
    if not s:
        return None
    return s[:max_len]

def clean_text(val: Any, max_len: int = 5000) -> str | None:
    """Like clean_str but keeps line breaks (free-text bodies)."""
    if val is None or not isinstance(val, str):
        return None
    s = val.strip()
    if not s:
        return None
    return s[:max_len]

def is_valid_course_code(val: str | None) -> bool:
    if not val:
        return False
    return bool(_COURSE_CODE_RE.match(val))

def score_1_to_10(val: Any) -> int | None:
    """Integer in 1..10 (bools rejected), else None."""
    if isinstance(val, bool):
        return None
    try:
        i = int(val)
    except (TypeError, ValueError):
        return None
    if isinstance(val, float) and val != i:
        return None
    return i if 1 <= i <= 10 else None
