import re
from typing import List, Tuple

from flask import current_app, has_app_context

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_MAX_LEN": 72,
    "PASSWORD_REQUIRE_UPPER": False,
    "PASSWORD_REQUIRE_LOWER": False,
    "PASSWORD_REQUIRE_DIGIT": False,
    "PASSWORD_REQUIRE_SYMBOL": False,
}

# (config flag, pattern, what is missing)
_CLASS_RULES = (
    ("PASSWORD_REQUIRE_UPPER", re.compile(r"[A-Z]"), "uppercase letter"),
    ("PASSWORD_REQUIRE_LOWER", re.compile(r"[a-z]"), "lowercase letter"),
    ("PASSWORD_REQUIRE_DIGIT", re.compile(r"\d"), "number"),
    ("PASSWORD_REQUIRE_SYMBOL", re.compile(r"[^A-Za-z0-9]"), "symbol"),
)


def _setting(name: str):
    if has_app_context():
        return current_app.config.get(name, _DEFAULTS[name])
    return _DEFAULTS[name]

def validate_password(pw) -> Tuple[bool, List[str]]:
    """Returns (ok, messages). Lengths and character classes come from app config."""
    if not isinstance(pw, str) or not pw:
        return False, ["Password is required and must be a string"]

    problems: List[str] = []

    shortest = int(_setting("PASSWORD_MIN_LEN"))
    longest = int(_setting("PASSWORD_MAX_LEN"))
    if len(pw) < shortest:
        problems.append(f"Password must be at least {shortest} characters long")
    # bcrypt sees bytes, so the upper bound is in bytes
    if len(pw.encode("utf-8")) > longest:
        problems.append(f"Password must be at most {longest} bytes")

    for flag, pattern, label in _CLASS_RULES:
        if _setting(flag) and not pattern.search(pw):
            problems.append(f"Password must include at least 1 {label}")

    return not problems, problems
