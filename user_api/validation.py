"""
Field validation shared by the create and update paths.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Optional

from user_api.errors import NotFoundError, ValidationError

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")

# Both id and age columns are 32-bit INTEGER in Postgres.
INT32_MIN = -(2**31)
INT32_MAX = 2**31 - 1


@dataclass(frozen=True)
class UserInput:
    name: str
    email: str
    age: Optional[int]


def is_valid_email(email: str) -> bool:
    return bool(EMAIL_PATTERN.match(email))


def parse_int_like(value: Any) -> Optional[int]:
    """
    Lenient integer parse: ints pass through, floats truncate and strings
    use their leading integer ("42years" -> 42). Anything else is None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            return None
        return int(value)
    if isinstance(value, str):
        match = _LEADING_INT.match(value)
        if not match:
            return None
        try:
            return int(match.group(1))
        except ValueError:
            # More digits than the interpreter will convert.
            return None
    return None


def _in_int32_range(value: int) -> bool:
    return INT32_MIN <= value <= INT32_MAX


def parse_age(value: Any) -> Optional[int]:
    # Malformed or out-of-range ages are stored as null rather than rejected.
    age = parse_int_like(value)
    if age is None or not _in_int32_range(age):
        return None
    return age


def parse_user_id(value: Any) -> int:
    user_id = parse_int_like(value)
    if user_id is None or not _in_int32_range(user_id):
        raise NotFoundError()
    return user_id


def validate_user_payload(name: Any, email: Any, age: Any = None) -> UserInput:
    """
    Check required fields and email shape, returning normalized input.

    Raises ValidationError; uniqueness is checked by the store.
    """
    if not isinstance(name, str) or not isinstance(email, str):
        raise ValidationError("Name and email are required")
    name = name.strip()
    email = email.strip()
    if not name or not email:
        raise ValidationError("Name and email are required")
    if not is_valid_email(email):
        raise ValidationError("Invalid email format")
    return UserInput(name=name, email=email.lower(), age=parse_age(age))
