"""
Input validators for account data: framework-agnostic, pure functions.

Validators return plain values (bools, lists of unmet requirements); the
service layer decides which AppError to raise.
"""

from __future__ import annotations

import re
from typing import List, Tuple

import validators as _validators

PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
NAME_MAX_LENGTH = 100

_SPECIAL_CHARS = r'[!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>\/?~`]'
_ALLOWED_CHARS = r'^[a-zA-Z0-9!@#$%^&*()_+\-=\[\]{};\':"\\|,.<>\/?~`\s]+$'


def normalize_email(email: str) -> str:
    """Trim and lowercase *email*; every lookup and write goes through this."""
    return (email or "").strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* (already normalized) is syntactically valid."""
    return bool(email) and _validators.email(email) is True


def validate_password(password: str) -> Tuple[bool, List[str]]:
    """
    Check *password* against the password policy.

    Returns:
        (is_valid, missing_requirements)
    """
    if not password:
        return False, ["Password is required"]

    missing = []

    if len(password) < PASSWORD_MIN_LENGTH:
        missing.append(f"At least {PASSWORD_MIN_LENGTH} characters")
    if len(password) > PASSWORD_MAX_LENGTH:
        missing.append(f"Maximum {PASSWORD_MAX_LENGTH} characters")
    if not re.search(r"[A-Z]", password):
        missing.append("At least one uppercase letter")
    if not re.search(r"[a-z]", password):
        missing.append("At least one lowercase letter")
    if not re.search(r"[0-9]", password):
        missing.append("At least one number")
    if not re.search(_SPECIAL_CHARS, password):
        missing.append("At least one special character")
    if not re.match(_ALLOWED_CHARS, password):
        missing.append("Contains invalid characters")

    return len(missing) == 0, missing


def validate_name(name: str) -> bool:
    """Return True if *name* (already trimmed) is non-empty and short enough."""
    return 0 < len(name) <= NAME_MAX_LENGTH
