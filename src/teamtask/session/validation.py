# src/teamtask/session/validation.py

"""
Pre-validation for the auth forms.

SessionManager does not re-validate: callers run these before
login()/register() and keep the form open on ValidationFailure.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

from ..core.errors import ValidationFailure

MIN_PASSWORD_LENGTH = 8

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationFailure(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not (
        re.search(r"[a-z]", password)
        and re.search(r"[A-Z]", password)
        and re.search(r"\d", password)
    ):
        raise ValidationFailure(
            "Password must contain at least one uppercase letter, one lowercase letter, and one number"
        )


def validate_email(email: str) -> None:
    if not _EMAIL_RE.match(email or ""):
        raise ValidationFailure(f"Invalid email address: {email!r}")


def validate_registration(data: Mapping[str, Any]) -> None:
    """Full registration form check: names, email, password strength."""
    for key in ("first_name", "last_name"):
        if not str(data.get(key) or "").strip():
            raise ValidationFailure(f"{key.replace('_', ' ').capitalize()} is required")
    validate_email(str(data.get("email") or ""))
    validate_password(str(data.get("password") or ""))
