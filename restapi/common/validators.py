"""Input validation rules for usernames, emails and passwords.

Each validator returns the cleaned value or raises ``ValueError`` so it can
be used directly from pydantic field validators.
"""

from __future__ import annotations

import re
import unicodedata

EMAIL_RE = re.compile(r"^[a-zA-Z0-9._%+\-]+@[a-zA-Z0-9.\-]+\.[a-zA-Z]{2,}$")
USERNAME_RE = re.compile(r"^[a-zA-Z0-9_-]+$")

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
EMAIL_MAX_LENGTH = 254
PASSWORD_MIN_LENGTH = 8
PASSWORD_MAX_LENGTH = 128
# bcrypt only accepts this many bytes of input
PASSWORD_MAX_BYTES = 72


def validate_username(username: str) -> str:
    username = username.strip()
    if not username:
        raise ValueError("username is required")
    if len(username) < USERNAME_MIN_LENGTH:
        raise ValueError(f"username must be at least {USERNAME_MIN_LENGTH} characters long")
    if len(username) > USERNAME_MAX_LENGTH:
        raise ValueError(f"username must be no more than {USERNAME_MAX_LENGTH} characters long")
    if not USERNAME_RE.match(username):
        raise ValueError("username can only contain letters, numbers, underscores, and hyphens")
    return username


def validate_email(email: str) -> str:
    email = email.strip()
    if not email:
        raise ValueError("email is required")
    if len(email) > EMAIL_MAX_LENGTH:
        raise ValueError("email is too long")
    if not EMAIL_RE.match(email):
        raise ValueError("invalid email format")
    return email


def _is_special(char: str) -> bool:
    # Unicode punctuation (P*) or symbol (S*) categories
    return unicodedata.category(char)[0] in ("P", "S")


def validate_password(password: str) -> str:
    """Enforce length and character-class requirements."""
    if not password:
        raise ValueError("password is required")
    if len(password) < PASSWORD_MIN_LENGTH:
        raise ValueError(f"password must be at least {PASSWORD_MIN_LENGTH} characters long")
    if len(password) > PASSWORD_MAX_LENGTH:
        raise ValueError("password is too long")
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"password is too long (max {PASSWORD_MAX_BYTES} bytes)")

    if not any(c.isupper() for c in password):
        raise ValueError("password must contain at least one uppercase letter")
    if not any(c.islower() for c in password):
        raise ValueError("password must contain at least one lowercase letter")
    if not any(c.isdigit() for c in password):
        raise ValueError("password must contain at least one number")
    if not any(_is_special(c) for c in password):
        raise ValueError("password must contain at least one special character")
    return password


def validate_login_password(password: str) -> str:
    if not password.strip():
        raise ValueError("password is required")
    return password
