"""
Day Planner Backend — Password Hashing & Credential Validation
===============================================================

What:  bcrypt hashing via passlib, plus the email / password-strength rules
       applied at registration.
Who:   UserService (register, login) and TokenService (pending users).
"""

import string

from email_validator import EmailNotValidError, validate_email
from passlib.context import CryptContext

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Password policy: min length 8 with at least one of each class below
MIN_PASSWORD_LENGTH = 8
_LOWER = set(string.ascii_lowercase)
_UPPER = set(string.ascii_uppercase)
_DIGITS = set(string.digits)
_SYMBOLS = set(string.punctuation + " ")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Returns False (rather than raising) for malformed or unknown hashes."""
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        return False


def is_valid_email(value: str) -> bool:
    """
    Syntax-only check (no DNS lookup).

    The registration flow proves deliverability itself by mailing the
    activation code, so a network round-trip here would add nothing.
    """
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_strong_password(value: str) -> bool:
    """
    At least 8 characters with one ASCII lowercase letter, one ASCII
    uppercase letter, one ASCII digit and one symbol. Other Unicode letters
    and digits are allowed but do not count towards a class.
    """
    if len(value) < MIN_PASSWORD_LENGTH:
        return False
    has_lower = any(c in _LOWER for c in value)
    has_upper = any(c in _UPPER for c in value)
    has_digit = any(c in _DIGITS for c in value)
    has_symbol = any(c in _SYMBOLS for c in value)
    return has_lower and has_upper and has_digit and has_symbol
