"""
Parental consent code hashing using argon2id.

The code is set at registration and must be entered on every task
acceptance. Only the salted hash is stored; matching stays exact and
case-sensitive because argon2 compares the raw input.
"""

from __future__ import annotations

import argon2

_hasher = argon2.PasswordHasher(
    time_cost=2,
    memory_cost=65536,  # 64 MB
    parallelism=1,
    hash_len=32,
    salt_len=16,
    type=argon2.Type.ID,  # argon2id
)

MIN_LENGTH = 4
MAX_LENGTH = 64


class ParentalCodeFormatError(ValueError):
    """Raised when a parental code does not meet the format requirements."""


def validate_parental_code(code: str) -> None:
    """
    Validate a new parental code.

    Raises ParentalCodeFormatError if the code is empty, whitespace-only,
    shorter than 4 or longer than 64 characters.
    """
    if not code or not code.strip():
        msg = "Parental code is required for freelancers"
        raise ParentalCodeFormatError(msg)
    if len(code) < MIN_LENGTH:
        msg = f"Parental code must be at least {MIN_LENGTH} characters"
        raise ParentalCodeFormatError(msg)
    if len(code) > MAX_LENGTH:
        msg = f"Parental code must not exceed {MAX_LENGTH} characters"
        raise ParentalCodeFormatError(msg)


def hash_parental_code(code: str) -> str:
    """Hash a parental code using argon2id. Returns the full hash string."""
    return _hasher.hash(code)


def verify_parental_code(code: str, code_hash: str | None) -> bool:
    """
    Verify an entered parental code against its stored hash.

    Returns True if the code matches. Never raises on mismatch or on a
    missing/corrupt hash.
    """
    if not code_hash:
        return False
    try:
        return _hasher.verify(code_hash, code)
    except argon2.exceptions.VerifyMismatchError:
        return False
    except argon2.exceptions.InvalidHashError:
        return False
