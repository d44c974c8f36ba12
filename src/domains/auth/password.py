# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Password hashing and strength rules using bcrypt.

Example:
    >>> hashed = hash_password("Learn2024")
    >>> verify_password("Learn2024", hashed)
    True
    >>> password_problems("short")
    ['Password must be at least 8 characters', 'Password must contain a digit']
"""

import logging

import bcrypt

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 8


class PasswordHasher:
    """Password hashing using bcrypt with automatic salt generation.

    Attributes:
        _rounds: Number of bcrypt rounds for hashing.
    """

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt.

        Raises:
            ValueError: If password is empty.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    def verify(self, password: str, password_hash: str) -> bool:
        """Verify a password against a hash.

        A malformed hash verifies as False.
        """
        if not password or not password_hash:
            return False

        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError as e:
            logger.warning("Password verification failed: %s", str(e))
            return False


_default_hasher = PasswordHasher()


def hash_password(password: str) -> str:
    return _default_hasher.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return _default_hasher.verify(password, password_hash)


def password_problems(password: str) -> list[str]:
    """Reasons a password is too weak; empty when acceptable.

    Passwords need at least eight characters with a letter and a digit.
    Thai letters count as letters.
    """
    problems = []
    if len(password) < MIN_PASSWORD_LENGTH:
        problems.append(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
    if not any(ch.isalpha() for ch in password):
        problems.append("Password must contain a letter")
    if not any(ch.isdigit() for ch in password):
        problems.append("Password must contain a digit")
    return problems
