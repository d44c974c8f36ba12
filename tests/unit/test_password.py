# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for password hashing utilities.

Tests the PasswordHasher class, convenience functions and strength rules.
"""

import pytest

from src.domains.auth.password import (
    PasswordHasher,
    hash_password,
    password_problems,
    verify_password,
)


class TestPasswordHasher:
    """Tests for PasswordHasher class."""

    def test_hash_password_returns_bcrypt_hash(self) -> None:
        hasher = PasswordHasher(rounds=4)

        hashed = hasher.hash("test_password_123")

        assert isinstance(hashed, str)
        assert hashed.startswith("$2b$")
        assert len(hashed) == 60

    def test_hash_produces_different_hashes_for_same_password(self) -> None:
        """Salting makes every hash unique."""
        hasher = PasswordHasher(rounds=4)

        assert hasher.hash("test_password_123") != hasher.hash("test_password_123")

    def test_verify_correct_password(self) -> None:
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("correct_password1")

        assert hasher.verify("correct_password1", hashed) is True

    def test_verify_incorrect_password(self) -> None:
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("correct_password1")

        assert hasher.verify("wrong_password1", hashed) is False

    def test_verify_empty_inputs_return_false(self) -> None:
        hasher = PasswordHasher(rounds=4)
        hashed = hasher.hash("valid_password1")

        assert hasher.verify("", hashed) is False
        assert hasher.verify("password", "") is False

    def test_verify_invalid_hash_returns_false(self) -> None:
        hasher = PasswordHasher(rounds=4)

        assert hasher.verify("password", "not_a_valid_bcrypt_hash") is False

    def test_hash_empty_password_raises_error(self) -> None:
        hasher = PasswordHasher(rounds=4)

        with pytest.raises(ValueError, match="Password cannot be empty"):
            hasher.hash("")

    def test_thai_password(self) -> None:
        """Thai passwords hash and verify like any other."""
        hasher = PasswordHasher(rounds=4)
        password = "รหัสผ่าน2567"

        hashed = hasher.hash(password)

        assert hasher.verify(password, hashed) is True


class TestConvenienceFunctions:
    """Tests for module-level convenience functions."""

    def test_hash_and_verify_round_trip(self) -> None:
        hashed = hash_password("test_password1")

        assert hashed.startswith("$2b$")
        assert verify_password("test_password1", hashed) is True
        assert verify_password("wrong_password1", hashed) is False


class TestPasswordProblems:
    """Tests for password strength rules."""

    def test_strong_password_has_no_problems(self) -> None:
        assert password_problems("learner2025") == []

    def test_short_password(self) -> None:
        problems = password_problems("ab1")

        assert any("at least 8" in p for p in problems)

    def test_password_without_digit(self) -> None:
        assert password_problems("onlyletters") == ["Password must contain a digit"]

    def test_password_without_letter(self) -> None:
        assert password_problems("1234567890") == ["Password must contain a letter"]

    def test_thai_letters_count_as_letters(self) -> None:
        assert password_problems("สวัสดีครับ12") == []
