"""
Tests for the password generator.
"""
import pytest

from navigator_vault.generator import (
    AMBIGUOUS,
    LOWERCASE,
    NUMBERS,
    SYMBOLS,
    UPPERCASE,
    generate_password,
    has_common_pattern,
    password_strength,
)


class TestGeneratePassword:
    """Tests for generate_password."""

    def test_length(self):
        assert len(generate_password(24)) == 24

    def test_contains_each_selected_class(self):
        for _ in range(20):
            password = generate_password(8, symbols=True)
            assert any(c in UPPERCASE for c in password)
            assert any(c in LOWERCASE for c in password)
            assert any(c in NUMBERS for c in password)
            assert any(c in SYMBOLS for c in password)

    def test_only_digits(self):
        password = generate_password(10, uppercase=False, lowercase=False)
        assert password.isdigit()

    def test_exclude_ambiguous(self):
        password = generate_password(200, exclude_ambiguous=True)
        assert not any(c in AMBIGUOUS for c in password)

    def test_short_length_keeps_required_chars(self):
        assert len(generate_password(1, symbols=True)) == 4

    def test_no_class_selected(self):
        with pytest.raises(ValueError):
            generate_password(
                12, uppercase=False, lowercase=False, numbers=False, symbols=False,
            )

    def test_randomness(self):
        assert len({generate_password(16) for _ in range(20)}) == 20


class TestStrength:
    """Tests for password_strength and has_common_pattern."""

    @pytest.mark.parametrize("password,label", [
        ("abc", "Weak"),
        ("abcdefgh", "Weak"),
        ("abcdefgh1", "Fair"),
        ("Abcdefgh1", "Fair"),
        ("Abcdefgh1234!", "Good"),
        ("Abcdefgh1234!xyz", "Strong"),
    ])
    def test_labels(self, password, label):
        assert password_strength(password)[1] == label

    def test_score_range(self):
        assert password_strength("")[0] == 0
        assert password_strength("Abcdefgh1234!xyz")[0] == 7

    def test_common_pattern(self):
        assert has_common_pattern("MyPassword2024")
        assert not has_common_pattern("x9!Lq#v2")
