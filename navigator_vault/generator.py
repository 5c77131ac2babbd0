"""
Password Generator — Random passwords and strength estimation for vault items.

Uses ``secrets`` for every random choice, including the final shuffle.
"""
import re
import secrets
import string

UPPERCASE = string.ascii_uppercase
LOWERCASE = string.ascii_lowercase
NUMBERS = string.digits
SYMBOLS = "!@#$%^&*()_+-=[]{}|;:,.<>?"
AMBIGUOUS = "il1Lo0O"

COMMON_PASSWORDS = (
    "password", "123456", "qwerty", "admin", "letmein",
    "welcome", "monkey", "dragon", "master", "sunshine",
)


def _remove_ambiguous(charset: str) -> str:
    return "".join(c for c in charset if c not in AMBIGUOUS)


def generate_password(
    length: int = 16,
    uppercase: bool = True,
    lowercase: bool = True,
    numbers: bool = True,
    symbols: bool = False,
    exclude_ambiguous: bool = False,
) -> str:
    """Generate a random password.

    At least one character of each selected class is included; if
    ``length`` is smaller than the number of selected classes the
    password is that long instead.

    Raises:
        ValueError: If no character class is selected.
    """
    classes = []
    if uppercase:
        classes.append(UPPERCASE)
    if lowercase:
        classes.append(LOWERCASE)
    if numbers:
        classes.append(NUMBERS)
    if exclude_ambiguous:
        classes = [_remove_ambiguous(c) for c in classes]
    if symbols:
        classes.append(SYMBOLS)
    if not classes:
        raise ValueError("At least one character type must be selected")

    charset = "".join(classes)
    chars = [secrets.choice(c) for c in classes]
    while len(chars) < length:
        chars.append(secrets.choice(charset))
    # Fisher-Yates
    for i in range(len(chars) - 1, 0, -1):
        j = secrets.randbelow(i + 1)
        chars[i], chars[j] = chars[j], chars[i]
    return "".join(chars)


def password_strength(password: str) -> tuple[int, str]:
    """Score a password from 0 to 7 and label it Weak/Fair/Good/Strong."""
    score = sum((
        len(password) >= 8,
        len(password) >= 12,
        len(password) >= 16,
        bool(re.search(r"[a-z]", password)),
        bool(re.search(r"[A-Z]", password)),
        bool(re.search(r"[0-9]", password)),
        bool(re.search(r"[^a-zA-Z0-9]", password)),
    ))
    if score <= 2:
        label = "Weak"
    elif score <= 4:
        label = "Fair"
    elif score <= 6:
        label = "Good"
    else:
        label = "Strong"
    return score, label


def has_common_pattern(password: str) -> bool:
    """True if the password contains a well-known weak password."""
    lower = password.lower()
    return any(common in lower for common in COMMON_PASSWORDS)
