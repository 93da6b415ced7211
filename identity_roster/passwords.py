"""
Password policy checks and credential generation.

Supplied passwords must be accepted by the directory, so they are checked
client-side against the same rules before anything is submitted:

    - length between 8 and 256 characters
    - at least three of: lowercase, uppercase, digit, symbol
    - must not contain the account's local part (case-insensitive)

Generated passwords are stricter: at least 16 characters with every
character class present, drawn from the ``secrets`` module so each call
yields an independent value.
"""

import secrets
import string

from .config import GENERATED_PASSWORD_LENGTH, MIN_GENERATED_PASSWORD_LENGTH

MIN_LENGTH = 8
MAX_LENGTH = 256
REQUIRED_CLASSES = 3

SYMBOLS = "!@#$%&*()-_=+[]{}<>:?"
CHARACTER_CLASSES: dict[str, str] = {
    "lowercase": string.ascii_lowercase,
    "uppercase": string.ascii_uppercase,
    "digit": string.digits,
    "symbol": SYMBOLS,
}
ALPHABET = "".join(CHARACTER_CLASSES.values())


def character_classes(password: str) -> set[str]:
    """Return the names of the character classes present in ``password``."""
    present = set()
    for name, chars in CHARACTER_CLASSES.items():
        if any(char in chars for char in password):
            present.add(name)
    # Any other printable punctuation also counts as a symbol
    if any(not char.isalnum() and char not in SYMBOLS for char in password):
        present.add("symbol")
    return present


def policy_violations(password: str, principal_name: str = "") -> list[str]:
    """
    Check a supplied password against the complexity policy.

    Returns:
        A list of human-readable reasons, empty when the password is accepted.
    """
    reasons: list[str] = []
    if len(password) < MIN_LENGTH:
        reasons.append(f"shorter than {MIN_LENGTH} characters")
    if len(password) > MAX_LENGTH:
        reasons.append(f"longer than {MAX_LENGTH} characters")

    classes = character_classes(password)
    if len(classes) < REQUIRED_CLASSES:
        reasons.append(
            f"uses {len(classes)} of 4 character classes, at least {REQUIRED_CLASSES} required"
        )

    local_part = principal_name.split("@", 1)[0].lower()
    if len(local_part) >= 3 and local_part in password.lower():
        reasons.append("contains the account name")
    return reasons


def generate_password(length: int = GENERATED_PASSWORD_LENGTH) -> str:
    """
    Generate a random password containing every character class.

    One character from each class is placed first, the rest are drawn from
    the full alphabet, then the result is shuffled with ``SystemRandom``.
    """
    if length < MIN_GENERATED_PASSWORD_LENGTH:
        raise ValueError(
            f"Generated passwords must be at least {MIN_GENERATED_PASSWORD_LENGTH} characters"
        )

    chars = [secrets.choice(chars) for chars in CHARACTER_CLASSES.values()]
    chars.extend(secrets.choice(ALPHABET) for _ in range(length - len(chars)))
    secrets.SystemRandom().shuffle(chars)
    return "".join(chars)
