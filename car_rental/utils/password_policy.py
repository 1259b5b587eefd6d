"""Password strength rules shared by registration and password changes."""

from dataclasses import dataclass

MIN_PASSWORD_LENGTH = 12
MAX_PASSWORD_LENGTH = 64
SPECIAL_CHARACTERS = frozenset('!@#$%^&*(),.?":{}|<>')


@dataclass(frozen=True)
class PasswordCheck:
    valid: bool
    message: str


def validate_password(password: str) -> PasswordCheck:
    """Check ``password`` against the policy.

    Rules are evaluated in a fixed order (length, uppercase, lowercase,
    digit, special character) and the first failing rule's message is
    returned.
    """
    if not MIN_PASSWORD_LENGTH <= len(password) <= MAX_PASSWORD_LENGTH:
        return PasswordCheck(
            False,
            f"Password must be between {MIN_PASSWORD_LENGTH} and {MAX_PASSWORD_LENGTH} characters.",
        )
    if not any("A" <= ch <= "Z" for ch in password):
        return PasswordCheck(False, "Password must contain at least one uppercase letter.")
    if not any("a" <= ch <= "z" for ch in password):
        return PasswordCheck(False, "Password must contain at least one lowercase letter.")
    if not any("0" <= ch <= "9" for ch in password):
        return PasswordCheck(False, "Password must contain at least one number.")
    if not any(ch in SPECIAL_CHARACTERS for ch in password):
        return PasswordCheck(False, "Password must contain at least one special character.")

    return PasswordCheck(True, "Password meets all requirements.")
