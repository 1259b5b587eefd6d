"""Account and authentication error taxonomy.

Each error carries the HTTP status and a machine-readable ``code`` so the
API layer can map it to an ``ErrorResponse`` without branching per type.
"""

from typing import Optional


class AuthError(Exception):
    status_code: int = 400
    code: str = "auth_error"
    default_message: str = "Authentication error"

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return None


class PolicyViolation(AuthError):
    status_code = 400
    code = "policy_violation"
    default_message = "Password does not meet the password policy."


class DuplicateAccount(AuthError):
    status_code = 400
    code = "duplicate_account"
    default_message = "Email already registered and verified. Please login."


class NotFound(AuthError):
    status_code = 404
    code = "not_found"
    default_message = "User not found or registration session expired. Please re-register."


class InvalidOrExpiredOtp(AuthError):
    status_code = 401
    code = "invalid_or_expired_otp"
    default_message = "Invalid or expired OTP. Please re-register."


class InvalidCredentials(AuthError):
    status_code = 401
    code = "invalid_credentials"
    default_message = "Invalid email or password."

    def __init__(self, remaining_attempts: Optional[int] = None) -> None:
        self.remaining_attempts = remaining_attempts
        message = self.default_message
        if remaining_attempts is not None:
            message = f"{message} You have {remaining_attempts} attempts remaining."
        super().__init__(message)


class AccountLocked(AuthError):
    status_code = 403
    code = "account_locked"

    def __init__(self, remaining_minutes: int, just_locked: bool = False) -> None:
        self.remaining_minutes = remaining_minutes
        if just_locked:
            message = (
                "Too many failed login attempts. "
                f"Your account has been locked for {remaining_minutes} minutes."
            )
        else:
            message = f"Account is locked. Please try again in {remaining_minutes} minutes."
        super().__init__(message)


class NotVerified(AuthError):
    status_code = 403
    code = "not_verified"
    default_message = "Your account is not verified. Please complete registration."


class Unauthorized(AuthError):
    status_code = 401
    code = "unauthorized"
    default_message = "Not authorized"

    def __init__(self, message: Optional[str] = None, code: Optional[str] = None) -> None:
        if code:
            self.code = code
        super().__init__(message)

    @property
    def headers(self) -> Optional[dict[str, str]]:
        return {"WWW-Authenticate": "Bearer"}


class Forbidden(AuthError):
    status_code = 403
    code = "forbidden"
    default_message = "Forbidden"


class NotificationFailure(AuthError):
    """Email could not be delivered. Retryable; callers roll back what they just created."""

    status_code = 500
    code = "notification_failure"
    default_message = "Could not send the verification email. Please try again."
