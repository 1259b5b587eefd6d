"""One-time numeric codes for email verification."""

import hashlib
import hmac
import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp() -> str:
    """Return a 6-digit code drawn uniformly from [100000, 999999]."""
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))


def hash_otp(otp: str) -> str:
    """Return the SHA256 digest stored in place of the code."""
    return hashlib.sha256(otp.strip().encode("utf-8")).hexdigest()


def verify_otp(otp: str, hashed: str) -> bool:
    """Constant-time comparison of a submitted code against its stored digest."""
    return hmac.compare_digest(hash_otp(otp), hashed)
