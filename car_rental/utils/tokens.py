"""JWT helpers for session and verification tokens."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import ExpiredSignatureError, JWTError, jwt

SESSION_TOKEN_TYPE = "session"
VERIFICATION_TOKEN_TYPE = "verification"


class TokenError(ValueError):
    """Base class for token validation failures."""


class TokenExpiredError(TokenError):
    """Signature is valid but the token is past its ``exp``."""


class TokenInvalidError(TokenError):
    """Tampered, malformed, or otherwise unusable token."""


@dataclass(frozen=True)
class IssuedSession:
    token: str
    expires_in: int
    account_id: str
    role: str
    full_name: str
    mfa_verified: bool
    token_type: str = "bearer"


class TokenSigner:
    """Issues and validates HS256-signed, time-limited tokens.

    The signing key is passed in by the caller; this class never reads
    configuration on its own.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        session_ttl_seconds: int = 24 * 60 * 60,
        verification_ttl_seconds: int = 60,
    ) -> None:
        if not secret:
            raise ValueError("A signing secret is required")
        self._secret = secret
        self.algorithm = algorithm
        self.session_ttl_seconds = session_ttl_seconds
        self.verification_ttl_seconds = verification_ttl_seconds

    def issue(
        self,
        subject: str,
        claims: dict[str, Any],
        ttl_seconds: int,
        token_type: str,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a signed token for ``subject`` that expires after ``ttl_seconds``."""
        moment = now or datetime.now(timezone.utc)
        payload = {
            **claims,
            "sub": subject,
            "typ": token_type,
            "iat": moment,
            "exp": moment + timedelta(seconds=ttl_seconds),
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def issue_session_token(
        self,
        account_id: str,
        role: str,
        full_name: str,
        mfa_verified: bool,
        now: Optional[datetime] = None,
    ) -> IssuedSession:
        """Create the 24h session token returned by login and registration completion."""
        token = self.issue(
            subject=account_id,
            claims={"role": role, "full_name": full_name, "mfa_verified": mfa_verified},
            ttl_seconds=self.session_ttl_seconds,
            token_type=SESSION_TOKEN_TYPE,
            now=now,
        )
        return IssuedSession(
            token=token,
            expires_in=self.session_ttl_seconds,
            account_id=account_id,
            role=role,
            full_name=full_name,
            mfa_verified=mfa_verified,
        )

    def issue_verification_token(
        self,
        subject: str,
        claims: Optional[dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> str:
        """Create a short-lived (1 minute by default) verification token."""
        return self.issue(
            subject=subject,
            claims=claims or {},
            ttl_seconds=self.verification_ttl_seconds,
            token_type=VERIFICATION_TOKEN_TYPE,
            now=now,
        )

    def decode(self, token: str, expected_type: Optional[str] = None) -> dict:
        """Decode and verify a token.

        Raises:
            TokenExpiredError: signature is valid but the token has expired
            TokenInvalidError: any other failure, including a type mismatch
        """
        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired") from exc
        except JWTError as exc:
            raise TokenInvalidError(f"Invalid token: {exc}") from exc

        if not payload.get("sub"):
            raise TokenInvalidError("Invalid token: missing subject")
        if expected_type and payload.get("typ") != expected_type:
            raise TokenInvalidError("Invalid token: unexpected token type")
        return payload
