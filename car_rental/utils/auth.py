"""Request gating: bearer token extraction, account resolution and role checks."""

from typing import Callable, Optional
from uuid import UUID

from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from car_rental.api.dependencies import get_account_store, get_token_signer
from car_rental.config.logger import app_logger
from car_rental.db.accounts import AccountStore
from car_rental.models.account import Account, AccountRole
from car_rental.services.errors import Forbidden, Unauthorized
from car_rental.utils.tokens import SESSION_TOKEN_TYPE, TokenExpiredError, TokenInvalidError, TokenSigner

# HTTP Bearer token security scheme
security_scheme = HTTPBearer(
    scheme_name="Bearer",
    description="Bearer token authentication",
    auto_error=False,  # missing credentials raise Unauthorized in get_auth_token
)


async def get_auth_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(security_scheme),
) -> str:
    """Extract the Bearer token from the Authorization header.

    Raises:
        Unauthorized: header missing, malformed or empty
    """
    if not credentials:
        raise Unauthorized("Not authorized, no token provided")

    token = credentials.credentials.strip()
    if not token:
        raise Unauthorized("Not authorized, no token provided")

    return token


async def verify_token(
    token: str = Depends(get_auth_token),
    signer: TokenSigner = Depends(get_token_signer),
) -> dict:
    """Validate signature, expiry and type of a session token.

    Returns:
        dict: decoded claims (sub, role, full_name, mfa_verified, iat, exp)

    Raises:
        Unauthorized: expired (code ``token_expired``) or otherwise invalid
    """
    try:
        return signer.decode(token, expected_type=SESSION_TOKEN_TYPE)
    except TokenExpiredError as exc:
        raise Unauthorized("Not authorized, token expired", code="token_expired") from exc
    except TokenInvalidError as exc:
        app_logger.debug(f"Rejected bearer token: {exc}")
        raise Unauthorized("Not authorized, token failed") from exc


async def get_current_account(
    claims: dict = Depends(verify_token),
    store: AccountStore = Depends(get_account_store),
) -> Account:
    """Resolve the token subject to a stored, verified account.

    Raises:
        Unauthorized: subject malformed, account gone or no longer verified
    """
    try:
        account_id = UUID(str(claims["sub"]))
    except (KeyError, ValueError) as exc:
        raise Unauthorized("Not authorized, token failed") from exc

    account = await store.get_by_id(account_id)
    if account is None or not account.is_verified:
        raise Unauthorized("Not authorized, user not found")

    return account


def require_role(role: AccountRole) -> Callable[..., Account]:
    """Build a dependency that admits only accounts holding ``role``.

    The role is read from the stored account, not from the token claims,
    so a role change takes effect on the next request.
    """

    async def _require_role(account: Account = Depends(get_current_account)) -> Account:
        if account.role != role.value:
            raise Forbidden(f"Forbidden: Requires {role.value} role")
        return account

    return _require_role


# Convenience aliases for cleaner imports
CurrentAccount = Depends(get_current_account)
RequireAdmin = Depends(require_role(AccountRole.ADMIN))
RequireCustomer = Depends(require_role(AccountRole.CUSTOMER))
