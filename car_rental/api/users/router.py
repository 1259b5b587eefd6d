"""Account management routes and role-gated data endpoints."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from car_rental.api.auth.schemas import UserResponse
from car_rental.api.dependencies import get_account_store, get_lifecycle_service
from car_rental.api.users.schemas import UpdateUserRequest
from car_rental.config.logger import app_logger
from car_rental.db.accounts import AccountStore
from car_rental.models.account import Account, AccountRole
from car_rental.services.account_lifecycle import AccountLifecycleService
from car_rental.services.errors import AuthError, Forbidden, NotFound
from car_rental.utils.auth import get_current_account, require_role
from car_rental.utils.responses import (
    PaginatedResponse,
    SuccessResponse,
    paginated_response,
    success_response,
)

router = APIRouter(tags=["users"])


def _ensure_self_or_admin(caller: Account, account_id: UUID) -> None:
    if caller.id != account_id and caller.role != AccountRole.ADMIN.value:
        raise Forbidden("Forbidden: You can only access your own account")


@router.get("/users", response_model=PaginatedResponse[UserResponse])
async def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=50, ge=1, le=500),
    _: Account = Depends(require_role(AccountRole.ADMIN)),
    store: AccountStore = Depends(get_account_store),
):
    """List accounts (admin only)."""
    accounts = await store.list_accounts(limit=limit + 1, offset=(page - 1) * limit)
    return paginated_response(
        data=[UserResponse.model_validate(account) for account in accounts],
        page=page,
        limit=limit,
    )


@router.get("/users/{account_id}", response_model=SuccessResponse[UserResponse])
async def get_user(
    account_id: UUID,
    caller: Account = Depends(get_current_account),
    store: AccountStore = Depends(get_account_store),
):
    """Get one account (self or admin)."""
    _ensure_self_or_admin(caller, account_id)
    account = await store.get_by_id(account_id)
    if account is None:
        raise NotFound("User not found")
    return success_response(data=UserResponse.model_validate(account), message="User retrieved")


@router.put(
    "/users/{account_id}",
    response_model=SuccessResponse[UserResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def update_user(
    account_id: UUID,
    request: UpdateUserRequest,
    caller: Account = Depends(get_current_account),
    store: AccountStore = Depends(get_account_store),
    lifecycle: AccountLifecycleService = Depends(get_lifecycle_service),
):
    """Update profile fields and/or password (self or admin).

    Changing your own password requires ``current_password``; an admin
    resetting another account's password does not.
    """
    _ensure_self_or_admin(caller, account_id)
    try:
        account = caller if caller.id == account_id else await store.get_by_id(account_id)
        if account is None:
            raise NotFound("User not found")

        if request.password is not None:
            await lifecycle.change_password(
                account,
                request.password,
                current_password=request.current_password,
                require_current=caller.id == account_id,
            )

        updated = await lifecycle.update_profile(
            account,
            full_name=request.full_name,
            address=request.address,
            phone_number=request.phone_number,
        )
        app_logger.info(f"User updated successfully: {updated.email}")
        return success_response(data=UserResponse.model_validate(updated), message="User updated")

    except AuthError:
        raise
    except Exception as e:
        app_logger.error(f"Updating user {account_id} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error while updating user."
        )


@router.delete("/users/{account_id}", response_model=SuccessResponse[dict])
async def delete_user(
    account_id: UUID,
    admin: Account = Depends(require_role(AccountRole.ADMIN)),
    lifecycle: AccountLifecycleService = Depends(get_lifecycle_service),
):
    """Delete an account (admin only)."""
    await lifecycle.delete_account(account_id, deleted_by=admin.id)
    return success_response(data={"id": str(account_id)}, message="User deleted")


@router.get("/admin-data", response_model=SuccessResponse[dict])
async def admin_data(account: Account = Depends(require_role(AccountRole.ADMIN))):
    return success_response(
        data={"user_id": str(account.id)},
        message="Admin-specific data: You have admin access!"
    )


@router.get("/customer-data", response_model=SuccessResponse[dict])
async def customer_data(account: Account = Depends(require_role(AccountRole.CUSTOMER))):
    return success_response(
        data={"user_id": str(account.id)},
        message="Customer-specific data: Welcome, customer!"
    )
