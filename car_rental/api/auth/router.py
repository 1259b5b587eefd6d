"""Authentication API routes: OTP-gated registration and password login."""

from fastapi import APIRouter, Depends, HTTPException, status

from car_rental.config.logger import app_logger
from car_rental.models.account import Account
from car_rental.services.account_lifecycle import AccountLifecycleService
from car_rental.services.errors import AuthError
from car_rental.services.session_auth import SessionAuthenticator
from car_rental.api.dependencies import get_authenticator, get_lifecycle_service
from car_rental.utils.auth import get_current_account
from car_rental.utils.responses import SuccessResponse, success_response
from car_rental.utils.tokens import IssuedSession
from car_rental.api.auth.schemas import (
    LoginRequest,
    PendingRegistrationResponse,
    RegisterRequest,
    ResendOtpRequest,
    TokenResponse,
    UserResponse,
    VerifyRegistrationOtpRequest,
)

router = APIRouter(tags=["auth"])


def _token_response(session: IssuedSession) -> TokenResponse:
    return TokenResponse(
        token=session.token,
        token_type=session.token_type,
        expires_in=session.expires_in,
        role=session.role,
        user_id=session.account_id,
        full_name=session.full_name,
    )


@router.post(
    "/register",
    response_model=SuccessResponse[PendingRegistrationResponse],
    status_code=status.HTTP_202_ACCEPTED,
)
async def register(
    request: RegisterRequest,
    lifecycle: AccountLifecycleService = Depends(get_lifecycle_service),
):
    """Start a registration.

    Stores an unverified placeholder and emails a 6-digit OTP. The returned
    ``pending_id`` is submitted with the OTP to /verify-registration-otp.
    """
    try:
        pending = await lifecycle.register(
            email=request.email,
            password=request.password,
            full_name=request.full_name,
            address=request.address,
            phone_number=request.phone_number,
        )
        return success_response(
            data=PendingRegistrationResponse(
                pending_id=pending.pending_id,
                email=pending.email,
                otp_expires_in=pending.otp_expires_in,
            ),
            message="Registration initiated. Please verify with OTP."
        )

    except AuthError:
        raise
    except Exception as e:
        app_logger.error(f"Registration failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error during registration."
        )


@router.post("/verify-registration-otp", response_model=SuccessResponse[TokenResponse])
async def verify_registration_otp(
    request: VerifyRegistrationOtpRequest,
    lifecycle: AccountLifecycleService = Depends(get_lifecycle_service),
):
    """Complete registration with the emailed OTP and log the user in."""
    try:
        session = await lifecycle.complete_registration(request.pending_id, request.otp)
        return success_response(
            data=_token_response(session),
            message="Registration successful! Your account is activated."
        )

    except AuthError:
        raise
    except Exception as e:
        app_logger.error(f"Registration OTP verification failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error during registration verification."
        )


@router.post("/resend-otp", response_model=SuccessResponse[PendingRegistrationResponse])
async def resend_otp(
    request: ResendOtpRequest,
    lifecycle: AccountLifecycleService = Depends(get_lifecycle_service),
):
    """Send a fresh OTP for a registration that has not been verified yet."""
    try:
        pending = await lifecycle.resend_otp(request.pending_id)
        return success_response(
            data=PendingRegistrationResponse(
                pending_id=pending.pending_id,
                email=pending.email,
                otp_expires_in=pending.otp_expires_in,
            ),
            message="New OTP sent to your registered email."
        )

    except AuthError:
        raise
    except Exception as e:
        app_logger.error(f"Resending OTP failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error resending OTP."
        )


@router.post("/login", response_model=SuccessResponse[TokenResponse])
async def login(
    request: LoginRequest,
    authenticator: SessionAuthenticator = Depends(get_authenticator),
):
    """Authenticate with email and password and return a session token."""
    try:
        session = await authenticator.login(request.email, request.password)
        return success_response(data=_token_response(session), message="Login successful")

    except AuthError:
        raise
    except Exception as e:
        app_logger.error(f"Login failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server error during login."
        )


@router.get("/me", response_model=SuccessResponse[UserResponse])
async def get_me(account: Account = Depends(get_current_account)):
    """Get the authenticated account's profile."""
    return success_response(
        data=UserResponse.model_validate(account),
        message="User information retrieved successfully"
    )
