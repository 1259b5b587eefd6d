"""Authentication request and response schemas."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class RegisterRequest(BaseModel):
    """Request schema for user registration.

    Password strength is checked by the password policy, not here, so the
    client gets the policy's rule-specific message.
    """

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., max_length=256, description="Password (12-64 chars, mixed case, digit, special)")
    full_name: str = Field(..., min_length=1, max_length=255, description="Full name")
    address: str = Field(..., min_length=1, max_length=500, description="Postal address")
    phone_number: str = Field(..., min_length=3, max_length=32, description="Contact phone number")

    model_config = {"json_schema_extra": {"example": {
        "email": "user@example.com",
        "password": "Str0ng!Passw0rd",
        "full_name": "John Doe",
        "address": "12 Main Street, Springfield",
        "phone_number": "+1 555 0100"
    }}}


class PendingRegistrationResponse(BaseModel):
    """Returned when a registration awaits OTP verification."""

    pending_id: str = Field(..., description="Identifier to submit with the OTP")
    email: str = Field(..., description="Email the OTP was sent to")
    otp_expires_in: int = Field(..., description="OTP validity in seconds")


class VerifyRegistrationOtpRequest(BaseModel):
    """Request schema for completing registration with the emailed OTP."""

    pending_id: str = Field(..., description="Identifier returned by /register")
    otp: str = Field(..., min_length=6, max_length=6, pattern=r"^\d{6}$", description="6-digit code")


class ResendOtpRequest(BaseModel):
    pending_id: str = Field(..., description="Identifier returned by /register")


class LoginRequest(BaseModel):
    """Request schema for user login."""

    email: EmailStr = Field(..., description="User email address")
    password: str = Field(..., max_length=256, description="User password")

    model_config = {"json_schema_extra": {"example": {
        "email": "user@example.com",
        "password": "Str0ng!Passw0rd"
    }}}


class TokenResponse(BaseModel):
    """Response schema for session tokens."""

    token: str = Field(..., description="JWT session token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    role: str = Field(..., description="Account role")
    user_id: str = Field(..., description="Authenticated account ID")
    full_name: str = Field(..., description="Display name")

    model_config = {"json_schema_extra": {"example": {
        "token": "eyJhbGciOiJIUzI1NiIsInR5cCI6IkpXVCJ9...",
        "token_type": "bearer",
        "expires_in": 86400,
        "role": "customer",
        "user_id": "123e4567-e89b-12d3-a456-426614174000",
        "full_name": "John Doe"
    }}}


class UserResponse(BaseModel):
    """Public view of an account. Never includes secret material."""

    id: UUID = Field(..., description="Account ID")
    email: str = Field(..., description="Account email")
    role: str = Field(..., description="Account role")
    full_name: str = Field(..., description="Full name")
    address: str = Field(..., description="Postal address")
    phone_number: str = Field(..., description="Contact phone number")
    is_verified: bool = Field(..., description="Whether the email was verified")
    mfa_completed_once: bool = Field(..., description="Whether one-time identity verification was completed")
    last_login_at: Optional[datetime] = Field(default=None, description="Last successful login")
    created_at: datetime = Field(..., description="Creation time")

    model_config = {"from_attributes": True}
