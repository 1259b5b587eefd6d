"""Account management request schemas."""

from typing import Optional

from pydantic import BaseModel, Field


class UpdateUserRequest(BaseModel):
    """Partial profile update. ``password`` re-runs the password policy."""

    full_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    address: Optional[str] = Field(default=None, min_length=1, max_length=500)
    phone_number: Optional[str] = Field(default=None, min_length=3, max_length=32)
    password: Optional[str] = Field(default=None, max_length=256, description="New password")
    current_password: Optional[str] = Field(
        default=None,
        max_length=256,
        description="Required when changing your own password",
    )
