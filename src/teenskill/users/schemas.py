"""Request/response schemas for user endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, field_validator


class RegisterRequest(BaseModel):
    """Complete registration for an authenticated identity."""

    name: str = Field(..., min_length=1, max_length=128)
    username: str = Field(..., min_length=1, max_length=64)
    role: str = Field(..., min_length=1, max_length=16)
    age: int = Field(..., ge=1, le=130)
    parental_code: str | None = Field(None, max_length=64)

    @field_validator("role")
    @classmethod
    def normalize_role(cls, v: str) -> str:
        """Roles are stored lowercase."""
        return v.lower().strip()


class PaymentDetailsRequest(BaseModel):
    payment_method: str = Field(..., min_length=1, max_length=32)
    payment_number: str = Field(..., min_length=1, max_length=64)


class TaskQuotaRequest(BaseModel):
    task_quota: int = Field(..., ge=1, le=100)


class UserResponse(BaseModel):
    """Own profile. The parental code hash is never exposed."""

    id: str
    role: str
    name: str
    username: str
    age: int | None = None
    payment_method: str | None = None
    payment_number: str | None = None
    has_payment_details: bool
    task_quota: int
    balance: int
    xp: int
    created_at: datetime
