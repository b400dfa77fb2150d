"""User router: registration and /api/v1/users/me self-service endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from teenskill.auth.dependencies import get_current_user, get_subject
from teenskill.database import get_session
from teenskill.db.models import User
from teenskill.users.schemas import (
    PaymentDetailsRequest,
    RegisterRequest,
    TaskQuotaRequest,
    UserResponse,
)
from teenskill.users.service import register_user, update_payment_details, update_task_quota

router = APIRouter(prefix="/api/v1/users", tags=["Users"])


def _user_response(user: User) -> UserResponse:
    """Build a UserResponse from a User model."""
    return UserResponse(
        id=user.id,
        role=user.role,
        name=user.name,
        username=user.username,
        age=user.age,
        payment_method=user.payment_method,
        payment_number=user.payment_number,
        has_payment_details=user.has_payment_details,
        task_quota=user.task_quota,
        balance=user.balance,
        xp=user.xp,
        created_at=user.created_at,
    )


@router.post("/register", response_model=UserResponse, status_code=201)
async def register_endpoint(
    body: RegisterRequest,
    subject: str = Depends(get_subject),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Create the marketplace profile for the signed-in identity."""
    user = await register_user(
        db,
        external_id=subject,
        name=body.name,
        username=body.username,
        role=body.role,
        age=body.age,
        parental_code=body.parental_code,
    )
    await db.commit()
    return _user_response(user)


@router.get("/me", response_model=UserResponse)
async def get_profile(
    user: User = Depends(get_current_user),
) -> UserResponse:
    """Get own profile."""
    return _user_response(user)


@router.patch("/me/payment", response_model=UserResponse)
async def update_payment_endpoint(
    body: PaymentDetailsRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Set payout method and account number (freelancers)."""
    user = await update_payment_details(db, user, body.payment_method, body.payment_number)
    await db.commit()
    return _user_response(user)


@router.patch("/me/quota", response_model=UserResponse)
async def update_quota_endpoint(
    body: TaskQuotaRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Change the weekly task quota (freelancers)."""
    user = await update_task_quota(db, user, body.task_quota)
    await db.commit()
    return _user_response(user)
