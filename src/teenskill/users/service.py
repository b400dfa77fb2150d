"""User registration and self-service profile logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from teenskill.auth.parental_code import (
    ParentalCodeFormatError,
    hash_parental_code,
    validate_parental_code,
)
from teenskill.config import get_settings
from teenskill.db.models import User, UserRole
from teenskill.errors import AlreadyRegisteredError, InvalidInputError, WrongRoleError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    """Fetch a user by internal ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_external_id(db: AsyncSession, external_id: str) -> User | None:
    """Fetch a user by identity-gateway subject."""
    result = await db.execute(select(User).where(User.external_id == external_id))
    return result.scalar_one_or_none()


def require_role(user: User, role: UserRole) -> None:
    """Raise WrongRoleError unless the user has the given role."""
    if user.role != role.value:
        msg = f"Only {role.value}s can perform this action"
        raise WrongRoleError(msg)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


async def register_user(
    db: AsyncSession,
    external_id: str,
    name: str,
    username: str,
    role: str,
    age: int,
    parental_code: str | None = None,
) -> User:
    """
    Create the User row for an authenticated identity.

    Freelancers must be within the teen age band and set a parental code.
    Clients must be adults.

    Raises:
        AlreadyRegisteredError: The identity already has a User row.
        InvalidInputError: Role, age, or parental code rules are violated.
    """
    settings = get_settings()

    if await get_user_by_external_id(db, external_id) is not None:
        raise AlreadyRegisteredError

    name = name.strip()
    username = username.strip()
    if not name or not username:
        msg = "Name and username are required"
        raise InvalidInputError(msg)

    code_hash: str | None = None
    if role == UserRole.FREELANCER.value:
        if not settings.freelancer_min_age <= age <= settings.freelancer_max_age:
            msg = (
                f"Freelancers must be between {settings.freelancer_min_age} "
                f"and {settings.freelancer_max_age} years old"
            )
            raise InvalidInputError(msg)
        try:
            validate_parental_code(parental_code or "")
        except ParentalCodeFormatError as e:
            raise InvalidInputError(str(e)) from e
        code_hash = hash_parental_code(parental_code or "")
    elif role == UserRole.CLIENT.value:
        if age < settings.client_min_age:
            msg = f"Clients must be at least {settings.client_min_age} years old"
            raise InvalidInputError(msg)
    else:
        msg = f"Registration as '{role}' is not supported"
        raise InvalidInputError(msg)

    user = User(
        external_id=external_id,
        role=role,
        name=name,
        username=username,
        age=age,
        parental_code_hash=code_hash,
        task_quota=settings.default_task_quota,
        balance=0,
        xp=0,
    )
    db.add(user)
    try:
        await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent registration for the same identity
        await db.rollback()
        raise AlreadyRegisteredError from e

    logger.info("user_registered", user_id=user.id, role=role)
    return user


# ---------------------------------------------------------------------------
# Self-service updates (owning user only)
# ---------------------------------------------------------------------------


async def update_payment_details(
    db: AsyncSession,
    user: User,
    payment_method: str,
    payment_number: str,
) -> User:
    """
    Set the freelancer's payout method and account identifier.

    Raises:
        WrongRoleError: The user is not a freelancer.
        InvalidInputError: Either field is blank.
    """
    require_role(user, UserRole.FREELANCER)

    payment_method = payment_method.strip()
    payment_number = payment_number.strip()
    if not payment_method or not payment_number:
        msg = "Payment method and account number are both required"
        raise InvalidInputError(msg)

    user.payment_method = payment_method
    user.payment_number = payment_number
    await db.flush()

    logger.info("payment_details_updated", user_id=user.id, method=payment_method)
    return user


async def update_task_quota(db: AsyncSession, user: User, task_quota: int) -> User:
    """Change the freelancer's weekly task quota."""
    require_role(user, UserRole.FREELANCER)
    if task_quota < 1:
        msg = "Task quota must be a positive number"
        raise InvalidInputError(msg)

    user.task_quota = task_quota
    await db.flush()

    logger.info("task_quota_updated", user_id=user.id, task_quota=task_quota)
    return user
