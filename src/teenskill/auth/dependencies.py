"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from teenskill.auth.jwt import verify_token
from teenskill.database import get_session
from teenskill.db.models import User
from teenskill.users.service import get_user_by_external_id

_bearer = HTTPBearer()


async def get_subject(
    credentials: HTTPAuthorizationCredentials = Security(_bearer),
) -> str:
    """
    Verify the identity session token and return its external subject id.

    Used on its own by registration, before a User row exists.
    """
    try:
        payload = verify_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    return payload["sub"]


async def get_current_user(
    subject: str = Depends(get_subject),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Resolve the authenticated subject to a registered User.

    Raises 404 when the identity is valid but has not completed registration,
    which the UI uses to route new sign-ins to the registration form.
    """
    user = await get_user_by_external_id(db, subject)
    if user is None:
        raise HTTPException(status_code=404, detail="User not registered")
    return user
