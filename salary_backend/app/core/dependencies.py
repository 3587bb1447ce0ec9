"""
Authentication dependencies for FastAPI.

This module provides dependencies for protecting routes with JWT authentication.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.ext.asyncio import AsyncSession
from salary_backend.app.core.jwt import decode_access_token
from salary_backend.app.core.token_revocation import is_token_revoked, are_user_tokens_revoked
from salary_backend.app.db.session import get_db
from salary_backend.app.models.user import User

# HTTP Bearer security scheme
security = HTTPBearer()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: AsyncSession = Depends(get_db)
) -> dict:
    """
    FastAPI dependency for JWT authentication.

    Checks, in order:
    1. JWT signature and expiry
    2. The token itself has not been revoked (logout)
    3. The user's tokens have not all been revoked (deactivation)
    4. The user still exists and is active in the database

    Returns:
        Decoded token payload with "raw_token" added for logout

    Raises:
        HTTPException: 401 on any authentication failure, 403 for inactive users
    """
    token = credentials.credentials

    payload = decode_access_token(token)
    if payload is None:
        raise _unauthorized("Could not validate credentials")

    user_id = payload.get("user_id")
    if not user_id:
        raise _unauthorized("Invalid token payload")

    if await is_token_revoked(token):
        raise _unauthorized("Token has been revoked")

    if await are_user_tokens_revoked(user_id):
        raise _unauthorized("User access has been revoked")

    user = await db.get(User, user_id)
    if not user:
        raise _unauthorized("User not found")

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive",
        )

    return {**payload, "raw_token": token}
