"""
Authentication API endpoints.

Provides login, logout and user info endpoints. Accounts are created by
salary submissions (no password) or by the seed script (admins).
"""

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from salary_backend.app.db.session import get_db
from salary_backend.app.models.user import User
from salary_backend.app.schemas.auth import UserLogin, TokenResponse, UserResponse, LogoutResponse
from salary_backend.app.core.security import verify_password
from salary_backend.app.core.jwt import create_access_token
from salary_backend.app.core.dependencies import get_current_user
from salary_backend.app.core.token_revocation import revoke_token
from salary_backend.app.services.audit import log_auth_event, AuditAction

router = APIRouter(prefix="/auth", tags=["Authentication"])


def _invalid_credentials() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    credentials: UserLogin,
    request: Request,
    db: AsyncSession = Depends(get_db)
):
    """
    Login user and return JWT token.

    Logs successful and failed login attempts for security monitoring.
    """
    email = credentials.email.strip().lower()
    ip_address = request.client.host if request.client else None

    result = await db.execute(select(User).where(User.email == email))
    user = result.scalar_one_or_none()

    if not user:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=None,
            email=email,
            ip_address=ip_address,
            metadata={"reason": "User not found"}
        )
        raise _invalid_credentials()

    if not verify_password(credentials.password, user.hashed_password):
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            email=user.email,
            ip_address=ip_address,
            metadata={"reason": "Invalid password"}
        )
        raise _invalid_credentials()

    if not user.is_active:
        await log_auth_event(
            db=db,
            action=AuditAction.LOGIN_FAILED,
            user_id=user.id,
            email=user.email,
            ip_address=ip_address,
            metadata={"reason": "Account is inactive"}
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Inactive user account"
        )

    access_token = create_access_token(data={
        "sub": user.email,
        "user_id": user.id,
        "role": user.role.value,
    })

    await log_auth_event(
        db=db,
        action=AuditAction.LOGIN_SUCCESS,
        user_id=user.id,
        email=user.email,
        ip_address=ip_address,
    )

    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user_id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
    )


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Request,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Revoke the presented token."""
    await revoke_token(current_user["raw_token"], current_user["user_id"])

    await log_auth_event(
        db=db,
        action=AuditAction.LOGOUT,
        user_id=current_user["user_id"],
        email=current_user.get("sub"),
        ip_address=request.client.host if request.client else None,
    )

    return LogoutResponse(message="Successfully logged out")


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
):
    """Get the authenticated user's profile."""
    user = await db.get(User, current_user["user_id"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    return UserResponse.model_validate(user)
