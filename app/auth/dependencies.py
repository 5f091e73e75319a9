from typing import Dict
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.models import Role, User
from app.auth.schemas import CurrentUser
from app.core.config import settings
from app.db.session import get_db


# Tokens are issued by the platform auth service, not by this app; tokenUrl only feeds the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl=settings.auth_token_url)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> CurrentUser:
    """Resolve the authenticated user and their permissions from the access token."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError:
        raise credentials_exception

    user_id_str = payload.get("user_id") or payload.get("sub")
    institution_id_str = payload.get("institution_id")
    role_name = payload.get("role")
    if not user_id_str or not institution_id_str or not role_name:
        raise credentials_exception

    try:
        user_id = UUID(user_id_str)
        institution_id = UUID(institution_id_str)
    except ValueError:
        raise credentials_exception

    stmt = select(User).where(User.id == user_id, User.institution_id == institution_id)
    result = await db.execute(stmt)
    user = result.scalar_one_or_none()
    if not user or user.status != "active":
        raise credentials_exception
    # A role change (e.g. supervisor promoted to head_of_tp) invalidates tokens issued before it
    if user.role != role_name:
        raise credentials_exception

    role_stmt = select(Role).where(Role.institution_id == institution_id, Role.name == role_name)
    role_result = await db.execute(role_stmt)
    role = role_result.scalar_one_or_none()

    permissions: Dict[str, Dict[str, bool]] = {}
    if role and role.permissions:
        permissions = role.permissions  # type: ignore[assignment]

    return CurrentUser(
        id=user.id,
        institution_id=user.institution_id,
        role=user.role,
        permissions=permissions or {},
    )
