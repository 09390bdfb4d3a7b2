"""
Authentication dependencies for FastAPI routes.

Tokens are issued by the external identity provider; we only verify them and
load the local mirror of the user. ``sub`` carries the user id.
"""

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.security import verify_token
from app.db.deps import get_db
from app.models.user import Student, User
from app.utils.enums import Role


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/token", auto_error=True)


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        user_id = verify_token(token)
        if user_id is None:
            raise credentials_exception
        user_id = uuid.UUID(str(user_id))
    except (JWTError, ValueError):
        raise credentials_exception

    user = await db.get(User, user_id)
    if user is None or not user.is_active:
        raise credentials_exception
    return user


async def get_current_student(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> Student:
    """The student profile of the caller; staff accounts are refused."""
    if current_user.role != Role.student:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Only students can access this resource"
        )
    row = await db.execute(select(Student).where(Student.user_id == current_user.id))
    student = row.scalar_one_or_none()
    if student is None:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN, detail="Student profile not found"
        )
    return student
