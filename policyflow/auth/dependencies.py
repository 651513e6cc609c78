from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.access.context import CallerContext
from policyflow.database import get_db
from policyflow.config import settings
from policyflow.auth import security, models
from policyflow.auth.service import AuthService

oauth2_scheme = OAuth2PasswordBearer(tokenUrl=f"{settings.API_V1_STR}/auth/magic-login")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db)
) -> models.User:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = security.decode_token(token, security.SESSION_TOKEN)
        user_id = UUID(payload["sub"])
    except (JWTError, ValueError):
        raise credentials_exception

    # Role and department come from the stored row so changes apply to
    # sessions that are already open.
    user = await AuthService(db).get_user(user_id)
    if user is None:
        raise credentials_exception
    return user


async def get_caller(
    current_user: models.User = Depends(get_current_user),
) -> CallerContext:
    return CallerContext.for_user(current_user)
