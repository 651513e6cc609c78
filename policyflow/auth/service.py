import logging
from typing import Optional
from uuid import UUID

from jose import JWTError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.auth import models, security
from policyflow.config import settings

logger = logging.getLogger(__name__)


def magic_login_url(email: str) -> str:
    token = security.create_magic_token(email)
    return f"{settings.BASE_URL}{settings.API_V1_STR}/auth/magic-login?token={token}"


def deliver_login_link(user: models.User, url: str) -> None:
    """Hand a login link to the mail collaborator.

    Outbound mail is not part of this service; the link is written to the log
    so a local operator can pick it up.
    """
    logger.info("Login link for %s: %s", user.email, url)


class AuthService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_user(self, user_id: UUID) -> Optional[models.User]:
        result = await self.db.execute(
            select(models.User)
            .where(models.User.id == user_id)
            .execution_options(populate_existing=True)
        )
        return result.scalars().first()

    async def get_user_by_email(self, email: str) -> Optional[models.User]:
        result = await self.db.execute(select(models.User).where(models.User.email == email))
        return result.scalars().first()

    async def request_magic_link(self, email: str) -> None:
        # Unknown addresses get the same response as known ones.
        user = await self.get_user_by_email(email)
        if not user:
            logger.info("Magic link requested for unknown address")
            return
        deliver_login_link(user, magic_login_url(user.email))

    async def exchange_magic_token(self, token: str) -> models.User:
        try:
            payload = security.decode_token(token, security.MAGIC_TOKEN)
        except JWTError:
            raise ValueError("invalid or expired link")

        user = await self.get_user_by_email(payload["sub"])
        if not user:
            raise ValueError("user not found")
        return user
