from typing import Any
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from policyflow.database import get_db
from policyflow.auth import schemas, models, security
from policyflow.auth.service import AuthService
from policyflow.auth.dependencies import get_current_user
from policyflow.users.schemas import UserResponse

router = APIRouter()

LINK_SENT = "if that email is registered, a link has been sent"


@router.post("/magic-link", response_model=schemas.MessageResponse)
async def request_magic_link(
    body: schemas.MagicLinkRequest,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Send a login link. The response does not reveal whether the address is registered.
    """
    await AuthService(db).request_magic_link(body.email)
    return {"message": LINK_SENT}


@router.get("/magic-login", response_model=schemas.Token)
async def magic_login(
    token: str,
    db: AsyncSession = Depends(get_db),
) -> Any:
    """
    Exchange a magic-link token for a session token.
    """
    auth_service = AuthService(db)
    try:
        user = await auth_service.exchange_magic_token(token)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    return {
        "access_token": security.create_session_token(user),
        "token_type": "bearer",
    }


@router.get("/me", response_model=UserResponse)
async def me(current_user: models.User = Depends(get_current_user)):
    return current_user
