from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import jwt, JWTError

from policyflow.config import settings

ALGORITHM = "HS256"

SESSION_TOKEN = "session"
MAGIC_TOKEN = "magic"


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    to_encode = data.copy()
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire, "iat": now})
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=ALGORITHM)


def create_session_token(user) -> str:
    return create_access_token(
        data={"sub": str(user.id), "email": user.email, "role": user.role.value, "type": SESSION_TOKEN},
        expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_magic_token(email: str) -> str:
    return create_access_token(
        data={"sub": email, "type": MAGIC_TOKEN},
        expires_delta=timedelta(minutes=settings.MAGIC_LINK_EXPIRE_MINUTES),
    )


def decode_token(token: str, token_type: str) -> Dict[str, Any]:
    """Decode and verify a token, raising ``JWTError`` unless it is of ``token_type``."""
    payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[ALGORITHM])
    if payload.get("type") != token_type or not payload.get("sub"):
        raise JWTError(f"expected a {token_type} token")
    return payload
