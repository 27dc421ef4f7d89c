from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from jose import jwt

from app.core.config import settings


def create_access_token(user_id: int, role: str, groups: Optional[List[str]] = None,
                        expires_delta: Optional[timedelta] = None) -> str:
    """Issue a token in the shape the auth service uses. Handy for tests and internal tooling."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {
        "sub": str(user_id),
        "role": role,
        "groups": groups or [],
        "exp": expire,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
