"""
Password hashing and JWT access tokens.

Tokens carry the user's id, email and role. Tokens issued by the class login
also carry the class id, so clients can tell a representative session from a
personal one.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import BaseModel

from ..config import settings


LOGIN_PASSWORD = "password"
LOGIN_CLASS_CODE = "class_code"


class TokenData(BaseModel):
    """Claims read back from a verified access token."""
    user_id: str
    email: Optional[str] = None
    role: Optional[str] = None
    class_id: Optional[str] = None
    login_method: str = LOGIN_PASSWORD


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    """Hash a password with bcrypt."""
    return pwd_context.hash(password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """
    Encode ``data`` as a signed JWT with an ``exp`` claim.

    Args:
        data: Claims to encode
        expires_delta: Lifetime, ACCESS_TOKEN_EXPIRE_MINUTES when omitted
    """
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {**data, "exp": datetime.now(timezone.utc) + lifetime}
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_token(token: str) -> Optional[TokenData]:
    """
    Decode a JWT access token.

    Returns:
        TokenData if the signature and expiry check out and a subject is present, None otherwise
    """
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None

    if payload.get("sub") is None:
        return None

    return TokenData(
        user_id=payload["sub"],
        email=payload.get("email"),
        role=payload.get("role"),
        class_id=payload.get("class_id"),
        login_method=payload.get("login", LOGIN_PASSWORD),
    )


def issue_token_for(user, class_id=None) -> str:
    """Create an access token for ``user``; pass ``class_id`` for class code logins."""
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role.value,
        "login": LOGIN_PASSWORD,
    }
    if class_id is not None:
        claims["class_id"] = str(class_id)
        claims["login"] = LOGIN_CLASS_CODE
    return create_access_token(claims)
