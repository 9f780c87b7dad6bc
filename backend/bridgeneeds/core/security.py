"""
Password hashing and account access tokens.

Access tokens carry the account id, email and account type. Donor history
is matched on email, so a token only resolves while its email claim still
matches the account.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext
from pydantic import BaseModel, ValidationError
from .config import settings

ACCESS_TOKEN_TYPE = "access"

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


class TokenClaims(BaseModel):
    """Claims of a decoded access token."""
    sub: str
    email: str
    account_type: str = "individual"
    type: str
    exp: datetime

    def matches(self, user_id: str, email: str) -> bool:
        return self.sub == user_id and self.email == email.strip().lower()


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def create_access_token(
    user_id: str,
    email: str,
    account_type: str = "individual",
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Create an access token for an account.

    Args:
        user_id: Account id, stored as ``sub``
        email: Account email, normalized to lower case
        account_type: ``individual`` or ``organization``
        expires_delta: Lifetime (defaults to ACCESS_TOKEN_EXPIRE_MINUTES)
    """
    issued = datetime.now(timezone.utc)
    lifetime = expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    claims = {
        "sub": str(user_id),
        "email": email.strip().lower(),
        "account_type": account_type,
        "type": ACCESS_TOKEN_TYPE,
        "iat": issued,
        "exp": issued + lifetime,
    }
    return jwt.encode(claims, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def read_access_token(token: str) -> Optional[TokenClaims]:
    """Decode an access token; None if it is invalid, expired or of another type."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
        claims = TokenClaims.model_validate(payload)
    except (JWTError, ValidationError):
        return None
    if claims.type != ACCESS_TOKEN_TYPE:
        return None
    return claims
