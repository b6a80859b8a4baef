from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
import hmac

from jose import JWTError, jwt
import bcrypt

from hivecommunity.core.config import settings
from hivecommunity.core.exceptions import AuthenticationError


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against a bcrypt hash (constant-time inside bcrypt)"""
    if not hashed_password:
        return False
    # Bcrypt has a 72 byte limit - truncate password if necessary
    password_bytes = plain_password.encode('utf-8')[:72]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode('utf-8'))
    except ValueError:
        # Malformed hash in storage
        return False


def get_password_hash(password: str) -> str:
    """Hash password with configurable rounds (BCRYPT_ROUNDS in .env)"""
    password_bytes = password.encode('utf-8')[:72]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode('utf-8')


def create_access_token(data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token"""
    to_encode = data.copy()

    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    )

    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> Dict[str, Any]:
    """Decode JWT token"""
    try:
        payload = jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise AuthenticationError("Could not validate credentials", code="INVALID_TOKEN")

    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type", code="INVALID_TOKEN")
    return payload


def verify_admin_token(token: Optional[str]) -> bool:
    """Compare an admin token against ADMIN_API_TOKEN in constant time"""
    expected = settings.ADMIN_API_TOKEN
    if not expected or not token:
        return False
    return hmac.compare_digest(token.encode('utf-8'), expected.encode('utf-8'))
