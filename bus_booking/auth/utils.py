from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from passlib.context import CryptContext

from bus_booking.config import settings
from bus_booking.exceptions import AuthError

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)

def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Sign a bearer token carrying the given claims"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=settings.ACCESS_TOKEN_EXPIRE_DAYS))
    to_encode = {**data, "iat": now, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

def verify_token(token: Optional[str]) -> dict:
    """Decode a bearer token; the raised AuthError tells expired apart from malformed"""
    if not token:
        raise AuthError("Access denied. Please login again.")
    
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthError("Session expired. Please login again.", expired=True)
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token. Please login again.")
    
    if payload.get("userId") is None:
        raise AuthError("Invalid token. Please login again.")
    return payload
