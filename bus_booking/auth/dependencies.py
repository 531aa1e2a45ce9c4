from typing import Optional

from fastapi import Depends, Query
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from bus_booking.auth.service import UserService
from bus_booking.auth.utils import verify_token
from bus_booking.database import get_db
from bus_booking.exceptions import AuthError

bearer_scheme = HTTPBearer(auto_error=False)

def _resolve_user(token: Optional[str], db: Session):
    payload = verify_token(token)
    user = UserService.get_user_by_id(db, user_id=payload["userId"])
    if user is None:
        raise AuthError("Access denied. Please login again.")
    return user

def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    """Get current authenticated user from the Authorization header"""
    return _resolve_user(credentials.credentials if credentials else None, db)

def get_current_user_from_header_or_query(
    token: Optional[str] = Query(None, description="Bearer token, for links that cannot send headers"),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db)
):
    """Same as get_current_user but also accepts ?token= (used by ticket download links)"""
    return _resolve_user(token or (credentials.credentials if credentials else None), db)
