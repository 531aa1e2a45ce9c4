from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from bus_booking.auth.dependencies import get_current_user
from bus_booking.auth.schemas import UserCreate, User, LoginRequest, AuthResponse
from bus_booking.auth.service import UserService
from bus_booking.database import get_db

router = APIRouter()

@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register_user(user: UserCreate, db: Session = Depends(get_db)):
    """Register a new user and log them in"""
    db_user = UserService.create_user(db=db, user=user)
    return AuthResponse(
        message="Registration successful",
        token=UserService.issue_token(db_user),
        user=User.model_validate(db_user)
    )

@router.post("/login", response_model=AuthResponse)
def login(login_data: LoginRequest, db: Session = Depends(get_db)):
    user = UserService.authenticate(db, login_data)
    return AuthResponse(
        message="Login successful",
        token=UserService.issue_token(user),
        user=User.model_validate(user)
    )

@router.get("/me", response_model=User)
def read_users_me(current_user=Depends(get_current_user)):
    """Get current user profile"""
    return current_user
