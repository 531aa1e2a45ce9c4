from typing import Optional

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from bus_booking.auth.schemas import UserCreate, LoginRequest
from bus_booking.auth.utils import get_password_hash, verify_password, create_access_token
from bus_booking.validation import is_valid_mobile
from bus_booking.exceptions import ValidationError, DuplicateUser, InvalidCredentials
from bus_booking.models import User

class UserService:
    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        """Get user by email"""
        return db.query(User).filter(User.email == email).first()
    
    @staticmethod
    def get_user_by_id(db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        return db.query(User).filter(User.id == user_id).first()
    
    @staticmethod
    def create_user(db: Session, user: UserCreate) -> User:
        """Create a new user; the email format is checked by the schema, the mobile here"""
        if not is_valid_mobile(user.mobile):
            raise ValidationError(
                "Invalid mobile number. Must be 10 digits starting with 6-9", field="mobile"
            )
        if UserService.get_user_by_email(db, user.email):
            raise DuplicateUser("User already exists")
        
        db_user = User(
            name=user.name.strip(),
            email=user.email,
            mobile=user.mobile.replace(" ", ""),
            password=get_password_hash(user.password)
        )
        
        try:
            db.add(db_user)
            db.commit()
            db.refresh(db_user)
        except IntegrityError:
            db.rollback()
            raise DuplicateUser("User already exists")
        
        logger.info(f"Registered user {db_user.id} <{db_user.email}>")
        return db_user
    
    @staticmethod
    def authenticate(db: Session, login_data: LoginRequest) -> User:
        """Return the user for valid credentials, InvalidCredentials otherwise"""
        user = UserService.get_user_by_email(db, login_data.email)
        if not user or not verify_password(login_data.password, user.password):
            raise InvalidCredentials()
        return user
    
    @staticmethod
    def issue_token(user: User) -> str:
        return create_access_token({"userId": user.id, "email": user.email})
