from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional

class UserBase(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    mobile: str

class UserCreate(UserBase):
    password: str = Field(..., min_length=6)

class LoginRequest(BaseModel):
    email: EmailStr
    password: str

class User(UserBase):
    id: int
    created_at: Optional[datetime] = None
    
    model_config = ConfigDict(from_attributes=True)

class AuthResponse(BaseModel):
    message: str
    token: str
    token_type: str = "bearer"
    user: User

class TokenData(BaseModel):
    userId: int
    email: EmailStr
