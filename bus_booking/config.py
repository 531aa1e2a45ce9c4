from functools import lru_cache
from decimal import Decimal
from typing import List, Optional

from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./bus_booking.db"
    
    # Security
    SECRET_KEY: str = "change-me-in-production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7
    
    # Application
    PROJECT_NAME: str = "Bus Booking System"
    API_PREFIX: str = "/api"
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    CORS_ORIGINS: List[str] = ["*"]
    
    # Booking rules
    SEARCH_UTC_OFFSET_MINUTES: int = 0
    MAX_ADVANCE_DAYS: int = 90
    CANCELLATION_REFUND_RATE: Decimal = Decimal("0.8")
    DEFAULT_SEAT_COUNT: int = 40
    
    # Email
    EMAIL_HOST: Optional[str] = None
    EMAIL_PORT: int = 587
    EMAIL_USER: Optional[str] = None
    EMAIL_PASS: Optional[str] = None
    EMAIL_FROM_NAME: str = "Bus Booking System"
    NOTIFICATION_WORKERS: int = 2
    
    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None
    
    @property
    def email_enabled(self) -> bool:
        return bool(self.EMAIL_HOST and self.EMAIL_USER and self.EMAIL_PASS)
    
    class Config:
        env_file = ".env"
        case_sensitive = True

@lru_cache()
def get_settings() -> Settings:
    return Settings()

settings = get_settings()
