"""
Application configuration
"""
from pydantic_settings import BaseSettings
from functools import lru_cache
from pathlib import Path
from typing import Optional


class Settings(BaseSettings):
    """Application settings"""

    # Database
    DATABASE_URL: str = "sqlite:///./imaging_booking.db"

    # Security
    SECRET_KEY: str = "local-development-secret-key-change-in-production"

    # Razorpay
    RAZORPAY_KEY_ID: Optional[str] = None
    RAZORPAY_KEY_SECRET: Optional[str] = None
    RAZORPAY_API_URL: str = "https://api.razorpay.com/v1"
    RAZORPAY_TIMEOUT_SECONDS: float = 10.0
    PAYMENT_CURRENCY: str = "INR"

    # Email (patient notifications)
    SMTP_HOST: Optional[str] = None  # smtp.gmail.com
    SMTP_PORT: int = 587
    SMTP_USER: Optional[str] = None
    SMTP_PASSWORD: Optional[str] = None  # app password
    SMTP_FROM_NAME: str = "Diagnostic Imaging Centre"
    SMTP_FROM_EMAIL: Optional[str] = None  # if different from SMTP_USER
    EMAIL_TIMEOUT_SECONDS: float = 15.0

    # Contact details printed in emails
    CONTACT_PHONE: str = ""
    CONTACT_EMAIL: str = ""
    DISPLAY_TIMEZONE: str = "Asia/Kolkata"

    # Application
    SITE_URL: str = "http://localhost:3000"
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"

    # Admin Panel
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: str = "change-me"

    # Development
    DEBUG: bool = False
    ENVIRONMENT: str = "development"

    class Config:
        # .env lives in the project root
        env_file = Path(__file__).resolve().parent.parent.parent / ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Cached application settings"""
    return Settings()
