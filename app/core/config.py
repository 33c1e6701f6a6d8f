from typing import List
from pydantic_settings import BaseSettings
from pydantic import Field

class Settings(BaseSettings):
    PROJECT_NAME: str = "Coupon Links API"
    DATABASE_URL: str = "sqlite:///./coupons.db"
    SECRET_KEY: str = "supersecretkey_change_me_in_production"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 30 # 30 days

    # Single admin account (password stored as argon2 hash only)
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD_HASH: str = ""
    ADMIN_EMAIL: str = "admin@example.com"
    ADMIN_ID: str = "1"

    # Coupons
    COUPON_CODE_LENGTH: int = Field(10, ge=10)
    COUPON_CODE_ATTEMPTS: int = 5
    DEFAULT_COUPON_NAME: str = "general"
    IMPORT_DEFAULT_EXPIRY_DAYS: int = 2
    MAX_EXPIRY_DAYS: int = 3650

    CORS_ORIGINS: List[str] = ["*"]
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
