"""
Application configuration and environment settings.
"""
from pydantic_settings import BaseSettings
from pydantic import field_validator
from typing import List, Union


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "ClubFee"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./clubfee.db"
    DB_ECHO: bool = False

    # CORS
    CORS_ORIGINS: Union[List[str], str] = ["http://localhost:3000", "http://localhost:8080"]

    @field_validator("CORS_ORIGINS", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS_ORIGINS from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    # Settlement
    GAME_FEE_PER_GAME: int = 3000  # Lane fee per game (KRW)
    PENALTY_AMOUNT: int = 3000  # Charged when a member's 3-game total is below average x 3
    SETTLEMENT_ROUNDING_UNIT: int = 1000  # Per-member amounts are rounded up to this unit
    REPRESENTATIVE_GAME_COUNT: int = 3  # Game count used for the per-person baseline

    # Billing message
    CURRENCY_UNIT: str = "원"
    BILLING_HEADER: str = "📋 볼링 동호회 정산 안내"

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
