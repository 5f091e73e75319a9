from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field(..., alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(15, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    # Login endpoint of the platform auth service that issues access tokens
    auth_token_url: str = Field("https://auth.example.com/api/v1/auth/login", alias="AUTH_TOKEN_URL")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_file: Optional[str] = Field(None, alias="LOG_FILE")

    # Used when a session has neither max_supervision_visits nor max_posting_per_supervisor
    default_max_supervision_visits: int = Field(3, alias="DEFAULT_MAX_SUPERVISION_VISITS")
    history_page_limit: int = Field(20, alias="HISTORY_PAGE_LIMIT")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


settings = Settings()
