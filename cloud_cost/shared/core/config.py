from functools import lru_cache
from typing import List, Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Main configuration for Cloud Cost Manager.
    Uses Pydantic-Settings for environment variable parsing from .env.
    """
    APP_NAME: str = "Cloud Cost Manager"
    VERSION: str = "0.1.0"
    DEBUG: bool = False

    # Cost Explorer is served from us-east-1
    AWS_REGION: str = "us-east-1"

    # Account sources, highest precedence first:
    # ASSUME_ROLES_FILE > ACCOUNTS_FILE > AWS_PROFILES
    ASSUME_ROLES_FILE: Optional[str] = None
    BASE_PROFILE: Optional[str] = None
    ACCOUNTS_FILE: Optional[str] = None
    AWS_PROFILES: List[str] = []

    # API
    API_HOST: str = "127.0.0.1"
    API_PORT: int = 8080
    AUTH_MODE: Literal["none", "iam"] = "none"
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True
    )

    @model_validator(mode='after')
    def validate_base_profile(self) -> 'Settings':
        """BASE_PROFILE only feeds STS AssumeRole calls."""
        if self.BASE_PROFILE and not self.ASSUME_ROLES_FILE:
            raise ValueError("BASE_PROFILE requires ASSUME_ROLES_FILE to be set.")
        return self


@lru_cache
def get_settings() -> Settings:
    """Returns a singleton instance of the application settings."""
    return Settings()
