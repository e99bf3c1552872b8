# saasguard/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field
from typing import Optional


class Settings(BaseSettings):
    # -------------------------------------------------
    # Project
    # -------------------------------------------------
    APP_NAME: str = "SaaSGuard Backend"
    DEBUG: bool = False
    ENVIRONMENT: str = "local"

    # -------------------------------------------------
    # Database Settings
    # -------------------------------------------------
    DATABASE_HOST: str = "localhost"
    DATABASE_PORT: int = 5432
    DATABASE_USER: str = "postgres"
    DATABASE_PASSWORD: str = "postgres"
    DATABASE_NAME: str = "saasguard"
    DATABASE_POOL_MIN_SIZE: int = 2
    DATABASE_POOL_SIZE: int = 10

    # -------------------------------------------------
    # JWT / Auth
    # -------------------------------------------------
    JWT_SECRET_KEY: str = "CHANGE_ME_SUPER_SECRET"
    JWT_ALGORITHM: str = "HS256"

    # -------------------------------------------------
    # Credential encryption
    # -------------------------------------------------
    # 64 hex chars are used as the raw AES-256 key; any other string is
    # hashed with SHA-256. Leave unset to store credentials as plaintext.
    #   ENCRYPTION_KEY=$(python generate_encryption_key.py)
    ENCRYPTION_KEY: Optional[str] = None

    # Raise instead of returning the stored value when an envelope
    # fails authentication.
    ENCRYPTION_STRICT: bool = False

    # -------------------------------------------------
    # Pydantic Settings
    # -------------------------------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",        # ignore unknown env vars
        case_sensitive=False,
    )

    # -------------------------------------------------
    # Computed / convenience properties
    # -------------------------------------------------
    @computed_field
    @property
    def DATABASE_URL(self) -> str:  # type: ignore[override]
        """
        Convenience DSN string for libraries that want a URL.
        """
        return (
            f"postgresql://{self.DATABASE_USER}:{self.DATABASE_PASSWORD}"
            f"@{self.DATABASE_HOST}:{self.DATABASE_PORT}/{self.DATABASE_NAME}"
        )


settings = Settings()
