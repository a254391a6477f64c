import os
from pathlib import Path

from pydantic import ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SECRET: str
    DATABASE_URL: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Connection pool, ignored for SQLite URLs
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 10
    DB_POOL_TIMEOUT: float = 2.0  # seconds to wait for a pooled connection
    DB_POOL_RECYCLE: int = 1800
    DB_ECHO: bool = False

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @classmethod
    def get_required_fields(cls) -> list[str]:
        """Get all required fields (those without default values)."""
        return [
            name for name, field in cls.model_fields.items() if field.is_required()
        ]

    def __init__(self, **kwargs):
        try:
            super().__init__(**kwargs)
        except ValidationError as e:
            env_file = Path(".env")
            missing_fields = [
                field
                for field in self.get_required_fields()
                if field not in kwargs and not os.getenv(field)
            ]

            if not missing_fields:
                raise

            fields_str = "\n".join(f"- {field}" for field in missing_fields)
            example_env = "\n".join(
                f"{field}=your_{field.lower()}_here" for field in missing_fields
            )

            if not env_file.exists():
                error_msg = (
                    f"\n\nError: Missing required environment variables!"
                    f"\nMissing variables:\n{fields_str}"
                    f"\n\nFor local development, create a .env file with:"
                    f"\n{example_env}"
                )
            else:
                error_msg = (
                    f"\n\nError: Missing required environment variables!"
                    f"\nMissing variables:\n{fields_str}"
                    f"\n\nPlease add these to your .env file or set as environment variables."
                )

            raise ValueError(error_msg) from e


settings = Settings()
