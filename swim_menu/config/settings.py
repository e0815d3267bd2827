import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using an absolute path for SQLite to avoid path resolution issues.

    SQLite is meant for local development only. Set DATABASE_URL to a
    PostgreSQL connection string for any shared deployment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info("Using DATABASE_URL from environment")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "swim_menu.db"
    db_url = f"sqlite:///{db_path.resolve()}"
    logger.warning(f"Using SQLite database (LOCAL DEV ONLY): {db_url}. Set DATABASE_URL to use PostgreSQL.")
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="", validation_alias="LOG_FILE")
    log_json: bool = Field(default=False, validation_alias="LOG_JSON")

    openai_api_key: str = Field(
        default="",
        validation_alias="OPENAI_API_KEY",
        description="Server-side default key, only used by the CLI when no key is passed",
    )

    openai_model: str = Field(default="gpt-4o", validation_alias="OPENAI_MODEL")
    openai_temperature: float = Field(default=0.5, validation_alias="OPENAI_TEMPERATURE")
    google_model: str = Field(default="gemini-2.0-flash", validation_alias="GOOGLE_MODEL")
    google_temperature: float = Field(default=0.4, validation_alias="GOOGLE_TEMPERATURE")
    anthropic_model: str = Field(default="claude-3-5-sonnet-20241022", validation_alias="ANTHROPIC_MODEL")
    anthropic_temperature: float = Field(default=0.5, validation_alias="ANTHROPIC_TEMPERATURE")
    anthropic_max_tokens: int = Field(default=4000, validation_alias="ANTHROPIC_MAX_TOKENS")

    embedding_model: str = Field(default="text-embedding-ada-002", validation_alias="EMBEDDING_MODEL")
    retrieval_top_k: int = Field(
        default=5,
        validation_alias="RETRIEVAL_TOP_K",
        description="Number of stored menus injected as generation context",
    )
    retrieval_duration_window: float = Field(
        default=0.2,
        validation_alias="RETRIEVAL_DURATION_WINDOW",
        description="Stored menus must be within +/- this fraction of the requested duration",
    )
    reconcile_max_iterations: int = Field(default=200, validation_alias="RECONCILE_MAX_ITERATIONS")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("retrieval_duration_window")
    @classmethod
    def validate_duration_window(cls, value: float) -> float:
        """Keep the duration window a fraction between 0 and 1."""
        if not 0.0 <= value < 1.0:
            logger.warning(f"RETRIEVAL_DURATION_WINDOW must be in [0, 1), got {value}. Defaulting to 0.2.")
            return 0.2
        return value

    @field_validator("retrieval_top_k", "reconcile_max_iterations")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError(f"must be a positive integer, got {value}")
        return value


settings = Settings()
