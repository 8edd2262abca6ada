"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Parameter keys
    key_suffix_length: int = Field(
        default=12, ge=4, le=32, description="Number of hex characters appended to every parameter key"
    )
    key_seed: int | None = Field(
        default=None, description="Seed for the default key generator; unset means a fresh random seed"
    )

    # Output
    clause_separator: str = Field(default="\n", description="Text placed between assembled clauses")

    # Logging
    log_level: str = Field(default="INFO", description="Root log level used by setup_logging()")
    logfire_enabled: bool = Field(default=False, description="Forward structlog events to Logfire")

    model_config = SettingsConfigDict(
        env_prefix="CYPHER_FORGE_",
        env_file=".env",
        extra="ignore",  # Ignore extra fields in .env file
    )


settings = Settings()
