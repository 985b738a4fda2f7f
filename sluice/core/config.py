from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="SLUICE_", env_file=".env", extra="ignore")

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False  # True for structured JSON, False for colored console output

    # Serialization defaults
    STRIP_NULLS: bool = True
    STRIP_SERIALIZER_TYPE: bool = True
    JSON_INDENT: int = 4
    XML_GROUP_TAG: str = "group"

    # Validation
    DEFAULT_TIMEOUT: float | None = None  # seconds; None waits forever
    MAX_ADDRESS_LENGTH: int = 45


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
