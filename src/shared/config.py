from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    APP_NAME: str = "pgcrtauth"
    APP_VERSION: str = "0.1.0"
    LOG_LEVEL: str = "WARNING"

    # Telemetry (spans, log records and metrics printed to stdout)
    TELEMETRY_CONSOLE: bool = False

    # Certificate defaults
    DEFAULT_KEY_SIZE: str = "P256"
    DEFAULT_VALID_FOR_DAYS: int = 365


settings = Settings()
