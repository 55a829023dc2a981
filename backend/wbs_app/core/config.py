from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    ENV: str = Field(default="dev")  # dev|prod
    LOG_LEVEL: str = Field(default="INFO")

    # DB
    DATABASE_URL: str = Field(default="postgresql+psycopg://app:app@db:5432/app")

    # CORS
    CORS_ORIGINS: str = Field(default="http://localhost:3000,http://localhost")

    # Exports
    EXPORT_DIR: str = Field(default="/app/data/exports")
    EXPORT_VERSION: str = Field(default="1.0")

    # Seed (dev)
    SEED_DEMO: bool = Field(default=True)
    DEMO_PROJECT_CODE: str = Field(default="PRJ-1")


settings = Settings()
