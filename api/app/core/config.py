from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    app_name: str = "Mock Test API"
    api_v1_prefix: str = "/api/v1"
    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/mock_test"
    sample_max: int = 200

    @field_validator("database_url")
    @classmethod
    def validate_db_url(cls, value: str) -> str:
        if not value:
            raise ValueError("DATABASE_URL is required")
        return value


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
