from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    app_name: str = "Planboard"
    debug: bool = True
    database_url: str = Field("sqlite:///./planboard.db", validation_alias="DATABASE_URL")
    redis_url: str = Field("redis://localhost:6379/0", validation_alias="REDIS_URL")
    cache_enabled: bool = True
    cache_ttl_seconds: int = 600
    timeline_padding_days: int = 5
    max_week_offset: int = 4


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
