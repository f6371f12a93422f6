from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WATCHTRACK_")

    database_url: str = "sqlite+aiosqlite:///data/watchtrack.db"
    database_echo: bool = False
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl_seconds: int = 300
    log_level: str = "INFO"


settings = Settings()
