from pydantic_settings import BaseSettings
from functools import lru_cache

class Settings(BaseSettings):
    """Application settings"""
    app_name: str = "SkinPlan"
    # Database
    database_url: str = "sqlite+aiosqlite:///./skinplan.db"
    sql_echo: bool = False
    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = '.env'


@lru_cache
def get_settings() -> Settings:
    return Settings()
