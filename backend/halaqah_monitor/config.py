# backend/halaqah_monitor/config.py
from typing import List
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # DB URL used by SQLAlchemy. Hosted Postgres (supabase etc.) works as-is.
    DATABASE_URL: str = "postgresql+psycopg2://postgres:postgres@db:5432/halaqah"

    # Postgres schema for all tables; set to "" for SQLite
    DB_SCHEMA: str = "public"

    # App options (used by db.py and main.py)
    DEBUG: bool = False
    AUTO_CREATE_TABLES: bool = True   # DEV ONLY, use migrations in production
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: List[str] = [
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

    # cost factor for stored password hashes
    BCRYPT_ROUNDS: int = 12

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

settings = Settings()
