from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    LOG_LEVEL: str = "INFO"

    # Database

    # Either a full DATABASE_URL ...
    DATABASE_URL: str = "sqlite+aiosqlite:///./workflow_engine.db"

    # ... or discrete Postgres settings; POSTGRES_HOST takes precedence
    POSTGRES_HOST: str | None = None
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "workflow_engine"

    # Pool settings for PostgreSQL
    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20

    # Scheduler
    SCHEDULER_ENABLED: bool = True
    SCHEDULER_INTERVAL_SECONDS: float = 60.0

    # Actions
    ACTION_TIMEOUT_SECONDS: float | None = 30.0
    WEBHOOK_TIMEOUT_SECONDS: float = 10.0

    @field_validator("SCHEDULER_INTERVAL_SECONDS")
    @classmethod
    def check_interval(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("SCHEDULER_INTERVAL_SECONDS must be positive")
        return v

    @field_validator("ACTION_TIMEOUT_SECONDS", mode="before")
    @classmethod
    def normalize_action_timeout(cls, v):
        if v in (None, "", "none", "None", 0, "0"):
            return None
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def effective_database_url(self) -> str:
        """Return the database URL the engine should connect to.

        DATABASE_URL is used unless POSTGRES_HOST is set, in which case an
        asyncpg URL is built from the discrete POSTGRES_* settings.
        """
        if self.POSTGRES_HOST:
            return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        return self.DATABASE_URL


settings = Settings()
