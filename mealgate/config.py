"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Centralised settings — no hardcoded values anywhere else."""

    # Database
    database_url: str = Field(
        "sqlite+aiosqlite:///./mealgate.db", env="DATABASE_URL"
    )

    # Security
    service_token: str = Field(..., env="SERVICE_TOKEN")
    allowed_origins: str = Field(
        "http://localhost:3000",
        env="ALLOWED_ORIGINS",
    )

    # App
    app_env: str = Field("development", env="APP_ENV")
    log_level: str = Field("INFO", env="LOG_LEVEL")

    # Kitchen hygiene — one canonical threshold on the 0-50 scale, used both
    # for the stored PASS/FAIL status and by the serving gate.
    hygiene_pass_score: int = Field(25, env="HYGIENE_PASS_SCORE")
    hygiene_item_max: int = Field(50, env="HYGIENE_ITEM_MAX")
    hygiene_correction_days: int = Field(7, env="HYGIENE_CORRECTION_DAYS")

    # Audit
    audit_history_max_limit: int = Field(500, env="AUDIT_HISTORY_MAX_LIMIT")

    # Derived
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list."""
        return [o.strip() for o in self.allowed_origins.split(",")]

    @property
    def is_sqlite(self) -> bool:
        return self.database_url.startswith("sqlite")

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
