from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "FinPlan Backend"
    ENV: str = "dev"

    # apps/backend/db.sqlite3 as an absolute path so the working directory does not matter
    _default_db_path = Path(__file__).resolve().parents[2] / "db.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"

    CORS_ORIGINS: list[str] = ["*"]
    TIMEZONE: str = "America/Sao_Paulo"
    LOG_LEVEL: str = "INFO"

    # Projection horizon (months after the reference month)
    PREDICTION_HORIZON_MONTHS: int = 12
    MAX_PREDICTION_HORIZON_MONTHS: int = 24

    DEFAULT_ALERT_THRESHOLD: int = 80
    DUPLICATE_MAX_DAY: int = 28
    AVAILABLE_MONTHS_AHEAD: int = 12

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="FINPLAN_", case_sensitive=False)


settings = Settings()
