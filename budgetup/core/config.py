from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path


class Settings(BaseSettings):
    APP_NAME: str = "BudgetUp Backend"
    ENV: str = "dev"

    # Default SQLite file DB, resolved next to the package so the CWD doesn't matter
    _default_db_path = Path(__file__).resolve().parents[2] / "budgetup.sqlite3"
    DATABASE_URL: str = f"sqlite:///{_default_db_path}"

    CORS_ORIGINS: list[str] = ["*"]
    TIMEZONE: str = "America/Santo_Domingo"

    DEFAULT_CURRENCY: str = "DOP"
    SUPPORTED_CURRENCIES: list[str] = ["DOP", "USD"]

    LOG_LEVEL: str = "INFO"
    # Per-process memo invalidated over the in-process event bus. With more than
    # one worker process the others keep stale balances; disable it there.
    BALANCE_CACHE_ENABLED: bool = True
    IMPORT_MAX_ROWS: int = 5000

    INVITATION_TTL_DAYS: int = 7
    INVITATION_CLEANUP_AFTER_DAYS: int = 30

    model_config = SettingsConfigDict(env_file=(".env",), env_prefix="BUDGETUP_", case_sensitive=False)


settings = Settings()
