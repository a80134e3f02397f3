from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    DATABASE_URL: str = "sqlite:///./estimator.db"
    APP_NAME: str = "Project Cost Estimator"
    LOG_LEVEL: str = "INFO"

    # Project defaults applied when a create request leaves them out
    DEFAULT_CURRENCY_CODE: str = "THB"
    DEFAULT_CURRENCY_SYMBOL: str = "฿"
    DEFAULT_HOURS_PER_DAY: float = 8.0

    # Team CSV import/export limits
    CSV_MAX_BYTES: int = 5 * 1024 * 1024
    CSV_MAX_ROWS: int = 5000
    EXPORT_MAX_ROWS: int = 10000

    class Config:
        env_file = ".env"


settings = Settings()
