from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field("Campus ERP Record Store", alias="APP_NAME")
    database_url: str = Field("sqlite+aiosqlite:///./erp.db", alias="DATABASE_URL")

    # Upper bound for acquiring per-entity locks inside one unit of work.
    lock_timeout_seconds: float = Field(5.0, alias="LOCK_TIMEOUT_SECONDS")

    exam_pass_mark: float = Field(40, alias="EXAM_PASS_MARK")
    default_currency: str = Field("INR", alias="DEFAULT_CURRENCY")

    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
