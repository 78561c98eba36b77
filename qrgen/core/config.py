from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import URL


class AppSettings(BaseSettings):
    """Environment-driven application configuration."""

    model_config = SettingsConfigDict(
        env_file=(".env", ".env.local"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    APP_NAME: str = "QR Inventory"
    BASE_DIR: Path = Field(default_factory=lambda: Path(__file__).resolve().parent.parent)
    DATA_DIR: Path = Field(default_factory=lambda: Path.cwd() / "data")
    TEMPLATES_DIR: Path | None = None

    HOST: str = "0.0.0.0"
    PORT: int = Field(default=3000, validation_alias=AliasChoices("APP_PORT", "PORT"))
    LOG_LEVEL: str = "INFO"

    SESSION_SECRET: str = "change_this_secret_offline"
    SESSION_COOKIE_NAME: str = "qrgen.sid"
    SESSION_MAX_AGE: int = 60 * 60 * 8

    DB_URL: str = Field(default="", validation_alias=AliasChoices("DATABASE_URL", "DB_URL"))
    DB_HOST: str = ""
    DB_PORT: int = 3306
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    DB_NAME: str = "qr"
    DB_POOL_SIZE: int = 10

    DEFAULT_TABLE: str = "it"
    # /api/item/{id} only ever reads this table, whatever the other routes use.
    API_ITEM_TABLE: str = "it"
    CREATE_DEFAULT_TABLE: bool = True

    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD_HASH: str = ""
    ADMIN_PASSWORD: str = ""
    # Offline mode: compare ADMIN_PASSWORD as plaintext. Never the default.
    ADMIN_INSECURE_PLAINTEXT: bool = False

    QR_ERROR_CORRECTION: str = "M"
    QR_MARGIN: int = 1

    @field_validator("QR_ERROR_CORRECTION")
    @classmethod
    def check_error_correction(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"L", "M", "Q", "H"}:
            raise ValueError("QR_ERROR_CORRECTION must be one of L, M, Q, H")
        return level

    @property
    def templates_dir(self) -> Path:
        return self.TEMPLATES_DIR if self.TEMPLATES_DIR is not None else self.BASE_DIR / "templates"

    @property
    def database_url(self) -> str | URL:
        """Explicit URL first, then a MySQL URL from the DB_* parts, then SQLite."""

        if self.DB_URL:
            return self.DB_URL
        if self.DB_HOST:
            return URL.create(
                "mysql+pymysql",
                username=self.DB_USER,
                password=self.DB_PASSWORD or None,
                host=self.DB_HOST,
                port=self.DB_PORT,
                database=self.DB_NAME,
            )
        return f"sqlite:///{self.DATA_DIR / 'qrgen.db'}"


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    settings = AppSettings()
    if not settings.DB_URL and not settings.DB_HOST:
        settings.DATA_DIR.mkdir(parents=True, exist_ok=True)
    return settings


settings = get_settings()
