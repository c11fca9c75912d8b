# careflow/core/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore")

    APP_NAME: str = "CareFlow Scheduling API"
    LOG_LEVEL: str = "INFO"

    JWT_SECRET: str = Field(...)
    JWT_ALGORITHM: str = "HS256"

    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_USER: str = "careflow"
    DB_PASSWORD: str = ""
    DB_NAME: str = "careflow"
    # si viene seteada pisa a DB_* (p.ej. sqlite+aiosqlite:///./dev.db)
    DATABASE_URL: str | None = None

    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    # reglas de agenda
    CANCELLATION_CUTOFF_HOURS: int = 24
    CONFLICT_IGNORE_RELEASED: bool = False   # True: cancelados/rechazados liberan el horario

    @property
    def async_database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (f"mysql+aiomysql://{self.DB_USER}:{self.DB_PASSWORD}"
                f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}?charset=utf8mb4")

settings = Settings()  # type: ignore[call-arg]
