from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    POSTGRES_HOST: str = "postgres"
    POSTGRES_PORT: int = 5432
    POSTGRES_DB: str = "orderflow"
    POSTGRES_USER: str = "orderflow"
    POSTGRES_PASSWORD: str = "orderflow"
    # Full SQLAlchemy URL; takes precedence over the POSTGRES_* parts
    DATABASE_URL: Optional[str] = None

    JWT_SECRET: str = "change-me"
    JWT_ALG: str = "HS256"
    JWT_EXPIRES_MINUTES: int = 480

    SERVICE_VERSION: str = "1.0.0"
    LOG_LEVEL: str = "INFO"
    RUN_MIGRATIONS: bool = False
    CORS_ORIGINS: list[str] = ["*"]

    DEFAULT_VENDOR_COMMISSION_RATE: float = 10.00
    DEFAULT_PARTNER_COMMISSION_RATE: float = 15.00

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

@lru_cache
def get_settings() -> Settings:
    return Settings()
