from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # Application settings
    ENVIRONMENT: str = "development"
    SECRET_KEY: str = "change-me-to-a-32-character-secret!!"
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 4000

    # JWT settings (tokens are issued by the auth service, verified here)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 1440  # 24 hours

    # Database settings
    POSTGRES_USER: str = "hkids"
    POSTGRES_PASSWORD: str = "hkids"
    POSTGRES_DB: str = "hkids"
    POSTGRES_HOST: str = "localhost"
    POSTGRES_PORT: int = 5432
    SQL_ECHO: bool = False  # Set to True for SQL query debugging
    SQLALCHEMY_DATABASE_URI: Optional[str] = None

    # Reading policy defaults
    DEFAULT_DAILY_LIMIT_MINUTES: int = 20
    MIN_DAILY_LIMIT_MINUTES: int = 1
    MAX_DAILY_LIMIT_MINUTES: int = 600

    # Wall clock used by the schedule window; None means server local time
    SCHEDULE_TIMEZONE: Optional[str] = None

    FRONTEND_URL: str = "http://localhost:5173"
    CORS_ORIGINS: List[str] = ["http://localhost:5173"]

    @property
    def DATABASE_URL(self) -> str:
        if self.SQLALCHEMY_DATABASE_URI:
            return self.SQLALCHEMY_DATABASE_URI
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    class Config:
        env_file = ".env"
        case_sensitive = True

settings = Settings()
