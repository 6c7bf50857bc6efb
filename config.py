from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    NODE_ENV: str = "development"

    # Either a full DATABASE_URL or the POSTGRES_* parts
    DATABASE_URL: Optional[str] = None
    POSTGRES_USER: Optional[str] = None
    POSTGRES_PASSWORD: Optional[str] = None
    POSTGRES_HOST: Optional[str] = None
    POSTGRES_DATABASE: Optional[str] = None
    POSTGRES_PORT: str = "5432"  # Default port for PostgreSQL
    SQLALCHEMY_TEST_DATABASE_URL: str = "sqlite:///./test.db"
    AUTO_CREATE_TABLES: bool = True

    # Bearer tokens are issued by the external auth provider
    AUTH_JWT_SECRET: str = "your-jwt-secret-here"
    AUTH_JWT_ALGORITHM: str = "HS256"
    AUTH_JWT_AUDIENCE: Optional[str] = None
    AUTH_JWT_ISSUER: Optional[str] = None

    # CORS configuration - comma-separated list of allowed origins
    CORS_ORIGINS: str = "http://localhost:3000,http://localhost:3001,http://localhost:8000"

    CERTIFICATE_BASE_URL: str = "https://certificates.example.com"

    DEFAULT_PAGE_LIMIT: int = 10
    MAX_PAGE_LIMIT: int = 100

    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @property
    def POSTGRES_URL(self) -> Optional[str]:
        if not (self.POSTGRES_USER and self.POSTGRES_HOST and self.POSTGRES_DATABASE):
            return None
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DATABASE}"
        )

    @property
    def database_url(self) -> str:
        """Resolve the connection URL: test database, explicit URL, Postgres parts, local SQLite."""
        if self.NODE_ENV == "test":
            return self.SQLALCHEMY_TEST_DATABASE_URL
        return self.DATABASE_URL or self.POSTGRES_URL or "sqlite:///./marketplace.db"

    model_config = SettingsConfigDict(env_file=".env.development", extra="ignore")


settings = Settings()
