"""
Application settings.
Secrets loaded from AWS Secrets Manager at startup when not provided via env.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # AWS
    AWS_REGION: str = "us-east-1"

    # Database. DATABASE_URL wins over the individual DB_* parts when set.
    DATABASE_URL: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: int = 5432
    DB_NAME: Optional[str] = None
    DB_USER: Optional[str] = None
    DB_PASS: Optional[str] = None

    # Redis (sessions written by the identity provider)
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0

    # Firebase Cloud Messaging. Falls back to application default credentials.
    FIREBASE_CREDENTIALS_PATH: Optional[str] = None

    # Shared secrets for inbound hooks
    REVENUECAT_WEBHOOK_SECRET: Optional[str] = None
    AUTH_EVENTS_SECRET: Optional[str] = None

    # Notification pipeline
    NOTIFICATION_MAX_RETRIES: int = 3
    RETRY_QUEUE_BATCH_SIZE: int = 100

    # Optional
    DEBUG: bool = False
    PROJECT_NAME: str = "Huddle Backend"
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.DB_USER}:{self.DB_PASS}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )

    @property
    def use_firebase_file_credentials(self) -> bool:
        return bool(self.FIREBASE_CREDENTIALS_PATH)

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()

# Load secrets from AWS Secrets Manager only when DB creds aren't already
# provided via environment variables (e.g. in Docker / local dev / tests).
if not settings.DATABASE_URL and not settings.DB_HOST:
    from app.aws.secrets import get_secret

    _db_secret = get_secret("huddle-backend/db", region_name=settings.AWS_REGION)
    settings.DB_HOST = _db_secret["host"]
    settings.DB_PORT = int(_db_secret.get("port", 5432))
    settings.DB_NAME = _db_secret["database"]
    settings.DB_USER = _db_secret["username"]
    settings.DB_PASS = _db_secret["password"]

    _hooks_secret = get_secret("huddle-backend/hooks", region_name=settings.AWS_REGION)
    settings.REVENUECAT_WEBHOOK_SECRET = _hooks_secret.get("revenuecat_webhook_secret")
    settings.AUTH_EVENTS_SECRET = _hooks_secret.get("auth_events_secret")
