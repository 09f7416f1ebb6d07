"""Application configuration."""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings."""

    # App
    APP_NAME: str = "EDI_Interchange_Engine"
    ENV: str = "development"
    DEBUG: bool = True
    ALLOWED_ORIGINS: str = "http://localhost:3000,http://localhost:5173"

    # Database
    DATABASE_URL: str
    DATABASE_POOL_SIZE: int = 20
    DATABASE_MAX_OVERFLOW: int = 10

    # Celery
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Interchange envelope identity (our side of ISA06 / GS02)
    EDI_SENDER_ISA_ID: str = "TMSCORE"
    EDI_SENDER_GS_ID: str = "TMSCORE"

    # Control numbers (ISA13 is fixed-width 9 digits)
    EDI_CONTROL_NUMBER_MIN: int = 1
    EDI_CONTROL_NUMBER_MAX: int = 999_999_999

    # Queue
    EDI_QUEUE_BATCH_SIZE: int = 20
    EDI_QUEUE_PROCESS_INTERVAL_SECONDS: float = 60.0

    # Parsing / delivery
    EDI_PARSER_FORMAT: str = "json-kv"
    EDI_DEFAULT_PROTOCOL: str = "FTP"
    EDI_MAILBOX_DIR: str = "./edi_mailboxes"
    # Mailbox host used when a document's partner record is gone
    EDI_DEFAULT_MAILBOX_HOST: str = "unrouted"
    EDI_AS2_TIMEOUT_SECONDS: int = 10
    EDI_PARTNER_ACTIVITY_LIMIT: int = 50

    # Domain event delivery (outbox -> webhook)
    EDI_EVENTS_WEBHOOK_URL: str | None = None
    EDI_EVENTS_MAX_ATTEMPTS: int = 3
    EDI_EVENTS_DISPATCH_INTERVAL_SECONDS: float = 30.0

    class Config:
        env_file = ".env"
        case_sensitive = True

    @property
    def cors_origins(self) -> list[str]:
        """Get CORS origins as list."""
        return [origin.strip() for origin in self.ALLOWED_ORIGINS.split(",")]


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


settings = get_settings()
