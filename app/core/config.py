from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    APP_ENV: str = "local"
    APP_NAME: str = "dynamic-requests"
    LOG_LEVEL: str = "INFO"

    ADMIN_JWT_SECRET: str = "change_me_admin"

    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:4173"

    DATABASE_URL: str
    REDIS_URL: str = "redis://localhost:6379/0"

    CELERY_TASK_ALWAYS_EAGER: bool = False

    PUBLIC_SUBMIT_RATE_LIMIT: int = 20
    PUBLIC_SUBMIT_RATE_WINDOW_SECONDS: int = 600

    EMAIL_PROVIDER: str = "dummy"  # dummy | smtp | service
    EMAIL_SERVICE_URL: str = "http://email-service:8010"
    INTERNAL_SERVICE_TOKEN: str = "change_me_internal_service_token"
    SMTP_HOST: str = ""
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_FROM: str = ""
    SMTP_USE_TLS: bool = True
    SMTP_USE_SSL: bool = False
    STATUS_EMAIL_SUBJECT_TEMPLATE: str = "Request #{request_id} update: {status_label}"
    STATUS_EMAIL_TEMPLATE: str = (
        "Your request #{request_id} ({type_name}) has been {status_label}.{notes_block}\n\n"
        "This is an automated message, please do not reply."
    )

    WHATSAPP_PROVIDER: str = "dummy"  # dummy | http
    WHATSAPP_API_URL: str = ""
    WHATSAPP_API_KEY: str = ""
    WHATSAPP_DEFAULT_COUNTRY_CODE: str = "966"
    WHATSAPP_TIMEOUT_SECONDS: float = 15.0

    # Compose/infra vars that may exist in shared .env
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = "postgres"
    POSTGRES_DB: str = "requests"

    @property
    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]

settings = Settings()
