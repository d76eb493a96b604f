from typing import Optional

from pydantic_settings import BaseSettings


class EmailSettings(BaseSettings):
    """Email module settings.

    Read from environment variables prefixed with EMAIL_. Without a Resend API
    key every send fails and the notification stays in the outbox as failed.
    """

    RESEND_API_KEY: Optional[str] = None
    RESEND_API_URL: str = "https://api.resend.com/emails"
    FROM_EMAIL: str = "Cedar Elevators <noreply@cedarelevators.com>"
    TIMEOUT_SECONDS: float = 10.0
    STOREFRONT_URL: str = "https://cedarelevators.com"

    # Outbox retry batch
    RETRY_BATCH_SIZE: int = 50
    MAX_ATTEMPTS: int = 5

    class Config:
        env_prefix = "EMAIL_"
        extra = "ignore"


settings = EmailSettings()
