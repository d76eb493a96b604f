from decimal import Decimal

from pydantic_settings import BaseSettings


class QuoteSettings(BaseSettings):
    """Quote workflow settings, read from environment variables prefixed with QUOTE_."""

    VALID_DAYS: int = 30
    GST_RATE: Decimal = Decimal("0.18")
    CURRENCY: str = "INR"
    ADMIN_SENDER_NAME: str = "Cedar Team"

    # Pagination for the admin list
    DEFAULT_PAGE_SIZE: int = 20
    MAX_PAGE_SIZE: int = 100

    class Config:
        env_prefix = "QUOTE_"
        extra = "ignore"


settings = QuoteSettings()
