from decimal import Decimal

from pydantic_settings import BaseSettings


class CheckoutSettings(BaseSettings):
    """Checkout settings, read from environment variables prefixed with CHECKOUT_."""

    # Individual (non-business) accounts
    MAX_ORDER_VALUE: Decimal = Decimal("50000")
    MAX_QUANTITY_PER_ITEM: int = 10

    class Config:
        env_prefix = "CHECKOUT_"
        extra = "ignore"


settings = CheckoutSettings()
