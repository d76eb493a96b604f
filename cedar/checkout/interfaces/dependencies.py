import logging
from typing import Annotated

from fastapi import Depends

from cedar.notifications.interfaces.dependencies import NotificationServiceDep
from cedar.orders.interfaces.dependencies import OrderRepositoryDep
from cedar.quotes.interfaces.dependencies import PickupLocationRepositoryDep, QuoteServiceDep

from ..application.services import CheckoutService

logger = logging.getLogger(__name__)


def get_checkout_service(
    quote_service: QuoteServiceDep,
    order_repo: OrderRepositoryDep,
    pickup_repo: PickupLocationRepositoryDep,
    notification_service: NotificationServiceDep,
) -> CheckoutService:
    logger.debug("Providing CheckoutService")
    return CheckoutService(
        quote_service=quote_service,
        order_repo=order_repo,
        pickup_repo=pickup_repo,
        notification_service=notification_service,
    )


CheckoutServiceDep = Annotated[CheckoutService, Depends(get_checkout_service)]
