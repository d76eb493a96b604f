import logging
from typing import Annotated

from fastapi import Depends

from cedar.checkout.domain.repositories import AbstractPickupLocationRepository
from cedar.checkout.infrastructure.persistence import SQLAlchemyPickupLocationRepository
from cedar.core.database import DbSessionDep
from cedar.notifications.interfaces.dependencies import NotificationServiceDep
from cedar.orders.interfaces.dependencies import OrderRepositoryDep

from ..application.services import QuoteService
from ..domain.repositories import AbstractQuoteRepository
from ..infrastructure.persistence import SQLAlchemyQuoteRepository

logger = logging.getLogger(__name__)

# --- Repositories ---


def get_quote_repository(session: DbSessionDep) -> AbstractQuoteRepository:
    return SQLAlchemyQuoteRepository(session=session)


QuoteRepositoryDep = Annotated[AbstractQuoteRepository, Depends(get_quote_repository)]


def get_pickup_location_repository(session: DbSessionDep) -> AbstractPickupLocationRepository:
    # Conversion validates pickup selections against the active locations
    return SQLAlchemyPickupLocationRepository(session=session)


PickupLocationRepositoryDep = Annotated[AbstractPickupLocationRepository, Depends(get_pickup_location_repository)]

# --- Service ---


def get_quote_service(
    quote_repo: QuoteRepositoryDep,
    order_repo: OrderRepositoryDep,
    pickup_repo: PickupLocationRepositoryDep,
    notification_service: NotificationServiceDep,
) -> QuoteService:
    logger.debug("Providing QuoteService")
    return QuoteService(
        quote_repo=quote_repo,
        order_repo=order_repo,
        pickup_repo=pickup_repo,
        notification_service=notification_service,
    )


QuoteServiceDep = Annotated[QuoteService, Depends(get_quote_service)]
