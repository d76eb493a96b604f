from typing import Annotated

from fastapi import Depends

from cedar.core.database import DbSessionDep

from ..domain.repositories import AbstractOrderRepository
from ..infrastructure.persistence import SQLAlchemyOrderRepository


def get_order_repository(session: DbSessionDep) -> AbstractOrderRepository:
    return SQLAlchemyOrderRepository(session)


OrderRepositoryDep = Annotated[AbstractOrderRepository, Depends(get_order_repository)]
