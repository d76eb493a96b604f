import logging
from typing import Awaitable, Dict, TypeVar

from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from cedar.core.config import settings
from cedar.core.exceptions import CollaboratorFailure, DomainException
from cedar.core.schemas import ActionResult

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATUS_BY_ERROR_CODE: Dict[str, int] = {
    "validation_error": status.HTTP_422_UNPROCESSABLE_ENTITY,
    "invalid_transition": status.HTTP_409_CONFLICT,
    "conflict": status.HTTP_409_CONFLICT,
    "not_found": status.HTTP_404_NOT_FOUND,
    "forbidden": status.HTTP_403_FORBIDDEN,
    "collaborator_failure": status.HTTP_503_SERVICE_UNAVAILABLE,
}


async def to_result(operation: Awaitable[T], action: str) -> ActionResult[T]:
    """Awaits a service call and folds its outcome into an ActionResult."""
    try:
        data = await operation
        return ActionResult(success=True, data=data)
    except CollaboratorFailure as e:
        logger.error(f"[{action}] Collaborator failure: {e}", exc_info=True)
        return ActionResult(success=False, error=settings.COLLABORATOR_ERROR_MSG, error_code=e.error_code)
    except SQLAlchemyError as e:
        logger.error(f"[{action}] Storage error: {e}", exc_info=True)
        return ActionResult(
            success=False,
            error=settings.COLLABORATOR_ERROR_MSG,
            error_code=CollaboratorFailure.error_code,
        )
    except DomainException as e:
        logger.warning(f"[{action}] Rejected: {e.message}")
        return ActionResult(success=False, error=e.message, error_code=e.error_code, field=e.field)


def as_response(result: ActionResult, success_status: int = status.HTTP_200_OK) -> JSONResponse:
    """Maps an ActionResult onto an HTTP response, keeping the envelope as the body."""
    if result.success:
        status_code = success_status
    else:
        status_code = STATUS_BY_ERROR_CODE.get(result.error_code or "", status.HTTP_400_BAD_REQUEST)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(result))
