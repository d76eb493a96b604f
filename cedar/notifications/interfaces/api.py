import logging
from typing import Optional

from fastapi import APIRouter, Query

from cedar.core.results import as_response, to_result
from cedar.identity.interfaces.dependencies import AdminIdentityDep

from .dependencies import NotificationServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/notifications", tags=["Notifications"])


@router.post("/retry")
async def retry_failed_notifications(
    admin: AdminIdentityDep,
    service: NotificationServiceDep,
    limit: Optional[int] = Query(None, ge=1, le=500),
):
    """Re-sends failed notifications still below the attempt limit."""
    logger.info(f"[API] Notification retry requested by {admin.clerk_user_id}")
    result = await to_result(service.retry_failed(limit), "retry_failed_notifications")
    return as_response(result)
