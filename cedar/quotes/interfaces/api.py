import logging
from typing import Optional

from fastapi import APIRouter, Path, Query, status

from cedar.core.results import as_response, to_result
from cedar.identity.interfaces.dependencies import AdminIdentityDep, CurrentIdentityDep, SignedInIdentityDep

from ..application import actions
from ..application.schemas import (
    ApproveQuoteRequest,
    ConvertQuoteRequest,
    ExpiryRunResponse,
    ItemPricingUpdate,
    PriorityUpdate,
    QuoteCreate,
    QuoteMessageCreate,
    RejectQuoteRequest,
    SavePricingRequest,
    VersionedRequest,
)
from ..domain.entities import QuotePriority, QuoteStatus
from .dependencies import QuoteServiceDep

logger = logging.getLogger(__name__)

# --- Customer endpoints ---

router = APIRouter(prefix="/quotes", tags=["Quotes"])


@router.post("")
async def submit_quote(quote_request: QuoteCreate, identity: CurrentIdentityDep, service: QuoteServiceDep):
    """Submits a quote request. Guests must leave an email address."""
    logger.info(f"[API] submit_quote by {identity.clerk_user_id or 'guest'} ({len(quote_request.items)} items)")
    result = await to_result(service.submit_quote(quote_request, identity), "submit_quote")
    return as_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/{quote_id}")
async def read_my_quote(
    identity: SignedInIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    result = await to_result(service.get_customer_quote(quote_id, identity), "get_customer_quote")
    return as_response(result)


@router.post("/{quote_id}/messages")
async def post_customer_message(
    payload: QuoteMessageCreate,
    identity: SignedInIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    # Customers never write internal notes; the flag in the body is ignored
    result = await to_result(
        service.send_customer_message(quote_id, identity, payload.message), "send_customer_message"
    )
    return as_response(result, success_status=status.HTTP_201_CREATED)


# --- Admin endpoints ---

admin_router = APIRouter(prefix="/admin/quotes", tags=["Admin Quotes"])


@admin_router.get("")
async def list_quotes(
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_status: Optional[QuoteStatus] = Query(None, alias="status"),
    priority: Optional[QuotePriority] = Query(None),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
):
    result = await to_result(service.list_quotes(quote_status, priority, limit, offset), "list_quotes")
    return as_response(result)


@admin_router.post("/expire-check")
async def run_expiry_check(admin: AdminIdentityDep, service: QuoteServiceDep):
    """Notifies customers whose approved quotes are past their validity date."""

    async def run() -> ExpiryRunResponse:
        return ExpiryRunResponse(notified_quote_ids=await service.notify_expired_quotes())

    logger.info(f"[API] Expiry check triggered by {admin.clerk_user_id}")
    return as_response(await to_result(run(), "notify_expired_quotes"))


@admin_router.get("/{quote_id}")
async def read_quote(admin: AdminIdentityDep, service: QuoteServiceDep, quote_id: int = Path(..., ge=1)):
    return as_response(await to_result(service.get_quote(quote_id), "get_quote"))


@admin_router.get("/{quote_id}/audit")
async def read_audit_timeline(admin: AdminIdentityDep, service: QuoteServiceDep, quote_id: int = Path(..., ge=1)):
    return as_response(await to_result(service.get_audit_timeline(quote_id), "get_audit_timeline"))


@admin_router.post("/{quote_id}/start-review")
async def start_review(
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
    payload: Optional[VersionedRequest] = None,
):
    payload = payload or VersionedRequest()
    result = await actions.start_review(service, quote_id, admin.clerk_user_id, payload.expected_version)
    return as_response(result)


@admin_router.post("/{quote_id}/approve")
async def approve_quote(
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
    payload: Optional[ApproveQuoteRequest] = None,
):
    payload = payload or ApproveQuoteRequest()
    result = await actions.approve_quote(
        service,
        quote_id,
        admin.clerk_user_id,
        admin_notes=payload.admin_notes,
        valid_days=payload.valid_days,
        expected_version=payload.expected_version,
    )
    return as_response(result)


@admin_router.post("/{quote_id}/reject")
async def reject_quote(
    payload: RejectQuoteRequest,
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    result = await actions.reject_quote(
        service, quote_id, admin.clerk_user_id, payload.reason, payload.expected_version
    )
    return as_response(result)


@admin_router.post("/{quote_id}/convert")
async def convert_quote(
    payload: ConvertQuoteRequest,
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    result = await actions.convert_to_order(
        service,
        quote_id,
        admin.clerk_user_id,
        payload.shipping,
        payload.payment_method,
        payload.expected_version,
    )
    return as_response(result, success_status=status.HTTP_201_CREATED)


@admin_router.post("/{quote_id}/items/{item_id}/pricing")
async def preview_item_pricing(
    payload: ItemPricingUpdate,
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
    item_id: int = Path(..., ge=1),
):
    """Returns the recomputed draft; nothing is saved."""
    result = await actions.update_item_pricing(service, quote_id, item_id, payload.field, payload.value)
    return as_response(result)


@admin_router.put("/{quote_id}/pricing")
async def save_pricing(
    payload: SavePricingRequest,
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    result = await actions.save_pricing(
        service, quote_id, payload.items, payload.tax_enabled, admin.clerk_user_id, payload.expected_version
    )
    return as_response(result)


@admin_router.post("/{quote_id}/messages")
async def send_message(
    payload: QuoteMessageCreate,
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    result = await actions.send_message(
        service, quote_id, payload.message, is_internal=payload.is_internal, actor=admin.clerk_user_id
    )
    return as_response(result, success_status=status.HTTP_201_CREATED)


@admin_router.patch("/{quote_id}/priority")
async def update_priority(
    payload: PriorityUpdate,
    admin: AdminIdentityDep,
    service: QuoteServiceDep,
    quote_id: int = Path(..., ge=1),
):
    result = await actions.update_priority(
        service, quote_id, payload.priority, admin.clerk_user_id, payload.expected_version
    )
    return as_response(result)
