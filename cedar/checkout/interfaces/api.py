import logging

from fastapi import APIRouter, status

from cedar.core.results import as_response, to_result
from cedar.identity.interfaces.dependencies import CurrentIdentityDep

from ..application import actions
from ..application.schemas import CheckoutContextRequest, IndividualValidationRequest, PlaceOrderRequest
from .dependencies import CheckoutServiceDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/checkout", tags=["Checkout"])

# Every endpoint accepts anonymous callers; the permission class says what they may do.


@router.get("/permission")
async def read_permission(identity: CurrentIdentityDep, service: CheckoutServiceDep):
    return as_response(await actions.resolve_permission(service, identity))


@router.post("/context")
async def read_checkout_context(
    payload: CheckoutContextRequest, identity: CurrentIdentityDep, service: CheckoutServiceDep
):
    result = await actions.build_checkout_context(service, identity, payload.source, payload.quote_id, payload.items)
    return as_response(result)


@router.post("/validate-individual")
async def validate_individual_order(
    payload: IndividualValidationRequest, identity: CurrentIdentityDep, service: CheckoutServiceDep
):
    result = await actions.validate_individual_order(service, identity, payload.items, payload.total)
    return as_response(result)


@router.post("/orders")
async def place_order(payload: PlaceOrderRequest, identity: CurrentIdentityDep, service: CheckoutServiceDep):
    """Places a COD order from the cart or from an approved quote."""
    logger.info(f"[API] place_order by {identity.clerk_user_id or 'guest'} (source={payload.source.value})")
    result = await actions.place_order(service, identity, payload)
    return as_response(result, success_status=status.HTTP_201_CREATED)


@router.get("/pickup-locations")
async def list_pickup_locations(service: CheckoutServiceDep):
    return as_response(await to_result(service.list_pickup_locations(), "list_pickup_locations"))
