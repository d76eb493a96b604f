"""Checkout eligibility rules.

Every function here is pure: identity and order data come in as arguments,
nothing is read from the request or the database.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence, Union

from cedar.core.utils import format_inr
from cedar.identity.domain.entities import IdentitySnapshot, VerificationStatus

from .entities import (
    CheckoutLine,
    CheckoutPermission,
    CheckoutStep,
    DeliveryAddress,
    LimitValidation,
    OrderLimits,
    PaymentMethod,
    PermissionPolicy,
    PickupLocation,
    ShippingMethod,
    ShippingSelection,
)
from .exceptions import CheckoutValidationError, NoPickupLocationsError

ALL_SHIPPING_METHODS = [ShippingMethod.DOORSTEP, ShippingMethod.PICKUP]
COD_ONLY = [PaymentMethod.COD]

POLICIES: Dict[CheckoutPermission, PermissionPolicy] = {
    CheckoutPermission.FULL_CHECKOUT: PermissionPolicy(
        permission=CheckoutPermission.FULL_CHECKOUT,
        can_place_order=True,
        can_see_prices=True,
        payment_methods=COD_ONLY,
        shipping_methods=ALL_SHIPPING_METHODS,
    ),
    CheckoutPermission.INDIVIDUAL_CHECKOUT: PermissionPolicy(
        permission=CheckoutPermission.INDIVIDUAL_CHECKOUT,
        can_place_order=True,
        can_see_prices=True,
        payment_methods=COD_ONLY,
        shipping_methods=ALL_SHIPPING_METHODS,
    ),
    CheckoutPermission.BLOCKED_VERIFY: PermissionPolicy(
        permission=CheckoutPermission.BLOCKED_VERIFY,
        can_place_order=False,
        can_see_prices=False,
    ),
    CheckoutPermission.BLOCKED_SIGNIN: PermissionPolicy(
        permission=CheckoutPermission.BLOCKED_SIGNIN,
        can_place_order=False,
        can_see_prices=False,
    ),
}

REQUIRED_ADDRESS_FIELDS = ("name", "phone", "address_line1", "city", "state", "pincode")


# --- Permission ---


def resolve_permission(
    is_signed_in: bool,
    business_profile_exists: bool,
    verification_status: Optional[Union[VerificationStatus, str]],
) -> CheckoutPermission:
    if not is_signed_in:
        return CheckoutPermission.BLOCKED_SIGNIN
    if not business_profile_exists:
        return CheckoutPermission.INDIVIDUAL_CHECKOUT
    if verification_status != VerificationStatus.VERIFIED:
        return CheckoutPermission.BLOCKED_VERIFY
    return CheckoutPermission.FULL_CHECKOUT


def permission_for(identity: IdentitySnapshot) -> CheckoutPermission:
    return resolve_permission(
        identity.is_signed_in,
        identity.business_profile_exists,
        identity.verification_status,
    )


def permission_policy(permission: CheckoutPermission) -> PermissionPolicy:
    return POLICIES[permission]


def ensure_can_place_order(permission: CheckoutPermission) -> None:
    if permission == CheckoutPermission.BLOCKED_SIGNIN:
        raise CheckoutValidationError("Please sign in to place an order", step=CheckoutStep.SIGNIN)
    if permission == CheckoutPermission.BLOCKED_VERIFY:
        raise CheckoutValidationError(
            "Business verification is required before placing orders",
            step=CheckoutStep.VERIFICATION,
        )


# --- Individual limits ---


def validate_individual_order(
    permission: CheckoutPermission,
    items: Iterable[CheckoutLine],
    total: Decimal,
    limits: OrderLimits,
) -> LimitValidation:
    """Collects one message per breached limit. Limits only exist for individual checkout."""
    if permission != CheckoutPermission.INDIVIDUAL_CHECKOUT:
        return LimitValidation(violations=[], can_proceed=True)

    violations: List[str] = []
    if total > limits.max_order_value:
        violations.append(
            f"Order value {format_inr(total)} exceeds the individual limit of {format_inr(limits.max_order_value)}"
        )
    for item in items:
        if item.quantity > limits.max_quantity_per_item:
            violations.append(
                f"Quantity {item.quantity} of {item.product_name} exceeds the individual limit "
                f"of {limits.max_quantity_per_item} per item"
            )
    return LimitValidation(violations=violations, can_proceed=not violations)


# --- Shipping ---


def missing_address_fields(address: Optional[DeliveryAddress]) -> List[str]:
    if address is None:
        return list(REQUIRED_ADDRESS_FIELDS)
    return [name for name in REQUIRED_ADDRESS_FIELDS if not (getattr(address, name) or "").strip()]


def validate_shipping(selection: Optional[ShippingSelection], active_locations: Sequence[PickupLocation]) -> None:
    if selection is None or selection.method is None:
        raise CheckoutValidationError("Please choose a shipping method", step=CheckoutStep.SHIPPING_METHOD)

    if selection.method == ShippingMethod.DOORSTEP:
        missing = missing_address_fields(selection.address)
        if missing:
            raise CheckoutValidationError(
                f"Delivery address is incomplete: missing {', '.join(missing)}",
                step=CheckoutStep.ADDRESS,
            )
        return

    if not active_locations:
        raise NoPickupLocationsError()
    if selection.pickup_location_id is None:
        raise CheckoutValidationError("Please select a pickup location", step=CheckoutStep.PICKUP_LOCATION)
    if not any(location.id == selection.pickup_location_id for location in active_locations):
        raise CheckoutValidationError(
            "The selected pickup location is not available",
            step=CheckoutStep.PICKUP_LOCATION,
        )


# --- Placement ---


def check_placement_preconditions(
    permission: CheckoutPermission,
    items: Sequence[CheckoutLine],
    shipping: Optional[ShippingSelection],
    payment_method: Optional[Union[PaymentMethod, str]],
    active_locations: Sequence[PickupLocation],
    limit_validation: LimitValidation,
) -> None:
    """Fails fast on the first unmet precondition, in checkout order."""
    ensure_can_place_order(permission)
    if not items:
        raise CheckoutValidationError("There are no items to order", step=CheckoutStep.ITEMS)
    validate_shipping(shipping, active_locations)
    if payment_method not in permission_policy(permission).payment_methods:
        raise CheckoutValidationError("Only COD payment is supported", step=CheckoutStep.PAYMENT)
    if not limit_validation.can_proceed:
        raise CheckoutValidationError(
            f"Order exceeds individual limits: {', '.join(limit_validation.violations)}",
            step=CheckoutStep.LIMITS,
        )
