from datetime import datetime, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from cedar.checkout.application import actions
from cedar.checkout.application.schemas import PlaceOrderRequest
from cedar.checkout.application.services import CheckoutService
from cedar.checkout.config import CheckoutSettings
from cedar.checkout.domain.entities import (
    CheckoutLine,
    CheckoutPermission,
    CheckoutSource,
    DeliveryAddress,
    PickupLocation,
    ShippingMethod,
    ShippingSelection,
)
from cedar.core.utils import utcnow
from cedar.identity.domain.entities import IdentitySnapshot, VerificationStatus
from cedar.notifications.domain.entities import NotificationKind
from cedar.orders.domain.entities import Order, OrderItem
from cedar.quotes.application.services import QuoteService
from cedar.quotes.domain.entities import Quote, QuoteItem, QuoteStatus, QuoteUserType

pytestmark = pytest.mark.asyncio

NOW = datetime(2026, 3, 2, 9, 30)


def placed_order(new_order, commit: bool = True) -> Order:
    data = new_order.model_dump(exclude={"items"})
    items = [OrderItem(id=index, order_id=3, **item.model_dump()) for index, item in enumerate(new_order.items, 1)]
    return Order(id=3, order_number="ORD-000003", created_at=NOW, updated_at=NOW, items=items, **data)


def approved_quote(user_type: QuoteUserType = QuoteUserType.VERIFIED) -> Quote:
    return Quote(
        id=1,
        quote_number="QT-20260301-ABC123",
        status=QuoteStatus.APPROVED,
        user_type=user_type,
        clerk_user_id="user_verified",
        customer_email="buyer@liftsystems.in",
        subtotal=Decimal("2000"),
        discount_total=Decimal("200"),
        tax_total=Decimal("324"),
        estimated_total=Decimal("2124"),
        valid_until=utcnow() + timedelta(days=10),
        version=4,
        created_at=NOW,
        updated_at=NOW,
        items=[
            QuoteItem(
                id=11,
                quote_id=1,
                product_name="Door panel",
                quantity=2,
                unit_price=Decimal("1000"),
                discount_percentage=Decimal("10"),
                total_price=Decimal("1800"),
            )
        ],
    )


async def converted(quote_id, expected_version, place_order, converted_at, audit):
    order = await place_order()
    quote = approved_quote().model_copy(update={"status": QuoteStatus.CONVERTED, "converted_order_id": order.id})
    return quote, order


@pytest.fixture
def quote_repo():
    repo = AsyncMock()
    repo.convert.side_effect = converted
    return repo


@pytest.fixture
def order_repo():
    repo = AsyncMock()
    repo.create_order.side_effect = placed_order
    return repo


@pytest.fixture
def pickup_repo():
    repo = AsyncMock()
    repo.list_active.return_value = [PickupLocation(id=1, name="Cedar Store", address="Naroda", city="Ahmedabad")]
    return repo


@pytest.fixture
def notification_service():
    service = AsyncMock()
    service.notify.return_value = True
    return service


@pytest.fixture
def checkout_service(quote_repo, order_repo, pickup_repo, notification_service):
    quote_service = QuoteService(
        quote_repo=quote_repo,
        order_repo=order_repo,
        pickup_repo=pickup_repo,
        notification_service=notification_service,
    )
    return CheckoutService(
        quote_service=quote_service,
        order_repo=order_repo,
        pickup_repo=pickup_repo,
        notification_service=notification_service,
        settings=CheckoutSettings(MAX_ORDER_VALUE=Decimal("50000"), MAX_QUANTITY_PER_ITEM=10),
    )


@pytest.fixture
def doorstep():
    return ShippingSelection(
        method=ShippingMethod.DOORSTEP,
        address=DeliveryAddress(
            name="Ravi Kumar",
            phone="9876543210",
            address_line1="22 MG Road",
            city="Bengaluru",
            state="Karnataka",
            pincode="560001",
        ),
    )


def cart(quantity: int = 2, unit_price: str = "1000"):
    return [CheckoutLine(product_name="Door panel", product_sku="DP-100", quantity=quantity, unit_price=Decimal(unit_price))]


async def test_context_for_signed_out_visitor_hides_prices(checkout_service):
    context = await checkout_service.build_checkout_context(IdentitySnapshot.anonymous(), CheckoutSource.CART, cart_items=cart())

    assert context.permission == CheckoutPermission.BLOCKED_SIGNIN
    assert context.summary is None
    assert context.items[0].unit_price == Decimal("0")
    assert context.can_proceed is False


async def test_context_for_individual_reports_limits(checkout_service, individual_identity):
    context = await checkout_service.build_checkout_context(
        individual_identity, CheckoutSource.CART, cart_items=cart(quantity=12, unit_price="5000")
    )

    assert context.permission == CheckoutPermission.INDIVIDUAL_CHECKOUT
    assert context.limits.max_order_value == Decimal("50000")
    assert context.summary.total == Decimal("70800")
    assert len(context.violations) == 2
    assert context.can_proceed is False
    assert context.pickup_locations[0].id == 1


async def test_context_for_verified_business_has_no_limits(checkout_service, verified_identity):
    context = await checkout_service.build_checkout_context(
        verified_identity, CheckoutSource.CART, cart_items=cart(quantity=200)
    )

    assert context.limits is None
    assert context.violations == []
    assert context.can_proceed is True


async def test_unverified_business_cannot_place_orders(checkout_service, order_repo, doorstep):
    identity = IdentitySnapshot(
        is_signed_in=True,
        clerk_user_id="user_unverified",
        business_profile_exists=True,
        verification_status=VerificationStatus.PENDING,
    )

    result = await actions.place_order(
        checkout_service, identity, PlaceOrderRequest(items=cart(), shipping=doorstep)
    )

    assert result.success is False
    assert result.field == "verification"
    order_repo.create_order.assert_not_called()


async def test_individual_over_limit_is_refused(checkout_service, order_repo, individual_identity, doorstep):
    result = await actions.place_order(
        checkout_service,
        individual_identity,
        PlaceOrderRequest(items=cart(quantity=2, unit_price="30000"), shipping=doorstep),
    )

    assert result.success is False
    assert result.field == "limits"
    assert result.error.startswith("Order exceeds individual limits: ")
    order_repo.create_order.assert_not_called()


async def test_cart_order_is_created_and_confirmed(
    checkout_service, order_repo, notification_service, individual_identity, doorstep
):
    order = await checkout_service.place_order(individual_identity, PlaceOrderRequest(items=cart(), shipping=doorstep))

    new_order = order_repo.create_order.call_args.args[0]
    assert new_order.source == "cart"
    assert new_order.total_amount == Decimal("2360")
    assert new_order.items[0].total_price == Decimal("2000")
    assert order.order_number == "ORD-000003"
    recipient, kind, payload = notification_service.notify.call_args.args
    assert recipient == "ravi@example.com"
    assert kind == NotificationKind.ORDER_CONFIRMATION
    assert payload["order_number"] == "ORD-000003"


async def test_pickup_order_checks_active_locations(checkout_service, order_repo, verified_identity):
    result = await actions.place_order(
        checkout_service,
        verified_identity,
        PlaceOrderRequest(items=cart(), shipping=ShippingSelection(method=ShippingMethod.PICKUP, pickup_location_id=5)),
    )

    assert result.success is False
    assert result.field == "pickup_location"
    order_repo.create_order.assert_not_called()


async def test_quote_checkout_requires_a_quote_id(checkout_service, verified_identity, doorstep):
    result = await actions.place_order(
        checkout_service, verified_identity, PlaceOrderRequest(source=CheckoutSource.QUOTE, shipping=doorstep)
    )

    assert result.field == "quote"


async def test_quote_checkout_uses_locked_pricing(
    checkout_service, quote_repo, order_repo, verified_identity, doorstep
):
    quote = approved_quote()
    quote_repo.get_by_id.return_value = quote

    # Lines sent with the request are ignored for a quote checkout
    order = await checkout_service.place_order(
        verified_identity,
        PlaceOrderRequest(source=CheckoutSource.QUOTE, quote_id=1, items=cart(quantity=99), shipping=doorstep),
    )

    assert order.total_amount == Decimal("2124")
    assert order.quote_id == 1
    assert [item.quantity for item in order.items] == [2]
    assert quote_repo.convert.call_args.args[:2] == (1, 4)
    # The order joins the conversion transaction instead of committing on its own
    assert order_repo.create_order.call_args.kwargs == {"commit": False}


async def test_quote_of_another_customer_is_refused(checkout_service, quote_repo, order_repo, doorstep):
    quote_repo.get_by_id.return_value = approved_quote()
    other = IdentitySnapshot(
        is_signed_in=True,
        clerk_user_id="user_other",
        business_profile_exists=True,
        verification_status=VerificationStatus.VERIFIED,
    )

    result = await actions.place_order(
        checkout_service, other, PlaceOrderRequest(source=CheckoutSource.QUOTE, quote_id=1, shipping=doorstep)
    )

    assert result.error_code == "forbidden"
    order_repo.create_order.assert_not_called()


async def test_unverified_quote_cannot_be_checked_out(checkout_service, quote_repo, order_repo, doorstep):
    quote = approved_quote(user_type=QuoteUserType.BUSINESS)
    quote_repo.get_by_id.return_value = quote
    owner = IdentitySnapshot(
        is_signed_in=True,
        clerk_user_id="user_verified",
        business_profile_exists=True,
        verification_status=VerificationStatus.VERIFIED,
    )

    result = await actions.place_order(
        checkout_service, owner, PlaceOrderRequest(source=CheckoutSource.QUOTE, quote_id=1, shipping=doorstep)
    )

    assert result.success is False
    assert result.error == "Only verified business accounts can convert quotes to orders"
    order_repo.create_order.assert_not_called()


async def test_validate_individual_action(checkout_service, individual_identity):
    result = await actions.validate_individual_order(
        checkout_service, individual_identity, cart(quantity=1), total=Decimal("60000")
    )

    assert result.success is True
    assert result.data.can_proceed is False
    assert "exceeds the individual limit" in result.data.violations[0]
