import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio

API = "/api/v1"


async def submit(test_client: AsyncClient, headers=None, **body):
    payload = {
        "items": [
            {"product_name": "Door panel", "product_sku": "DP-100", "quantity": 2},
            {"product_name": "Control board", "quantity": 1},
        ],
        **body,
    }
    response = await test_client.post(f"{API}/quotes", json=payload, headers=headers or {})
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def price_and_approve(test_client: AsyncClient, quote: dict, admin_headers: dict) -> dict:
    base = f"{API}/admin/quotes/{quote['id']}"
    response = await test_client.post(f"{base}/start-review", headers=admin_headers)
    assert response.status_code == 200, response.text

    first, second = quote["items"]
    response = await test_client.put(
        f"{base}/pricing",
        json={
            "items": [
                {"id": first["id"], "unit_price": "1000", "discount_percentage": "10"},
                {"id": second["id"], "unit_price": "500"},
            ],
            "tax_enabled": True,
        },
        headers=admin_headers,
    )
    assert response.status_code == 200, response.text

    response = await test_client.post(f"{base}/approve", json={}, headers=admin_headers)
    assert response.status_code == 200, response.text
    return response.json()["data"]


async def test_guest_needs_email(test_client: AsyncClient):
    response = await test_client.post(
        f"{API}/quotes", json={"items": [{"product_name": "Door panel", "quantity": 1}]}
    )

    assert response.status_code == 422
    body = response.json()
    assert body["success"] is False
    assert body["field"] == "customer_email"


async def test_guest_submission(test_client: AsyncClient):
    quote = await submit(test_client, customer_email="guest@example.com", customer_name="Guest")

    assert quote["status"] == "pending"
    assert quote["user_type"] == "guest"
    assert quote["quote_number"].startswith("QT-")


async def test_admin_routes_need_admin_role(test_client: AsyncClient, individual_headers):
    response = await test_client.get(f"{API}/admin/quotes", headers=individual_headers)
    assert response.status_code == 403

    response = await test_client.get(f"{API}/admin/quotes")
    assert response.status_code == 401


async def test_invalid_token_is_rejected(test_client: AsyncClient):
    response = await test_client.get(f"{API}/checkout/permission", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401


async def test_full_quote_workflow(test_client: AsyncClient, verified_headers, admin_headers, email_sender, doorstep_shipping):
    quote = await submit(test_client, verified_headers, notes="Need delivery to Pune")
    assert quote["user_type"] == "verified"

    approved = await price_and_approve(test_client, quote, admin_headers)
    assert approved["status"] == "approved"
    assert float(approved["estimated_total"]) == 2714
    assert approved["valid_until"] is not None
    assert approved["admin_notes"] == "Quote approved with total ₹2,714"

    assert [mail["recipient_email"] for mail in email_sender.sent] == ["buyer@liftsystems.in"]
    assert "approved" in email_sender.sent[0]["subject"]

    response = await test_client.post(
        f"{API}/admin/quotes/{quote['id']}/convert",
        json={"shipping": doorstep_shipping, "payment_method": "cod"},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    conversion = response.json()["data"]
    assert conversion["quote"]["status"] == "converted"
    assert conversion["order"]["order_number"].startswith("ORD-")
    assert conversion["quote"]["converted_order_id"] == conversion["order"]["id"]

    response = await test_client.get(f"{API}/admin/quotes/{quote['id']}/audit", headers=admin_headers)
    actions = [entry["action_type"] for entry in response.json()["data"]]
    assert actions == ["converted", "approved", "pricing_updated", "status_changed", "created"]

    # A converted quote accepts no further transition
    response = await test_client.post(
        f"{API}/admin/quotes/{quote['id']}/reject", json={"reason": "late"}, headers=admin_headers
    )
    assert response.status_code == 409


async def test_approval_blocked_without_prices(test_client: AsyncClient, verified_headers, admin_headers):
    quote = await submit(test_client, verified_headers)
    base = f"{API}/admin/quotes/{quote['id']}"
    await test_client.post(f"{base}/start-review", headers=admin_headers)

    response = await test_client.post(f"{base}/approve", headers=admin_headers)

    assert response.status_code == 422
    assert response.json()["error"] == "All items must have pricing before approval"
    detail = await test_client.get(base, headers=admin_headers)
    assert detail.json()["data"]["status"] == "reviewing"


async def test_stale_version_returns_conflict(test_client: AsyncClient, verified_headers, admin_headers):
    quote = await submit(test_client, verified_headers)
    base = f"{API}/admin/quotes/{quote['id']}"

    first = await test_client.post(f"{base}/start-review", json={"expected_version": 1}, headers=admin_headers)
    assert first.status_code == 200
    second = await test_client.patch(
        f"{base}/priority", json={"priority": "high", "expected_version": 1}, headers=admin_headers
    )

    assert second.status_code == 409
    assert second.json()["error_code"] == "conflict"


async def test_pricing_draft_does_not_save(test_client: AsyncClient, verified_headers, admin_headers):
    quote = await submit(test_client, verified_headers)
    item_id = quote["items"][0]["id"]
    base = f"{API}/admin/quotes/{quote['id']}"

    response = await test_client.post(
        f"{base}/items/{item_id}/pricing", json={"field": "unit_price", "value": 1000}, headers=admin_headers
    )

    assert response.status_code == 200, response.text
    draft = response.json()["data"]
    assert draft["stale"] is True
    detail = await test_client.get(base, headers=admin_headers)
    assert detail.json()["data"]["version"] == 1

    invalid = await test_client.post(
        f"{base}/items/{item_id}/pricing", json={"field": "discount_percentage", "value": 120}, headers=admin_headers
    )
    assert invalid.status_code == 422


async def test_customer_view_hides_internal_notes(test_client: AsyncClient, verified_headers, admin_headers, individual_headers):
    quote = await submit(test_client, verified_headers)
    base = f"{API}/admin/quotes/{quote['id']}"
    await test_client.post(f"{base}/messages", json={"message": "Check margin", "is_internal": True}, headers=admin_headers)
    await test_client.post(f"{base}/messages", json={"message": "Prices by Monday"}, headers=admin_headers)
    reply = await test_client.post(
        f"{API}/quotes/{quote['id']}/messages", json={"message": "Thanks!"}, headers=verified_headers
    )
    assert reply.status_code == 201

    response = await test_client.get(f"{API}/quotes/{quote['id']}", headers=verified_headers)

    messages = [m["message"] for m in response.json()["data"]["messages"]]
    assert messages == ["Prices by Monday", "Thanks!"]
    assert "admin_notes" not in response.json()["data"]

    other = await test_client.get(f"{API}/quotes/{quote['id']}", headers=individual_headers)
    assert other.status_code == 403


async def test_individual_quote_cannot_be_converted(test_client: AsyncClient, individual_headers, admin_headers, doorstep_shipping):
    quote = await submit(test_client, individual_headers)
    approved = await price_and_approve(test_client, quote, admin_headers)

    response = await test_client.post(
        f"{API}/admin/quotes/{quote['id']}/convert", json={"shipping": doorstep_shipping}, headers=admin_headers
    )

    assert response.status_code == 422
    assert response.json()["error"] == "Only verified business accounts can convert quotes to orders"
    detail = await test_client.get(f"{API}/admin/quotes/{quote['id']}", headers=admin_headers)
    assert detail.json()["data"]["status"] == approved["status"] == "approved"


async def test_list_filters_by_status(test_client: AsyncClient, verified_headers, admin_headers):
    first = await submit(test_client, verified_headers)
    await submit(test_client, verified_headers)
    await test_client.post(f"{API}/admin/quotes/{first['id']}/start-review", headers=admin_headers)

    response = await test_client.get(f"{API}/admin/quotes", params={"status": "pending"}, headers=admin_headers)

    data = response.json()["data"]
    assert data["total"] == 1
    assert data["items"][0]["status"] == "pending"


async def test_expiry_check_skips_valid_quotes(test_client: AsyncClient, verified_headers, admin_headers, email_sender):
    quote = await submit(test_client, verified_headers)
    await price_and_approve(test_client, quote, admin_headers)

    response = await test_client.post(f"{API}/admin/quotes/expire-check", headers=admin_headers)

    assert response.status_code == 200, response.text
    assert response.json()["data"] == {"notified_quote_ids": []}
    assert len(email_sender.sent) == 1


async def test_approval_survives_email_provider_crash(test_client: AsyncClient, verified_headers, admin_headers, email_sender):
    email_sender.error = RuntimeError("connection reset by peer")
    quote = await submit(test_client, verified_headers)

    approved = await price_and_approve(test_client, quote, admin_headers)

    assert approved["status"] == "approved"
    assert email_sender.sent == []
