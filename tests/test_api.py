from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from promotions.main import app
from promotions.models.discount import Discount
from promotions.models.order import Order
from promotions.services.discount_service import DiscountService
from promotions.services.events import EVENT_DISCOUNT_MATCHES_ORDER, discount_events
from tests.factories import (
    add_discount_adjustment,
    create_customer,
    create_discount,
    create_order,
    create_purchasable,
)

API = "/api/v1"


def _discount_payload(**overrides):
    payload = {
        "name": "Ten off",
        "all_purchasables": True,
        "all_categories": True,
        "per_item_discount": 1,
        "coupons": [{"code": "TENOFF", "max_uses": 5}],
    }
    payload.update(overrides)
    return payload


def test_create_and_fetch_discount(client: TestClient):
    response = client.post(f"{API}/discounts/", json=_discount_payload())

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    discount_id = body["data"]["id"]
    assert body["data"]["coupons"][0]["code"] == "TENOFF"

    fetched = client.get(f"{API}/discounts/{discount_id}").json()
    assert fetched["data"]["name"] == "Ten off"
    assert fetched["data"]["applied_to"] == "matchingLineItems"

    listed = client.get(f"{API}/discounts/").json()
    assert [d["id"] for d in listed["data"]] == [discount_id]


def test_validation_errors_use_error_envelope(client: TestClient):
    response = client.post(f"{API}/discounts/", json=_discount_payload(name="", percent_discount=120))

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Discount not saved due to validation error."
    assert set(body["errors"]) == {"name", "percent_discount"}


def test_missing_discount_returns_404(client: TestClient):
    assert client.get(f"{API}/discounts/999").status_code == 404
    assert client.delete(f"{API}/discounts/999").status_code == 404

    response = client.put(f"{API}/discounts/999", json=_discount_payload())
    assert response.status_code == 404
    assert response.json()["success"] is False


def test_update_reorder_and_delete(client: TestClient, db_session: Session):
    first = create_discount(db_session, name="First")
    second = create_discount(db_session, name="Second")

    updated = client.put(f"{API}/discounts/{first.id}", json=_discount_payload(name="First v2", coupons=[]))
    assert updated.status_code == 200
    assert updated.json()["data"]["name"] == "First v2"

    assert client.post(f"{API}/discounts/reorder", json={"ids": [second.id, first.id]}).status_code == 200
    names = [d["name"] for d in client.get(f"{API}/discounts/").json()["data"]]
    assert names == ["Second", "First v2"]

    assert client.delete(f"{API}/discounts/{second.id}").status_code == 200
    assert client.get(f"{API}/discounts/{second.id}").status_code == 404


def test_generate_coupon_codes(client: TestClient):
    response = client.post(f"{API}/discounts/coupons/generate", json={"format": "VIP-###", "count": 3})

    assert response.status_code == 200
    codes = response.json()["data"]["codes"]
    assert len(codes) == 3
    assert all(code.startswith("VIP-") for code in codes)

    bad = client.post(f"{API}/discounts/coupons/generate", json={"format": "VIP", "count": 1})
    assert bad.status_code == 400


def test_coupon_check(client: TestClient, db_session: Session):
    create_discount(db_session, coupons=["SAVE10"], per_email_limit=1)
    valid = create_order(db_session, coupon_code="save10")
    invalid = create_order(db_session, coupon_code="nope")

    ok = client.post(f"{API}/orders/{valid.id}/coupon-check").json()
    assert ok["data"] == {"valid": True, "explanation": None}

    rejected = client.post(f"{API}/orders/{invalid.id}/coupon-check").json()
    assert rejected["data"] == {"valid": False, "explanation": "Coupon not valid."}

    assert client.post(f"{API}/orders/999/coupon-check").status_code == 404


def test_checkout_flow_records_usage(client: TestClient, db_session: Session):
    purchasable = create_purchasable(db_session)
    customer = create_customer(db_session, email="member@example.com")
    created = client.post(f"{API}/discounts/", json=_discount_payload(per_user_limit=1)).json()["data"]
    order = create_order(
        db_session,
        items=[(purchasable, 2, 10.0)],
        coupon_code="tenoff",
        customer=customer,
        email="member@example.com",
    )

    matching = client.get(f"{API}/orders/{order.id}/discounts").json()["data"]
    assert matching["discount_ids"] == [created["id"]]

    adjusted = client.post(f"{API}/orders/{order.id}/adjust").json()["data"]
    assert [a["amount"] for a in adjusted["adjustments"]] == [-2.0]
    assert adjusted["total_price"] == 18.0

    completed = client.post(f"{API}/orders/{order.id}/complete")
    assert completed.status_code == 200

    usage = client.get(f"{API}/discounts/{created['id']}/usage").json()["data"]
    assert usage == {"total_discount_uses": 1, "customer_uses": 1, "customers": 1, "email_uses": 1, "emails": 1}

    coupon = client.get(f"{API}/discounts/{created['id']}").json()["data"]["coupons"][0]
    assert coupon["uses"] == 1

    again = create_order(db_session, coupon_code="TENOFF", customer=customer, email="member@example.com")
    check = client.post(f"{API}/orders/{again.id}/coupon-check").json()["data"]
    assert check == {"valid": False, "explanation": "This coupon is for registered users and limited to 1 uses."}


def test_clear_usage_endpoints(client: TestClient, db_session: Session):
    discount = create_discount(db_session, total_discount_uses=4)

    for action in ("clear-uses", "clear-customer-usage", "clear-email-usage"):
        assert client.post(f"{API}/discounts/{discount.id}/{action}").status_code == 200

    usage = client.get(f"{API}/discounts/{discount.id}/usage").json()["data"]
    assert usage["total_discount_uses"] == 0


def test_registered_observers_apply_to_requests(client: TestClient, db_session: Session):
    purchasable = create_purchasable(db_session)
    create_discount(db_session)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])

    discount_events.on(EVENT_DISCOUNT_MATCHES_ORDER, lambda event: event.invalidate())

    matching = client.get(f"{API}/orders/{order.id}/discounts").json()["data"]
    assert matching["discount_ids"] == []


def test_health(client: TestClient):
    assert client.get("/health").json()["status"] == "healthy"
    assert client.get("/health/queue").json()["mode"] == "sync"


def test_create_discount_with_mixed_date_formats(client: TestClient):
    response = client.post(
        f"{API}/discounts/",
        json=_discount_payload(date_from="2024-01-01T00:00:00Z", date_to="2024-01-31T00:00:00"),
    )

    assert response.status_code == 201
    assert response.json()["data"]["date_from"] == "2024-01-01T00:00:00"

    reversed_dates = client.post(
        f"{API}/discounts/",
        json=_discount_payload(
            coupons=[], date_from="2024-02-01T00:00:00", date_to="2024-01-31T23:00:00+02:00"
        ),
    )
    assert reversed_dates.status_code == 400
    assert "date_to" in reversed_dates.json()["errors"]


def test_complete_retry_records_usage_after_failed_counter_update(
    client: TestClient, db_session: Session, monkeypatch
):
    discount = create_discount(db_session)
    order = create_order(db_session)
    add_discount_adjustment(db_session, order, discount)
    discount_id, order_id = discount.id, order.id

    real_increment = DiscountService._increment_use_counter
    calls = {"count": 0}

    def flaky_increment(db, model, **keys):
        calls["count"] += 1
        if calls["count"] == 1:
            raise OperationalError("UPDATE email_discount_uses", {}, Exception("database is locked"))
        real_increment(db, model, **keys)

    monkeypatch.setattr(DiscountService, "_increment_use_counter", staticmethod(flaky_increment))

    with TestClient(app, raise_server_exceptions=False) as failing_client:
        failed = failing_client.post(f"{API}/orders/{order_id}/complete")
    assert failed.status_code == 500

    db_session.expire_all()
    stored = db_session.get(Order, order_id)
    assert stored.is_completed is True
    assert stored.usage_recorded is False

    retried = client.post(f"{API}/orders/{order_id}/complete")
    assert retried.status_code == 200
    assert retried.json()["message"] == "Order completed."

    repeated = client.post(f"{API}/orders/{order_id}/complete")
    assert repeated.json()["message"] == "Order already completed."

    db_session.expire_all()
    assert db_session.get(Discount, discount_id).total_discount_uses == 1
