from sqlalchemy.orm import Session

from promotions.services.discount_service import DiscountService
from promotions.services.events import EVENT_DISCOUNT_MATCHES_ORDER, DiscountEvents
from tests.factories import (
    create_address,
    create_customer,
    create_discount,
    create_order,
    create_purchasable,
)


def test_all_items_discount_uses_order_totals(db_session: Session, service: DiscountService):
    first = create_purchasable(db_session)
    second = create_purchasable(db_session)
    discount = create_discount(db_session, purchase_total=100)

    small = create_order(db_session, items=[(first, 1, 50.0)])
    large = create_order(db_session, items=[(first, 1, 50.0), (second, 1, 60.0)])

    assert service.match_order(db_session, small, discount) is False
    assert service.match_order(db_session, large, discount) is True


def test_scoped_discount_counts_only_matching_items(db_session: Session, service: DiscountService):
    p5 = create_purchasable(db_session, purchasable_id=5)
    create_purchasable(db_session, purchasable_id=6)
    p7 = create_purchasable(db_session, purchasable_id=7)
    discount = create_discount(db_session, all_purchasables=False, purchasable_ids=[5, 6], purchase_total=20)

    enough = create_order(db_session, items=[(p7, 1, 100.0), (p5, 1, 30.0)])
    too_little = create_order(db_session, items=[(p7, 1, 100.0), (p5, 1, 10.0)])
    no_match = create_order(db_session, items=[(p7, 1, 100.0)])

    assert service.match_order(db_session, enough, discount) is True
    assert service.match_order(db_session, too_little, discount) is False
    assert service.match_order(db_session, no_match, discount) is False


def test_quantity_thresholds(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, purchase_qty=2, max_purchase_qty=4)

    assert service.match_order(db_session, create_order(db_session, items=[(purchasable, 1, 5.0)]), discount) is False
    assert service.match_order(db_session, create_order(db_session, items=[(purchasable, 3, 5.0)]), discount) is True
    assert service.match_order(db_session, create_order(db_session, items=[(purchasable, 5, 5.0)]), discount) is False


def test_disabled_discount_never_matches(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, enabled=False)
    order = create_order(db_session, items=[(purchasable, 1, 5.0)])

    assert service.match_order(db_session, order, discount) is False


def test_order_condition(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(
        db_session,
        order_condition={"rules": [{"type": "total_qty", "operator": ">=", "value": 2}]},
    )

    assert service.match_order(db_session, create_order(db_session, items=[(purchasable, 1, 5.0)]), discount) is False
    assert service.match_order(db_session, create_order(db_session, items=[(purchasable, 2, 5.0)]), discount) is True


def test_customer_condition_requires_a_customer(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(
        db_session,
        customer_condition={"rules": [{"type": "in_list", "attribute": "customer_group", "values": ["wholesale"]}]},
    )
    items = [(purchasable, 1, 5.0)]

    wholesale = create_order(db_session, items=items, customer=create_customer(db_session, group="wholesale"))
    retail = create_order(db_session, items=items, customer=create_customer(db_session, group="retail"))
    anonymous = create_order(db_session, items=items)

    assert service.match_order(db_session, wholesale, discount) is True
    assert service.match_order(db_session, retail, discount) is False
    assert service.match_order(db_session, anonymous, discount) is False


def test_address_conditions_use_their_own_address(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    us = create_address(db_session, country_code="US")
    ca = create_address(db_session, country_code="CA")
    us_only = {"rules": [{"type": "in_list", "attribute": "country_code", "values": ["US"]}]}
    shipping_discount = create_discount(db_session, shipping_address_condition=us_only)
    billing_discount = create_discount(db_session, billing_address_condition=us_only)
    items = [(purchasable, 1, 5.0)]

    ship_us_bill_ca = create_order(db_session, items=items, shipping_address=us, billing_address=ca)
    ship_ca_bill_us = create_order(db_session, items=items, shipping_address=ca, billing_address=us)
    no_addresses = create_order(db_session, items=items)

    assert service.match_order(db_session, ship_us_bill_ca, shipping_discount) is True
    assert service.match_order(db_session, ship_us_bill_ca, billing_discount) is False
    assert service.match_order(db_session, ship_ca_bill_us, shipping_discount) is False
    assert service.match_order(db_session, ship_ca_bill_us, billing_discount) is True
    assert service.match_order(db_session, no_addresses, shipping_discount) is False
    assert service.match_order(db_session, no_addresses, billing_discount) is False


def test_order_observer_can_only_downgrade(db_session: Session, service: DiscountService, events: DiscountEvents):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session)
    order = create_order(db_session, items=[(purchasable, 1, 5.0)])

    def veto(event):
        event.invalidate()

    def restore(event):
        event.is_valid = True

    events.on(EVENT_DISCOUNT_MATCHES_ORDER, veto)
    events.on(EVENT_DISCOUNT_MATCHES_ORDER, restore)

    assert service.match_order(db_session, order, discount) is False

    events.off(EVENT_DISCOUNT_MATCHES_ORDER, veto)

    assert service.match_order(db_session, order, discount) is True


def test_matching_is_repeatable(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, all_purchasables=False, purchasable_ids=[purchasable.id], purchase_total=15)
    order = create_order(db_session, items=[(purchasable, 2, 10.0)])

    order_results = {service.match_order(db_session, order, discount) for _ in range(3)}
    item_results = {service.match_line_item(db_session, order.line_items[0], discount) for _ in range(3)}

    assert order_results == {True}
    assert item_results == {True}
