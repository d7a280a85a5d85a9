import pytest
from sqlalchemy.orm import Session

from promotions.models.discount import AppliedTo, BaseDiscountType, PercentageOffSubject
from promotions.services.discount_adjuster import DiscountAdjuster
from promotions.services.discount_service import DiscountService
from tests.factories import create_discount, create_order, create_purchasable


def _amounts(adjustments):
    return sorted(adjustment.amount for adjustment in adjustments)


def test_per_item_and_percent_discounts(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, name="Bundle", per_item_discount=2, percent_discount=15)
    order = create_order(db_session, items=[(purchasable, 1, 12.5)])

    adjustments = DiscountAdjuster(service).adjust(db_session, order)

    # 2.00 per item + 15% of 12.50, rounded half up
    assert _amounts(adjustments) == [-3.88]
    assert adjustments[0].line_item_id == order.line_items[0].id
    assert adjustments[0].source_snapshot["discountUseId"] == discount.id
    assert order.total_price == pytest.approx(8.62)


def test_base_discount_types(db_session: Session):
    purchasable = create_purchasable(db_session)
    order = create_order(db_session, items=[(purchasable, 2, 20.0)])

    def base_amount(discount_type, base):
        discount = create_discount(db_session, base_discount=base, base_discount_type=discount_type)
        adjustments = DiscountAdjuster(DiscountService()).adjust(db_session, order)
        discount.enabled = False
        db_session.commit()
        return _amounts(adjustments)

    assert base_amount(BaseDiscountType.VALUE, 5) == [-5.0]
    assert base_amount(BaseDiscountType.PERCENT_TOTAL, 10) == [-4.0]
    assert base_amount(BaseDiscountType.VALUE, 100) == [-40.0]


def test_percent_off_discounted_subject(db_session: Session):
    purchasable = create_purchasable(db_session)

    def second_amount(subject):
        order = create_order(db_session, items=[(purchasable, 1, 20.0)])
        first = create_discount(db_session, name="First", per_item_discount=5, sort_order=1)
        second = create_discount(
            db_session, name="Second", percent_discount=50, percentage_off_subject=subject, sort_order=2
        )
        adjustments = DiscountAdjuster(DiscountService()).adjust(db_session, order)
        amounts = [a.amount for a in adjustments if a.source_snapshot["discountUseId"] == second.id]
        first.enabled = second.enabled = False
        db_session.commit()
        return amounts

    assert second_amount(PercentageOffSubject.ORIGINAL) == [-10.0]
    assert second_amount(PercentageOffSubject.DISCOUNTED) == [-7.5]


def test_item_discount_is_capped_at_item_value(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    create_discount(db_session, per_item_discount=50)
    order = create_order(db_session, items=[(purchasable, 1, 20.0)])

    adjustments = DiscountAdjuster(service).adjust(db_session, order)

    assert _amounts(adjustments) == [-20.0]
    assert order.total_price == 0.0


def test_stop_processing_skips_later_discounts(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    first = create_discount(db_session, base_discount=1, stop_processing=True, sort_order=1)
    create_discount(db_session, base_discount=2, sort_order=2)
    order = create_order(db_session, items=[(purchasable, 1, 20.0)])

    adjustments = DiscountAdjuster(service).adjust(db_session, order)

    assert [a.source_snapshot["discountUseId"] for a in adjustments] == [first.id]


def test_applied_to_all_line_items(db_session: Session, service: DiscountService):
    scoped = create_purchasable(db_session)
    other = create_purchasable(db_session)
    create_discount(
        db_session,
        all_purchasables=False,
        purchasable_ids=[scoped.id],
        per_item_discount=1,
        applied_to=AppliedTo.ALL_LINE_ITEMS,
    )
    order = create_order(db_session, items=[(scoped, 1, 10.0), (other, 2, 10.0)])

    adjustments = DiscountAdjuster(service).adjust(db_session, order)

    assert _amounts(adjustments) == [-2.0, -1.0]


def test_free_shipping_discount_is_recorded(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, has_free_shipping_for_order=True)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])

    adjustments = DiscountAdjuster(service).adjust(db_session, order)

    assert len(adjustments) == 1
    assert adjustments[0].amount == 0.0
    assert adjustments[0].source_snapshot["hasFreeShippingForOrder"] is True
    assert adjustments[0].source_snapshot["discountUseId"] == discount.id


def test_adjust_replaces_previous_discount_adjustments(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    create_discount(db_session, base_discount=3)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])

    DiscountAdjuster(service).adjust(db_session, order)
    DiscountAdjuster(DiscountService()).adjust(db_session, order)

    assert [a.amount for a in order.adjustments] == [-3.0]


def test_adjusted_order_feeds_usage_counters(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, per_item_discount=1)
    order = create_order(db_session, items=[(purchasable, 1, 10.0), (purchasable, 2, 10.0)])

    DiscountAdjuster(service).adjust(db_session, order)
    counted = service.order_complete_handler(db_session, order)

    db_session.refresh(discount)
    assert counted == [discount.id]
    assert discount.total_discount_uses == 1
