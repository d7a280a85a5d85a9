from sqlalchemy.orm import Session

from promotions.models.discount import CategoryRelationshipType
from promotions.services.category_relations import CategoryRelationResolver
from promotions.services.discount_cache import DiscountCache
from promotions.services.discount_service import DiscountService
from promotions.services.events import EVENT_DISCOUNT_MATCHES_LINE_ITEM, DiscountEvents
from tests.factories import (
    create_category,
    create_discount,
    create_order,
    create_purchasable,
    relate_category,
)


class CountingResolver(CategoryRelationResolver):
    def __init__(self):
        self.calls = 0

    def related_category_ids(self, db, relationship_type, source_id):
        self.calls += 1
        return super().related_category_ids(db, relationship_type, source_id)


def test_non_promotable_purchasable_never_matches(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session, is_promotable=False)
    discount = create_discount(db_session)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])

    assert service.match_line_item(db_session, order.line_items[0], discount) is False


def test_on_sale_items_excluded_when_configured(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    excluding = create_discount(db_session, exclude_on_sale=True)
    including = create_discount(db_session, exclude_on_sale=False)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)], sale_prices=[8.0])
    line_item = order.line_items[0]

    assert line_item.on_sale
    assert service.match_line_item(db_session, line_item, excluding) is False
    assert service.match_line_item(db_session, line_item, including) is True


def test_purchasable_scope(db_session: Session, service: DiscountService):
    listed = create_purchasable(db_session)
    other = create_purchasable(db_session)
    discount = create_discount(db_session, all_purchasables=False, purchasable_ids=[listed.id])
    order = create_order(db_session, items=[(listed, 1, 10.0), (other, 1, 10.0)])

    assert service.match_line_item(db_session, order.line_items[0], discount) is True
    assert service.match_line_item(db_session, order.line_items[1], discount) is False


def test_category_scope_follows_relationship_direction(db_session: Session):
    category = create_category(db_session)
    source_side = create_purchasable(db_session, product_id=100)
    target_side = create_purchasable(db_session, product_id=200)
    relate_category(db_session, category, element_id=100, element_is_source=True)
    relate_category(db_session, category, element_id=200, element_is_source=False)
    order = create_order(db_session, items=[(source_side, 1, 10.0), (target_side, 1, 10.0)])

    def matches(relationship_type):
        discount = create_discount(
            db_session,
            all_categories=False,
            category_ids=[category.id],
            category_relationship_type=relationship_type,
        )
        service = DiscountService()
        return [service.match_line_item(db_session, item, discount) for item in order.line_items]

    assert matches(CategoryRelationshipType.SOURCE) == [True, False]
    assert matches(CategoryRelationshipType.TARGET) == [False, True]
    assert matches(CategoryRelationshipType.BOTH) == [True, True]


def test_category_lookups_are_memoized(db_session: Session):
    category = create_category(db_session)
    purchasable = create_purchasable(db_session)
    relate_category(db_session, category, element_id=purchasable.id)
    discount = create_discount(db_session, all_categories=False, category_ids=[category.id])
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])

    resolver = CountingResolver()
    service = DiscountService(cache=DiscountCache(), events=DiscountEvents(), category_resolver=resolver)

    results = [service.match_line_item(db_session, order.line_items[0], discount) for _ in range(3)]

    assert results == [True, True, True]
    assert resolver.calls == 1

    service.cache.clear()
    service.match_line_item(db_session, order.line_items[0], discount)
    assert resolver.calls == 2


def test_observer_can_veto_line_item(db_session: Session, service: DiscountService, events: DiscountEvents):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])
    seen = []

    def veto(event):
        seen.append(event.line_item.id)
        event.invalidate()

    events.on(EVENT_DISCOUNT_MATCHES_LINE_ITEM, veto)

    assert service.match_line_item(db_session, order.line_items[0], discount) is False
    assert seen == [order.line_items[0].id]


def test_match_order_flag_requires_whole_order(db_session: Session, service: DiscountService):
    purchasable = create_purchasable(db_session)
    discount = create_discount(db_session, purchase_total=100)
    order = create_order(db_session, items=[(purchasable, 1, 10.0)])
    line_item = order.line_items[0]

    assert service.match_line_item(db_session, line_item, discount) is True
    assert service.match_line_item(db_session, line_item, discount, match_order=True) is False
