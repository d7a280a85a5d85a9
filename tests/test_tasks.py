from sqlalchemy.orm import Session, sessionmaker

from promotions.models.discount import Discount
from promotions.tasks import discount_tasks
from tests.factories import add_discount_adjustment, create_discount, create_order


def test_record_discount_usage_task(db_session: Session, session_factory: sessionmaker, monkeypatch):
    discount = create_discount(db_session)
    order = create_order(db_session)
    add_discount_adjustment(db_session, order, discount)
    discount_id, order_id = discount.id, order.id
    monkeypatch.setattr(discount_tasks, "SessionLocal", session_factory)

    result = discount_tasks.record_discount_usage.apply(args=[order_id])

    assert result.successful()
    assert result.result == [discount_id]
    db_session.expire_all()
    assert db_session.query(Discount.total_discount_uses).filter(Discount.id == discount_id).scalar() == 1


def test_record_discount_usage_ignores_missing_order(session_factory: sessionmaker, monkeypatch):
    monkeypatch.setattr(discount_tasks, "SessionLocal", session_factory)

    result = discount_tasks.record_discount_usage.apply(args=[12345])

    assert result.successful()
    assert result.result == []
