from fastapi import Depends
from sqlalchemy.orm import Session

from promotions.core.exceptions import OrderNotFound
from promotions.db.session import get_db
from promotions.models.order import Order
from promotions.services.discount_cache import DiscountCache
from promotions.services.discount_service import DiscountService
from promotions.services.events import discount_events


def get_discount_service() -> DiscountService:
    """A fresh service, and so a fresh cache, for every request."""
    return DiscountService(cache=DiscountCache(), events=discount_events)


def get_order_or_404(order_id: int, db: Session = Depends(get_db)) -> Order:
    order = db.query(Order).filter(Order.id == order_id).first()
    if not order:
        raise OrderNotFound()
    return order
