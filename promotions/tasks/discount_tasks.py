# promotions/tasks/discount_tasks.py

from celery import shared_task
from celery.utils.log import get_task_logger

from promotions.db.session import SessionLocal
from promotions.models.order import Order
from promotions.services.discount_service import DiscountService

logger = get_task_logger(__name__)


@shared_task(bind=True, max_retries=3)
def record_discount_usage(self, order_id: int):
    """
    Update discount usage counters for a completed order.
    Queued by the order completion endpoint when USAGE_COUNTERS_ASYNC is set.
    """
    db = SessionLocal()
    try:
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order:
            logger.warning("record_discount_usage: order %s not found", order_id)
            return []
        return DiscountService().order_complete_handler(db, order)
    except Exception as exc:
        raise self.retry(exc=exc, countdown=60)
    finally:
        db.close()
