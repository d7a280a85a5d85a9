from datetime import datetime
from fastapi import APIRouter, Depends
from sqlalchemy import update
from sqlalchemy.orm import Session
import structlog

from promotions.api.deps import get_discount_service, get_order_or_404
from promotions.core.config import settings
from promotions.db.session import get_db
from promotions.models.order import AdjustmentType, Order
from promotions.schemas.order import (
    AdjustmentResponse,
    CouponCheckResponse,
    MatchingDiscountsResponse,
    OrderTotalsResponse,
)
from promotions.services.discount_adjuster import DiscountAdjuster
from promotions.services.discount_service import DiscountService
from promotions.utils.response import success

router = APIRouter()
logger = structlog.get_logger()


def _totals(order: Order) -> OrderTotalsResponse:
    return OrderTotalsResponse(
        order_id=order.id,
        item_subtotal=order.item_subtotal,
        total_qty=order.total_qty,
        adjustments=[
            AdjustmentResponse.model_validate(a)
            for a in order.get_adjustments_by_type(AdjustmentType.DISCOUNT)
        ],
        total_price=order.total_price,
    )


@router.post("/{order_id}/coupon-check", response_model=dict)
def check_order_coupon(
    order: Order = Depends(get_order_or_404),
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    """Explain whether the coupon code on the order can be used."""
    result = service.order_coupon_available(db, order)
    return success(
        data=CouponCheckResponse(valid=result.valid, explanation=result.explanation),
        message="Coupon is valid." if result.valid else result.explanation,
    )


@router.get("/{order_id}/discounts", response_model=dict)
def get_matching_discounts(
    order: Order = Depends(get_order_or_404),
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    discounts = service.get_matching_discounts(db, order)
    return success(
        data=MatchingDiscountsResponse(order_id=order.id, discount_ids=[d.id for d in discounts]),
        message="Matching discounts retrieved successfully",
    )


@router.post("/{order_id}/adjust", response_model=dict)
def adjust_order(
    order: Order = Depends(get_order_or_404),
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    """Recalculate the discount adjustments of an open order."""
    if order.is_completed:
        return success(data=_totals(order), message="Order is completed; adjustments left unchanged.")

    DiscountAdjuster(service).adjust(db, order)
    db.refresh(order)
    return success(data=_totals(order), message="Order adjusted.")


@router.post("/{order_id}/complete", response_model=dict)
def complete_order(
    order: Order = Depends(get_order_or_404),
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    """
    Mark the order completed and record one use of every discount it carries.

    Repeating the call is safe: an order whose usage was not recorded yet, e.g.
    after a failed counter update, is recorded again; otherwise nothing changes.
    """
    completed_now = db.execute(
        update(Order)
        .where(Order.id == order.id, Order.is_completed.is_(False))
        .values(is_completed=True, date_ordered=datetime.utcnow())
        .execution_options(synchronize_session=False)
    ).rowcount == 1
    db.commit()
    db.refresh(order)

    if not completed_now and order.usage_recorded:
        return success(data=_totals(order), message="Order already completed.")

    if settings.USAGE_COUNTERS_ASYNC:
        from promotions.tasks.discount_tasks import record_discount_usage

        record_discount_usage.delay(order.id)
        logger.info("discount_usage_queued", order_id=order.id)
    else:
        service.order_complete_handler(db, order)

    return success(data=_totals(order), message="Order completed.")
