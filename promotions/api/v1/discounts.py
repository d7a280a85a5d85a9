from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from promotions.api.deps import get_discount_service
from promotions.core.exceptions import APIError, DiscountNotFound
from promotions.db.session import get_db
from promotions.models.coupon import Coupon
from promotions.schemas.coupon import GenerateCouponsRequest, GenerateCouponsResponse
from promotions.schemas.discount import (
    DiscountResponse,
    DiscountSave,
    ReorderDiscountsRequest,
    UsageStatsResponse,
)
from promotions.services.coupon_service import CouponService
from promotions.services.discount_service import DiscountService
from promotions.utils.response import success

router = APIRouter()


def _get_discount_or_404(db: Session, service: DiscountService, discount_id: int):
    discount = service.get_discount_by_id(db, discount_id)
    if not discount:
        raise DiscountNotFound(discount_id)
    return discount


@router.get("/", response_model=dict)
def list_discounts(
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    """All discounts in sort order."""
    discounts = service.get_all_discounts(db)
    return success(
        data=[DiscountResponse.model_validate(d) for d in discounts],
        message="Discounts retrieved successfully",
    )


@router.post("/", response_model=dict, status_code=status.HTTP_201_CREATED)
def create_discount(
    data: DiscountSave,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    discount = service.save_discount(db, data)
    return success(data=DiscountResponse.model_validate(discount), message="Discount saved.")


@router.post("/reorder", response_model=dict)
def reorder_discounts(
    data: ReorderDiscountsRequest,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    service.reorder_discounts(db, data.ids)
    return success(message="Discounts reordered.")


@router.post("/coupons/generate", response_model=dict)
def generate_coupons(data: GenerateCouponsRequest, db: Session = Depends(get_db)):
    """Generate unused coupon codes; nothing is saved until a discount is."""
    existing = [row.code for row in db.query(Coupon.code).all()]
    try:
        codes = CouponService.generate_coupon_codes(data.format, data.count, existing)
    except ValueError as e:
        raise APIError(status_code=status.HTTP_400_BAD_REQUEST, message=str(e))
    return success(data=GenerateCouponsResponse(codes=codes), message="Coupon codes generated.")


@router.get("/{discount_id}", response_model=dict)
def get_discount(
    discount_id: int,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    discount = _get_discount_or_404(db, service, discount_id)
    return success(data=DiscountResponse.model_validate(discount), message="Discount retrieved successfully")


@router.put("/{discount_id}", response_model=dict)
def update_discount(
    discount_id: int,
    data: DiscountSave,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    discount = service.save_discount(db, data, discount_id=discount_id)
    return success(data=DiscountResponse.model_validate(discount), message="Discount saved.")


@router.delete("/{discount_id}", response_model=dict)
def delete_discount(
    discount_id: int,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    if not service.delete_discount_by_id(db, discount_id):
        raise DiscountNotFound(discount_id)
    return success(message="Discount deleted.")


@router.post("/{discount_id}/clear-uses", response_model=dict)
def clear_discount_uses(
    discount_id: int,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    _get_discount_or_404(db, service, discount_id)
    service.clear_discount_uses_by_id(db, discount_id)
    return success(message="Discount uses cleared.")


@router.post("/{discount_id}/clear-customer-usage", response_model=dict)
def clear_customer_usage(
    discount_id: int,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    _get_discount_or_404(db, service, discount_id)
    service.clear_customer_usage_history_by_id(db, discount_id)
    return success(message="Customer usage history cleared.")


@router.post("/{discount_id}/clear-email-usage", response_model=dict)
def clear_email_usage(
    discount_id: int,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    _get_discount_or_404(db, service, discount_id)
    service.clear_email_usage_history_by_id(db, discount_id)
    return success(message="Email usage history cleared.")


@router.get("/{discount_id}/usage", response_model=dict)
def get_discount_usage(
    discount_id: int,
    db: Session = Depends(get_db),
    service: DiscountService = Depends(get_discount_service),
):
    discount = _get_discount_or_404(db, service, discount_id)
    customer_stats = service.get_customer_usage_stats_by_id(db, discount_id)
    email_stats = service.get_email_usage_stats_by_id(db, discount_id)
    stats = UsageStatsResponse(
        total_discount_uses=discount.total_discount_uses,
        customer_uses=customer_stats["uses"],
        customers=customer_stats["customers"],
        email_uses=email_stats["uses"],
        emails=email_stats["emails"],
    )
    return success(data=stats, message="Usage retrieved successfully")
