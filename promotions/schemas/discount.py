from pydantic import BaseModel, Field, field_validator
from typing import List, Optional
from datetime import datetime, timezone

from promotions.models.discount import (
    AppliedTo,
    BaseDiscountType,
    CategoryRelationshipType,
    PercentageOffSubject,
)
from promotions.schemas.condition import Condition
from promotions.schemas.coupon import CouponInput, CouponResponse


class DiscountSave(BaseModel):
    """Full discount payload, used for both create and update.

    Range and cross-field rules are checked by DiscountService.validate_discount so
    failures are reported per field.
    """
    name: str = ""
    description: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    enabled: bool = True
    stop_processing: bool = False
    ignore_sales: bool = True
    applied_to: AppliedTo = AppliedTo.MATCHING_LINE_ITEMS
    coupon_format: str = "######"

    all_purchasables: bool = False
    all_categories: bool = False
    category_relationship_type: CategoryRelationshipType = CategoryRelationshipType.BOTH
    purchasable_ids: List[int] = Field(default_factory=list)
    category_ids: List[int] = Field(default_factory=list)

    purchase_qty: int = 0
    max_purchase_qty: int = 0
    purchase_total: float = 0.0

    base_discount: float = 0.0
    base_discount_type: BaseDiscountType = BaseDiscountType.VALUE
    per_item_discount: float = 0.0
    percent_discount: float = 0.0
    percentage_off_subject: PercentageOffSubject = PercentageOffSubject.ORIGINAL
    has_free_shipping_for_matching_items: bool = False
    has_free_shipping_for_order: bool = False
    exclude_on_sale: bool = False

    per_user_limit: int = 0
    per_email_limit: int = 0
    total_discount_use_limit: int = 0

    order_condition: Condition = Field(default_factory=Condition)
    customer_condition: Condition = Field(default_factory=Condition)
    shipping_address_condition: Condition = Field(default_factory=Condition)
    billing_address_condition: Condition = Field(default_factory=Condition)
    order_condition_formula: Optional[str] = None

    coupons: List[CouponInput] = Field(default_factory=list)

    @field_validator("date_from", "date_to")
    @classmethod
    def to_naive_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        # Columns and date checks are naive UTC
        if value is not None and value.tzinfo is not None:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value


class DiscountResponse(BaseModel):
    id: int
    name: str
    description: Optional[str]
    date_from: Optional[datetime]
    date_to: Optional[datetime]
    enabled: bool
    stop_processing: bool
    ignore_sales: bool
    applied_to: AppliedTo
    sort_order: int
    coupon_format: str

    all_purchasables: bool
    all_categories: bool
    category_relationship_type: CategoryRelationshipType
    purchasable_ids: List[int]
    category_ids: List[int]

    purchase_qty: int
    max_purchase_qty: int
    purchase_total: float

    base_discount: float
    base_discount_type: BaseDiscountType
    per_item_discount: float
    percent_discount: float
    percentage_off_subject: PercentageOffSubject
    has_free_shipping_for_matching_items: bool
    has_free_shipping_for_order: bool
    exclude_on_sale: bool

    per_user_limit: int
    per_email_limit: int
    total_discount_use_limit: int
    total_discount_uses: int

    order_condition: Optional[dict]
    customer_condition: Optional[dict]
    shipping_address_condition: Optional[dict]
    billing_address_condition: Optional[dict]
    order_condition_formula: Optional[str]

    coupons: List[CouponResponse]
    date_created: Optional[datetime]
    date_updated: Optional[datetime]

    class Config:
        from_attributes = True


class ReorderDiscountsRequest(BaseModel):
    ids: List[int] = Field(..., min_length=1)


class UsageStatsResponse(BaseModel):
    total_discount_uses: int
    customer_uses: int
    customers: int
    email_uses: int
    emails: int
