from pydantic import BaseModel
from typing import List, Optional


class CouponCheckResponse(BaseModel):
    valid: bool
    explanation: Optional[str] = None


class MatchingDiscountsResponse(BaseModel):
    order_id: int
    discount_ids: List[int]


class AdjustmentResponse(BaseModel):
    id: int
    line_item_id: Optional[int]
    type: str
    name: Optional[str]
    description: Optional[str]
    amount: float
    source_snapshot: Optional[dict]

    class Config:
        from_attributes = True


class OrderTotalsResponse(BaseModel):
    order_id: int
    item_subtotal: float
    total_qty: int
    adjustments: List[AdjustmentResponse]
    total_price: float
