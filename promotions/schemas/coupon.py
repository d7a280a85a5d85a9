from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class CouponInput(BaseModel):
    code: str = Field(..., min_length=1, max_length=255)
    max_uses: Optional[int] = Field(None, ge=1)


class CouponResponse(BaseModel):
    id: int
    code: str
    max_uses: Optional[int]
    uses: int
    date_created: Optional[datetime]

    class Config:
        from_attributes = True


class GenerateCouponsRequest(BaseModel):
    format: str = Field(default="######", min_length=1, max_length=20)
    count: int = Field(default=1, ge=1, le=1000)


class GenerateCouponsResponse(BaseModel):
    codes: List[str]
