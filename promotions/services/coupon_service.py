import secrets
import string
from typing import Iterable, List, Optional, Sequence
from sqlalchemy import func
from sqlalchemy.orm import Session
import structlog

from promotions.models.coupon import Coupon
from promotions.models.discount import Discount
from promotions.schemas.coupon import CouponInput

logger = structlog.get_logger()

COUPON_CODE_ALPHABET = string.ascii_uppercase + string.digits
COUPON_FORMAT_PLACEHOLDER = "#"
MAX_GENERATION_ATTEMPTS = 10


class CouponService:

    @staticmethod
    def get_coupon_by_code(db: Session, code: str) -> Optional[Coupon]:
        """Find a coupon by code, case-insensitively."""
        if not code:
            return None
        return db.query(Coupon).filter(func.lower(Coupon.code) == code.lower()).first()

    @staticmethod
    def find_conflicting_codes(db: Session, codes: Iterable[str], discount_id: Optional[int] = None) -> List[str]:
        """Codes already used by coupons of other discounts."""
        lowered = {code.lower() for code in codes if code}
        if not lowered:
            return []
        query = db.query(Coupon.code).filter(func.lower(Coupon.code).in_(lowered))
        if discount_id is not None:
            query = query.filter(Coupon.discount_id != discount_id)
        return [row.code for row in query.all()]

    @staticmethod
    def save_discount_coupons(db: Session, discount: Discount, coupons: Sequence[CouponInput]) -> None:
        """
        Replace a discount's coupon set.

        Coupons whose code survives keep their ``uses`` counter. Runs inside the
        caller's transaction; nothing is committed here.
        """
        existing = {coupon.code.lower(): coupon for coupon in discount.coupons}
        kept: List[Coupon] = []
        for data in coupons:
            coupon = existing.pop(data.code.lower(), None)
            if coupon is None:
                coupon = Coupon(code=data.code, uses=0)
            coupon.code = data.code
            coupon.max_uses = data.max_uses
            kept.append(coupon)

        discount.coupons = kept
        if existing:
            logger.info(
                "discount_coupons_removed",
                discount_id=discount.id,
                codes=sorted(c.code for c in existing.values()),
            )

    @staticmethod
    def generate_coupon_codes(format: str, count: int, existing: Iterable[str] = ()) -> List[str]:
        """
        Generate ``count`` unique codes from a format such as ``SUMMER-####``.

        Each ``#`` is replaced by a random uppercase letter or digit.
        """
        placeholders = format.count(COUPON_FORMAT_PLACEHOLDER)
        if placeholders == 0:
            raise ValueError("Coupon format must contain at least one “#”")
        if len(COUPON_CODE_ALPHABET) ** placeholders < count:
            raise ValueError("Coupon format cannot produce that many unique codes")

        taken = {code.lower() for code in existing}
        codes: List[str] = []
        while len(codes) < count:
            for _ in range(MAX_GENERATION_ATTEMPTS):
                code = "".join(
                    secrets.choice(COUPON_CODE_ALPHABET) if char == COUPON_FORMAT_PLACEHOLDER else char
                    for char in format
                )
                if code.lower() not in taken:
                    break
            else:
                raise ValueError("Failed to generate unique coupon codes")
            taken.add(code.lower())
            codes.append(code)

        return codes
