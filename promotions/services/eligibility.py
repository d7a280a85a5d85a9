"""Independent eligibility checks for a discount against an order.

Every check has the signature ``(db, order, discount) -> EligibilityResult`` and is
side-effect free. ``run_checks`` evaluates a sequence and stops at the first
failure, returning its explanation.
"""
from datetime import datetime
from typing import Callable, NamedTuple, Optional, Sequence
from sqlalchemy.orm import Session

from promotions.models.discount import Discount
from promotions.models.discount_use import CustomerDiscountUse, EmailDiscountUse
from promotions.models.order import Order
from promotions.utils.formula import evaluate_condition

COUPON_NOT_VALID = "Coupon not valid."
FORMULA_NOT_MATCHED = "Discount is not allowed for the order"
OUT_OF_DATE = "Discount is out of date."
TOTAL_USE_LIMIT_REACHED = "Discount use has reached its limit."
PER_USER_LIMIT_REACHED = "This coupon is for registered users and limited to {limit} uses."
EMAIL_REQUIRED = "This coupon requires an email address."
PER_EMAIL_LIMIT_REACHED = "This coupon is limited to {limit} uses."


class EligibilityResult(NamedTuple):
    valid: bool
    explanation: Optional[str] = None


PASSED = EligibilityResult(True)

Check = Callable[[Session, Order, Discount], EligibilityResult]


def is_coupon_valid(order: Order, discount: Discount) -> bool:
    """Code-less discounts always pass; otherwise the order code must hit an available coupon."""
    if not discount.coupons:
        return True
    return any(
        coupon.matches_code(order.coupon_code) and coupon.is_available
        for coupon in discount.coupons
    )


def get_customer_uses(db: Session, discount_id: int, customer_id: int) -> int:
    uses = (
        db.query(CustomerDiscountUse.uses)
        .filter(CustomerDiscountUse.customer_id == customer_id, CustomerDiscountUse.discount_id == discount_id)
        .scalar()
    )
    return uses or 0


def get_email_uses(db: Session, discount_id: int, email: str) -> int:
    uses = (
        db.query(EmailDiscountUse.uses)
        .filter(EmailDiscountUse.email == email, EmailDiscountUse.discount_id == discount_id)
        .scalar()
    )
    return uses or 0


def check_coupon(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    if not is_coupon_valid(order, discount):
        return EligibilityResult(False, COUPON_NOT_VALID)
    return PASSED


def check_condition_formula(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    if not discount.order_condition_formula:
        return PASSED

    params = {"order": order.as_snapshot()}
    if not evaluate_condition(discount.order_condition_formula, params, "Evaluate Order Discount Condition Formula"):
        return EligibilityResult(False, FORMULA_NOT_MATCHED)
    return PASSED


def check_date(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    now = datetime.utcnow()
    if order.is_completed and order.date_ordered:
        now = order.date_ordered

    if discount.date_from and discount.date_from > now:
        return EligibilityResult(False, OUT_OF_DATE)
    if discount.date_to and discount.date_to < now:
        return EligibilityResult(False, OUT_OF_DATE)
    return PASSED


def check_total_use_limit(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    if discount.total_discount_use_limit > 0 and discount.total_discount_uses >= discount.total_discount_use_limit:
        return EligibilityResult(False, TOTAL_USE_LIMIT_REACHED)
    return PASSED


def check_per_user_limit(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    if discount.per_user_limit > 0:
        failed = EligibilityResult(False, PER_USER_LIMIT_REACHED.format(limit=discount.per_user_limit))
        customer = order.customer
        if not customer or not customer.is_credentialed:
            return failed
        if get_customer_uses(db, discount.id, customer.id) >= discount.per_user_limit:
            return failed
    return PASSED


def check_email_required(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    if discount.per_email_limit > 0 and not order.email:
        return EligibilityResult(False, EMAIL_REQUIRED)
    return PASSED


def check_per_email_limit(db: Session, order: Order, discount: Discount) -> EligibilityResult:
    if discount.per_email_limit > 0 and order.email:
        if get_email_uses(db, discount.id, order.email) >= discount.per_email_limit:
            return EligibilityResult(False, PER_EMAIL_LIMIT_REACHED.format(limit=discount.per_email_limit))
    return PASSED


# Order used when explaining coupon availability to a shopper
COUPON_AVAILABILITY_CHECKS: Sequence[Check] = (
    check_coupon,
    check_condition_formula,
    check_date,
    check_total_use_limit,
    check_per_user_limit,
    check_email_required,
    check_per_email_limit,
)

# Order used by the order matcher
ORDER_MATCH_CHECKS: Sequence[Check] = (
    check_coupon,
    check_date,
    check_total_use_limit,
    check_per_user_limit,
    check_email_required,
    check_per_email_limit,
    check_condition_formula,
)


def run_checks(db: Session, order: Order, discount: Discount, checks: Sequence[Check]) -> EligibilityResult:
    for check in checks:
        result = check(db, order, discount)
        if not result.valid:
            return result
    return PASSED
