from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import and_, exists, func, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
import structlog

from promotions.core.exceptions import DiscountNotFound, DiscountValidationError
from promotions.models.category import Category
from promotions.models.coupon import Coupon
from promotions.models.discount import Discount
from promotions.models.discount_use import CustomerDiscountUse, EmailDiscountUse
from promotions.models.order import AdjustmentType, LineItem, Order
from promotions.models.purchasable import Purchasable
from promotions.schemas.discount import DiscountResponse, DiscountSave
from promotions.services.category_relations import CategoryRelationResolver
from promotions.services.coupon_service import COUPON_FORMAT_PLACEHOLDER, CouponService
from promotions.services.discount_cache import DiscountCache
from promotions.services.eligibility import (
    COUPON_AVAILABILITY_CHECKS,
    COUPON_NOT_VALID,
    ORDER_MATCH_CHECKS,
    EligibilityResult,
    run_checks,
)
from promotions.services.events import (
    EVENT_AFTER_DELETE_DISCOUNT,
    EVENT_AFTER_SAVE_DISCOUNT,
    EVENT_BEFORE_SAVE_DISCOUNT,
    EVENT_DISCOUNT_MATCHES_LINE_ITEM,
    EVENT_DISCOUNT_MATCHES_ORDER,
    DiscountEvent,
    DiscountEvents,
    MatchLineItemEvent,
    MatchOrderEvent,
    discount_events,
)
from promotions.utils.formula import validate_condition_syntax

logger = structlog.get_logger()

NON_NEGATIVE_FIELDS = {
    "purchase_qty": "Purchase quantity",
    "max_purchase_qty": "Max purchase quantity",
    "purchase_total": "Purchase total",
    "base_discount": "Base discount",
    "per_item_discount": "Per item discount",
    "per_user_limit": "Per user limit",
    "per_email_limit": "Per email limit",
    "total_discount_use_limit": "Total discount use limit",
}

SAVED_FIELDS = (
    "name",
    "description",
    "date_from",
    "date_to",
    "enabled",
    "stop_processing",
    "ignore_sales",
    "applied_to",
    "coupon_format",
    "all_purchasables",
    "all_categories",
    "category_relationship_type",
    "purchase_qty",
    "max_purchase_qty",
    "purchase_total",
    "base_discount",
    "base_discount_type",
    "per_item_discount",
    "percent_discount",
    "percentage_off_subject",
    "has_free_shipping_for_matching_items",
    "has_free_shipping_for_order",
    "exclude_on_sale",
    "per_user_limit",
    "per_email_limit",
    "total_discount_use_limit",
    "order_condition_formula",
)


class DiscountService:
    """
    Discount lookups, matching and usage bookkeeping.

    One instance is meant to live for one request (or one task run): its cache
    memoizes discount lists and category relation lookups and is cleared by every
    mutating method of the same instance.
    """

    def __init__(
        self,
        cache: Optional[DiscountCache] = None,
        events: Optional[DiscountEvents] = None,
        category_resolver: Optional[CategoryRelationResolver] = None,
    ):
        self.cache = cache or DiscountCache()
        self.events = events or discount_events
        self.category_resolver = category_resolver or CategoryRelationResolver()

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_all_discounts(self, db: Session) -> List[Discount]:
        if self.cache.all_discounts is None:
            self.cache.all_discounts = (
                db.query(Discount).order_by(Discount.sort_order, Discount.id).all()
            )
        return list(self.cache.all_discounts)

    def get_discount_by_id(self, db: Session, discount_id: int) -> Optional[Discount]:
        return db.query(Discount).filter(Discount.id == discount_id).first()

    def get_all_active_discounts(self, db: Session, order: Optional[Order] = None) -> List[Discount]:
        """
        Enabled discounts valid at the order date (or now), narrowed by the order's coupon code.

        Only discounts that can possibly match are returned; the full match still
        has to run through match_order.
        """
        if order is not None and order.date_ordered:
            date = order.date_ordered
        else:
            # Rounded to the minute so the cache key is stable within a request
            date = datetime.utcnow().replace(second=0, microsecond=0)

        coupon_code = order.coupon_code if order is not None and order.coupon_code else None
        cache_key = f"{date.isoformat()}:{coupon_code or '*'}"

        if cache_key in self.cache.active_discounts_by_key:
            return list(self.cache.active_discounts_by_key[cache_key])

        query = (
            db.query(Discount)
            .filter(Discount.enabled == True)
            .filter(or_(Discount.date_from.is_(None), Discount.date_from <= date))
            .filter(or_(Discount.date_to.is_(None), Discount.date_to >= date))
        )

        if coupon_code:
            matching_coupon = exists().where(
                and_(
                    Coupon.discount_id == Discount.id,
                    func.lower(Coupon.code) == coupon_code.lower(),
                    or_(Coupon.max_uses.is_(None), Coupon.uses < Coupon.max_uses),
                )
            )
            any_coupon = exists().where(Coupon.discount_id == Discount.id)
            query = query.filter(or_(matching_coupon, ~any_coupon))

        discounts = query.order_by(Discount.sort_order, Discount.id).all()
        self.cache.active_discounts_by_key[cache_key] = discounts
        return list(discounts)

    def get_discount_by_code(self, db: Session, code: Optional[str]) -> Optional[Discount]:
        """Enabled discount owning a coupon with this code (case-insensitive)."""
        if not code:
            return None

        return (
            db.query(Discount)
            .join(Coupon, Coupon.discount_id == Discount.id)
            .filter(func.lower(Coupon.code) == code.lower(), Discount.enabled == True)
            .order_by(Discount.sort_order, Discount.id)
            .first()
        )

    def get_discounts_related_to_purchasable(self, db: Session, purchasable: Purchasable) -> List[Discount]:
        if not purchasable.id:
            return []

        related = []
        for discount in self.get_all_discounts(db):
            if purchasable.id in discount.purchasable_ids:
                related.append(discount)
                continue

            category_ids = discount.category_ids
            if not category_ids:
                continue
            related_category_ids = self.category_resolver.related_category_ids(
                db, discount.category_relationship_type, purchasable.promotion_relation_source
            )
            if set(related_category_ids) & set(category_ids):
                related.append(discount)

        return related

    # ------------------------------------------------------------------
    # Matching
    # ------------------------------------------------------------------

    def order_coupon_available(
        self, db: Session, order: Order, discount: Optional[Discount] = None
    ) -> EligibilityResult:
        """
        Check whether the order's coupon can be used, explaining why not.

        Without an explicit discount, the discount is resolved from the order's
        coupon code.
        """
        if discount is None:
            discount = self.get_discount_by_code(db, order.coupon_code)
            if discount is None:
                return EligibilityResult(False, COUPON_NOT_VALID)

        return run_checks(db, order, discount, COUPON_AVAILABILITY_CHECKS)

    def match_line_item(self, db: Session, line_item: LineItem, discount: Discount, match_order: bool = False) -> bool:
        """
        Match a line item against a discount.

        ``match_order`` also requires the whole order to match; match_order itself
        calls this with False.
        """
        if match_order and not self.match_order(db, line_item.order, discount):
            return False

        if line_item.on_sale and discount.exclude_on_sale:
            return False

        # can't match something not promotable
        purchasable = line_item.purchasable
        if not purchasable or not purchasable.is_promotable:
            return False

        if not discount.all_purchasables and purchasable.id not in discount.purchasable_ids:
            return False

        if not discount.all_categories:
            category_ids = discount.category_ids
            key = "relationshipType:{}:purchasableId:{}:categoryIds:{}".format(
                discount.category_relationship_type.value,
                purchasable.id,
                "|".join(str(category_id) for category_id in category_ids),
            )
            if key not in self.cache.line_item_category_matches:
                related_category_ids = self.category_resolver.related_category_ids(
                    db, discount.category_relationship_type, purchasable.promotion_relation_source
                )
                self.cache.line_item_category_matches[key] = bool(
                    set(related_category_ids) & set(category_ids)
                )
            if not self.cache.line_item_category_matches[key]:
                return False

        event = MatchLineItemEvent(discount=discount, line_item=line_item)
        if self.events.has_handlers(EVENT_DISCOUNT_MATCHES_LINE_ITEM):
            self.events.trigger(EVENT_DISCOUNT_MATCHES_LINE_ITEM, event)

        return event.is_valid

    def match_order(self, db: Session, order: Order, discount: Discount) -> bool:
        if not discount.enabled:
            return False

        order_condition = discount.get_order_condition()
        if order_condition.has_rules and not order_condition.matches(order):
            return False

        customer_condition = discount.get_customer_condition()
        if customer_condition.has_rules:
            if not order.customer or not customer_condition.matches(order.customer):
                return False

        shipping_address_condition = discount.get_shipping_address_condition()
        if shipping_address_condition.has_rules:
            if not order.shipping_address or not shipping_address_condition.matches(order.shipping_address):
                return False

        billing_address_condition = discount.get_billing_address_condition()
        if billing_address_condition.has_rules:
            if not order.billing_address or not billing_address_condition.matches(order.billing_address):
                return False

        if not run_checks(db, order, discount, ORDER_MATCH_CHECKS).valid:
            return False

        if discount.all_items_match:
            if not self._within_purchase_thresholds(discount, order.item_subtotal, order.total_qty):
                return False
        else:
            matched = False
            matching_total = 0.0
            matching_qty = 0
            for line_item in order.line_items:
                # Must not match the order again, that would recurse forever
                if self.match_line_item(db, line_item, discount):
                    matched = True
                    matching_total += line_item.subtotal
                    matching_qty += line_item.qty

            if not matched:
                return False
            if not self._within_purchase_thresholds(discount, matching_total, matching_qty):
                return False

        event = MatchOrderEvent(discount=discount, order=order)
        if self.events.has_handlers(EVENT_DISCOUNT_MATCHES_ORDER):
            self.events.trigger(EVENT_DISCOUNT_MATCHES_ORDER, event)

        return event.is_valid

    @staticmethod
    def _within_purchase_thresholds(discount: Discount, total: float, qty: int) -> bool:
        if discount.purchase_total > 0 and total < discount.purchase_total:
            return False
        if discount.purchase_qty > 0 and qty < discount.purchase_qty:
            return False
        if discount.max_purchase_qty > 0 and qty > discount.max_purchase_qty:
            return False
        return True

    def get_matching_discounts(self, db: Session, order: Order) -> List[Discount]:
        return [
            discount
            for discount in self.get_all_active_discounts(db, order)
            if self.match_order(db, order, discount)
        ]

    # ------------------------------------------------------------------
    # Administration
    # ------------------------------------------------------------------

    def validate_discount(
        self, db: Session, data: DiscountSave, discount_id: Optional[int] = None
    ) -> Dict[str, List[str]]:
        """Return field -> error messages; empty when the discount can be saved."""
        errors: Dict[str, List[str]] = {}

        def add_error(field: str, message: str) -> None:
            errors.setdefault(field, []).append(message)

        if not (data.name or "").strip():
            add_error("name", "Name cannot be blank.")

        for field, label in NON_NEGATIVE_FIELDS.items():
            if getattr(data, field) < 0:
                add_error(field, f"{label} must be no less than 0.")

        if data.max_purchase_qty > 0 and data.purchase_qty > data.max_purchase_qty:
            add_error("max_purchase_qty", "Max purchase quantity must be greater than or equal to purchase quantity.")

        if data.date_from and data.date_to and data.date_to < data.date_from:
            add_error("date_to", "End date must be after the start date.")

        if not 0 <= data.percent_discount <= 100:
            add_error("percent_discount", "Percent discount must be between 0 and 100.")

        if data.order_condition_formula and not validate_condition_syntax(data.order_condition_formula):
            add_error("order_condition_formula", "Invalid order condition syntax.")

        if COUPON_FORMAT_PLACEHOLDER not in data.coupon_format:
            add_error("coupon_format", f"Coupon format must contain at least one “{COUPON_FORMAT_PLACEHOLDER}”.")

        seen = set()
        for coupon in data.coupons:
            lowered = coupon.code.lower()
            if lowered in seen:
                add_error("coupons", f"Coupon code “{coupon.code}” is duplicated.")
            seen.add(lowered)
        for code in CouponService.find_conflicting_codes(db, seen, discount_id):
            add_error("coupons", f"Coupon code “{code}” is already in use.")

        if not data.all_purchasables and data.purchasable_ids:
            found = {
                row.id for row in db.query(Purchasable.id).filter(Purchasable.id.in_(data.purchasable_ids)).all()
            }
            missing = sorted(set(data.purchasable_ids) - found)
            if missing:
                add_error("purchasable_ids", f"Unknown purchasables: {missing}")

        if not data.all_categories and data.category_ids:
            found = {row.id for row in db.query(Category.id).filter(Category.id.in_(data.category_ids)).all()}
            missing = sorted(set(data.category_ids) - found)
            if missing:
                add_error("category_ids", f"Unknown categories: {missing}")

        return errors

    def save_discount(
        self,
        db: Session,
        data: DiscountSave,
        discount_id: Optional[int] = None,
        run_validation: bool = True,
    ) -> Discount:
        """
        Create or update a discount with its membership sets and coupons.

        Raises DiscountNotFound for an unknown ``discount_id`` and
        DiscountValidationError with per-field errors; nothing is written in either case.
        """
        is_new = discount_id is None
        if is_new:
            discount = Discount(sort_order=999, total_discount_uses=0)
        else:
            discount = self.get_discount_by_id(db, discount_id)
            if not discount:
                raise DiscountNotFound(discount_id)

        if self.events.has_handlers(EVENT_BEFORE_SAVE_DISCOUNT):
            self.events.trigger(EVENT_BEFORE_SAVE_DISCOUNT, DiscountEvent(discount=data, is_new=is_new))

        if run_validation:
            errors = self.validate_discount(db, data, discount_id)
            if errors:
                logger.info("discount_not_saved", discount_id=discount_id, errors=errors)
                raise DiscountValidationError(errors)

        try:
            for field in SAVED_FIELDS:
                setattr(discount, field, getattr(data, field))
            discount.order_condition = data.order_condition.get_config()
            discount.customer_condition = data.customer_condition.get_config()
            discount.shipping_address_condition = data.shipping_address_condition.get_config()
            discount.billing_address_condition = data.billing_address_condition.get_config()
            discount.order_condition_formula = (data.order_condition_formula or "").strip() or None

            discount.set_purchasable_ids([] if data.all_purchasables else data.purchasable_ids)
            discount.set_category_ids([] if data.all_categories else data.category_ids)

            if is_new:
                db.add(discount)
            CouponService.save_discount_coupons(db, discount, data.coupons)

            db.commit()
            db.refresh(discount)
        except Exception:
            db.rollback()
            logger.exception("discount_save_failed", discount_id=discount_id)
            raise

        if self.events.has_handlers(EVENT_AFTER_SAVE_DISCOUNT):
            self.events.trigger(EVENT_AFTER_SAVE_DISCOUNT, DiscountEvent(discount=discount, is_new=is_new))

        self.cache.clear()
        logger.info("discount_saved", discount_id=discount.id, is_new=is_new)
        return discount

    def delete_discount_by_id(self, db: Session, discount_id: int) -> bool:
        discount = self.get_discount_by_id(db, discount_id)
        if not discount:
            return False

        # Snapshot for observers; the ORM instance is gone after the commit
        deleted = DiscountResponse.model_validate(discount)

        try:
            db.delete(discount)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("discount_delete_failed", discount_id=discount_id)
            raise

        if self.events.has_handlers(EVENT_AFTER_DELETE_DISCOUNT):
            self.events.trigger(EVENT_AFTER_DELETE_DISCOUNT, DiscountEvent(discount=deleted, is_new=False))

        self.cache.clear()
        logger.info("discount_deleted", discount_id=discount_id)
        return True

    def clear_customer_usage_history_by_id(self, db: Session, discount_id: int) -> None:
        db.query(CustomerDiscountUse).filter(CustomerDiscountUse.discount_id == discount_id).delete(
            synchronize_session=False
        )
        db.commit()
        self.cache.clear_discounts()

    def clear_email_usage_history_by_id(self, db: Session, discount_id: int) -> None:
        db.query(EmailDiscountUse).filter(EmailDiscountUse.discount_id == discount_id).delete(
            synchronize_session=False
        )
        db.commit()
        self.cache.clear_discounts()

    def clear_discount_uses_by_id(self, db: Session, discount_id: int) -> None:
        db.execute(
            update(Discount)
            .where(Discount.id == discount_id)
            .values(total_discount_uses=0)
            .execution_options(synchronize_session=False)
        )
        db.commit()
        self.cache.clear_discounts()

    def reorder_discounts(self, db: Session, ids: List[int]) -> bool:
        for position, discount_id in enumerate(ids):
            db.execute(
                update(Discount)
                .where(Discount.id == discount_id)
                .values(sort_order=position + 1)
                .execution_options(synchronize_session=False)
            )
        db.commit()
        self.cache.clear_discounts()
        return True

    def get_email_usage_stats_by_id(self, db: Session, discount_id: int) -> Dict[str, int]:
        uses, emails = (
            db.query(func.coalesce(func.sum(EmailDiscountUse.uses), 0), func.count(EmailDiscountUse.email))
            .filter(EmailDiscountUse.discount_id == discount_id)
            .one()
        )
        return {"uses": int(uses), "emails": int(emails)}

    def get_customer_usage_stats_by_id(self, db: Session, discount_id: int) -> Dict[str, int]:
        uses, customers = (
            db.query(
                func.coalesce(func.sum(CustomerDiscountUse.uses), 0),
                func.count(CustomerDiscountUse.customer_id),
            )
            .filter(CustomerDiscountUse.discount_id == discount_id)
            .one()
        )
        return {"uses": int(uses), "customers": int(customers)}

    # ------------------------------------------------------------------
    # Usage counters
    # ------------------------------------------------------------------

    def order_complete_handler(self, db: Session, order: Order) -> List[int]:
        """
        Record one use of every discount applied to a completed order.

        A discount can produce several line item adjustments; each one is counted
        once. All counters move in a single transaction together with the order's
        ``usage_recorded`` flag, so an order is counted at most once however often
        this runs. Returns the ids of the discounts that were counted.
        """
        discount_ids: List[int] = []
        for adjustment in order.get_adjustments_by_type(AdjustmentType.DISCOUNT):
            snapshot = adjustment.source_snapshot or {}
            discount_id = snapshot.get("discountUseId")
            if discount_id is None or discount_id in discount_ids:
                continue
            discount_ids.append(discount_id)

        customer = order.customer
        customer_id = customer.id if customer and customer.is_credentialed else None
        email = order.email
        coupon_code = order.coupon_code
        order_id = order.id

        try:
            claimed = db.execute(
                update(Order)
                .where(Order.id == order_id, Order.usage_recorded.is_(False))
                .values(usage_recorded=True)
                .execution_options(synchronize_session=False)
            ).rowcount
            if not claimed:
                db.rollback()
                logger.info("discount_usage_already_recorded", order_id=order_id)
                return []

            for discount_id in discount_ids:
                if customer_id is not None:
                    self._increment_use_counter(
                        db, CustomerDiscountUse, discount_id=discount_id, customer_id=customer_id
                    )

                if email:
                    self._increment_use_counter(db, EmailDiscountUse, discount_id=discount_id, email=email)

                db.execute(
                    update(Discount)
                    .where(Discount.id == discount_id)
                    .values(total_discount_uses=Discount.total_discount_uses + 1)
                    .execution_options(synchronize_session=False)
                )

                if coupon_code:
                    db.execute(
                        update(Coupon)
                        .where(
                            Coupon.discount_id == discount_id,
                            func.lower(Coupon.code) == coupon_code.lower(),
                        )
                        .values(uses=Coupon.uses + 1)
                        .execution_options(synchronize_session=False)
                    )
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("discount_usage_update_failed", order_id=order_id, discount_ids=discount_ids)
            raise

        self.cache.clear_discounts()
        logger.info(
            "discount_usage_recorded",
            order_id=order_id,
            discount_ids=discount_ids,
            customer_id=customer_id,
            coupon_code=coupon_code,
        )
        return discount_ids

    @staticmethod
    def _increment_use_counter(db: Session, model, **keys) -> None:
        """Insert-or-increment a usage row with SQL-side arithmetic."""
        criteria = [getattr(model, name) == value for name, value in keys.items()]
        statement = (
            update(model)
            .where(*criteria)
            .values(uses=model.uses + 1)
            .execution_options(synchronize_session=False)
        )

        if db.execute(statement).rowcount:
            return

        try:
            with db.begin_nested():
                db.add(model(uses=1, **keys))
        except IntegrityError:
            # Another transaction inserted the row first
            db.execute(statement)
