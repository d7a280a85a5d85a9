from typing import Dict, List
from sqlalchemy.orm import Session
import structlog

from promotions.models.discount import AppliedTo, BaseDiscountType, Discount, PercentageOffSubject
from promotions.models.order import AdjustmentType, LineItem, Order, OrderAdjustment
from promotions.services.currency_service import CurrencyService
from promotions.services.discount_service import DiscountService

logger = structlog.get_logger()


class DiscountAdjuster:
    """Turns the discounts matching an order into ``discount`` adjustments."""

    def __init__(self, discount_service: DiscountService):
        self.discount_service = discount_service

    def adjust(self, db: Session, order: Order) -> List[OrderAdjustment]:
        """
        Replace the order's discount adjustments with freshly computed ones.

        Discounts are applied in sort order; each one sees the amounts taken off
        by the discounts before it. Adjustment amounts are negative.
        """
        try:
            order.adjustments = [
                adjustment for adjustment in order.adjustments
                if adjustment.type != AdjustmentType.DISCOUNT
            ]

            # Amount already taken off each line item by earlier discounts
            item_discounts: Dict[int, float] = {id(line_item): 0.0 for line_item in order.line_items}
            order_discount = 0.0
            adjustments: List[OrderAdjustment] = []

            for discount in self.discount_service.get_all_active_discounts(db, order):
                if not self.discount_service.match_order(db, order, discount):
                    continue

                new_adjustments = self._adjustments_for_discount(db, order, discount, item_discounts, order_discount)
                for adjustment in new_adjustments:
                    if adjustment.line_item is None:
                        order_discount += adjustment.amount
                adjustments.extend(new_adjustments)

                if discount.stop_processing:
                    break

            order.adjustments.extend(adjustments)
            db.commit()
        except Exception:
            db.rollback()
            logger.exception("discount_adjust_failed", order_id=order.id)
            raise

        logger.info(
            "order_discounts_adjusted",
            order_id=order.id,
            adjustments=len(adjustments),
            total=sum(adjustment.amount for adjustment in adjustments),
        )
        return adjustments

    def _adjustments_for_discount(
        self,
        db: Session,
        order: Order,
        discount: Discount,
        item_discounts: Dict[int, float],
        order_discount: float,
    ) -> List[OrderAdjustment]:
        currency = order.currency or None
        snapshot = {
            "discountUseId": discount.id,
            "name": discount.name,
            "couponCode": order.coupon_code,
            "hasFreeShippingForOrder": discount.has_free_shipping_for_order,
            "hasFreeShippingForMatchingItems": discount.has_free_shipping_for_matching_items,
        }

        matching = [
            line_item for line_item in order.line_items
            if self.discount_service.match_line_item(db, line_item, discount)
        ]
        if discount.applied_to == AppliedTo.ALL_LINE_ITEMS:
            targets = list(order.line_items)
        else:
            targets = matching

        adjustments: List[OrderAdjustment] = []

        for line_item in targets:
            remaining = line_item.subtotal + item_discounts[id(line_item)]
            if remaining <= 0:
                continue

            amount = discount.per_item_discount * line_item.qty
            if discount.percent_discount:
                if discount.percentage_off_subject == PercentageOffSubject.DISCOUNTED:
                    subject = remaining
                else:
                    subject = line_item.subtotal
                amount += subject * discount.percent_discount / 100

            amount = -CurrencyService.round(min(amount, remaining), currency, db)
            if amount:
                item_discounts[id(line_item)] += amount
                adjustments.append(self._build(discount, line_item, amount, snapshot))

        base_amount = self._base_discount_amount(discount, order, matching, item_discounts, order_discount)
        if base_amount:
            remaining = order.item_subtotal + sum(item_discounts.values()) + order_discount
            amount = -CurrencyService.round(min(base_amount, max(remaining, 0.0)), currency, db)
            if amount:
                adjustments.append(self._build(discount, None, amount, snapshot))

        # A free shipping discount still has to be recorded to count its use
        if not adjustments and (discount.has_free_shipping_for_order or (
            discount.has_free_shipping_for_matching_items and matching
        )):
            adjustments.append(self._build(discount, None, 0.0, snapshot))

        return adjustments

    @staticmethod
    def _base_discount_amount(
        discount: Discount,
        order: Order,
        matching: List[LineItem],
        item_discounts: Dict[int, float],
        order_discount: float,
    ) -> float:
        if not discount.base_discount:
            return 0.0

        if discount.base_discount_type == BaseDiscountType.VALUE:
            return discount.base_discount

        if discount.base_discount_type == BaseDiscountType.PERCENT_TOTAL:
            subject = order.item_subtotal
        elif discount.base_discount_type == BaseDiscountType.PERCENT_TOTAL_DISCOUNTED:
            subject = order.item_subtotal + sum(item_discounts.values()) + order_discount
        elif discount.base_discount_type == BaseDiscountType.PERCENT_ITEMS:
            subject = sum(line_item.subtotal for line_item in matching)
        else:
            subject = sum(line_item.subtotal + item_discounts[id(line_item)] for line_item in matching)

        return max(subject, 0.0) * discount.base_discount / 100

    @staticmethod
    def _build(discount: Discount, line_item, amount: float, snapshot: dict) -> OrderAdjustment:
        return OrderAdjustment(
            type=AdjustmentType.DISCOUNT.value,
            line_item=line_item,
            name=discount.name,
            description=discount.description,
            amount=amount,
            source_snapshot=dict(snapshot),
        )
