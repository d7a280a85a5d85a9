from sqlalchemy import Column, Integer, String, Float, DateTime, Boolean, Enum, Text, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from promotions.db.base_class import Base
from promotions.schemas.condition import Condition


class BaseDiscountType(str, enum.Enum):
    VALUE = "value"
    PERCENT_TOTAL = "percentTotal"
    PERCENT_TOTAL_DISCOUNTED = "percentTotalDiscounted"
    PERCENT_ITEMS = "percentItems"
    PERCENT_ITEMS_DISCOUNTED = "percentItemsDiscounted"


class AppliedTo(str, enum.Enum):
    MATCHING_LINE_ITEMS = "matchingLineItems"
    ALL_LINE_ITEMS = "allLineItems"


class PercentageOffSubject(str, enum.Enum):
    ORIGINAL = "original"
    DISCOUNTED = "discounted"


class CategoryRelationshipType(str, enum.Enum):
    SOURCE = "sourceElement"
    TARGET = "targetElement"
    BOTH = "element"


class Discount(Base):
    __tablename__ = "discounts"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Validity
    date_from = Column(DateTime, nullable=True)
    date_to = Column(DateTime, nullable=True)
    enabled = Column(Boolean, default=True, nullable=False, index=True)
    stop_processing = Column(Boolean, default=False, nullable=False)
    ignore_sales = Column(Boolean, default=True, nullable=False)
    applied_to = Column(Enum(AppliedTo), default=AppliedTo.MATCHING_LINE_ITEMS, nullable=False)
    sort_order = Column(Integer, default=999, nullable=False)
    coupon_format = Column(String(20), default="######", nullable=False)

    # Scope
    all_purchasables = Column(Boolean, default=False, nullable=False)
    all_categories = Column(Boolean, default=False, nullable=False)
    category_relationship_type = Column(
        Enum(CategoryRelationshipType), default=CategoryRelationshipType.BOTH, nullable=False
    )

    # Thresholds
    purchase_qty = Column(Integer, default=0, nullable=False)
    max_purchase_qty = Column(Integer, default=0, nullable=False)
    purchase_total = Column(Float, default=0.0, nullable=False)

    # Monetary effect
    base_discount = Column(Float, default=0.0, nullable=False)
    base_discount_type = Column(Enum(BaseDiscountType), default=BaseDiscountType.VALUE, nullable=False)
    per_item_discount = Column(Float, default=0.0, nullable=False)
    percent_discount = Column(Float, default=0.0, nullable=False)  # 0-100
    percentage_off_subject = Column(
        Enum(PercentageOffSubject), default=PercentageOffSubject.ORIGINAL, nullable=False
    )
    has_free_shipping_for_matching_items = Column(Boolean, default=False, nullable=False)
    has_free_shipping_for_order = Column(Boolean, default=False, nullable=False)
    exclude_on_sale = Column(Boolean, default=False, nullable=False)

    # Usage limits (0 = unlimited)
    per_user_limit = Column(Integer, default=0, nullable=False)
    per_email_limit = Column(Integer, default=0, nullable=False)
    total_discount_use_limit = Column(Integer, default=0, nullable=False)
    total_discount_uses = Column(Integer, default=0, nullable=False)

    # Conditions
    order_condition = Column(JSON, nullable=True)
    customer_condition = Column(JSON, nullable=True)
    shipping_address_condition = Column(JSON, nullable=True)
    billing_address_condition = Column(JSON, nullable=True)
    order_condition_formula = Column(Text, nullable=True)

    date_created = Column(DateTime, default=datetime.utcnow)
    date_updated = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    coupons = relationship(
        "Coupon", back_populates="discount", cascade="all, delete-orphan", order_by="Coupon.id"
    )
    purchasable_links = relationship("DiscountPurchasable", cascade="all, delete-orphan")
    category_links = relationship("DiscountCategory", cascade="all, delete-orphan")

    @property
    def purchasable_ids(self) -> list[int]:
        return [link.purchasable_id for link in self.purchasable_links]

    @property
    def category_ids(self) -> list[int]:
        return [link.category_id for link in self.category_links]

    # Surviving link rows are reused, the unit of work inserts before it deletes
    def set_purchasable_ids(self, ids) -> None:
        existing = {link.purchasable_id: link for link in self.purchasable_links}
        self.purchasable_links = [
            existing.get(pid) or DiscountPurchasable(purchasable_id=pid) for pid in dict.fromkeys(ids)
        ]

    def set_category_ids(self, ids) -> None:
        existing = {link.category_id: link for link in self.category_links}
        self.category_links = [
            existing.get(cid) or DiscountCategory(category_id=cid) for cid in dict.fromkeys(ids)
        ]

    @property
    def all_items_match(self) -> bool:
        return bool(self.all_purchasables and self.all_categories)

    def get_order_condition(self) -> Condition:
        return Condition.from_config(self.order_condition)

    def get_customer_condition(self) -> Condition:
        return Condition.from_config(self.customer_condition)

    def get_shipping_address_condition(self) -> Condition:
        return Condition.from_config(self.shipping_address_condition)

    def get_billing_address_condition(self) -> Condition:
        return Condition.from_config(self.billing_address_condition)


class DiscountPurchasable(Base):
    __tablename__ = "discount_purchasables"
    __table_args__ = (UniqueConstraint("discount_id", "purchasable_id", name="uq_discount_purchasable"),)

    id = Column(Integer, primary_key=True, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True)
    purchasable_id = Column(Integer, ForeignKey("purchasables.id", ondelete="CASCADE"), nullable=False)


class DiscountCategory(Base):
    __tablename__ = "discount_categories"
    __table_args__ = (UniqueConstraint("discount_id", "category_id", name="uq_discount_category"),)

    id = Column(Integer, primary_key=True, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
