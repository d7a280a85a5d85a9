from sqlalchemy import Column, Integer, String, Float, ForeignKey, DateTime, Boolean, Text, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
import enum
from promotions.db.base_class import Base


class AdjustmentType(str, enum.Enum):
    DISCOUNT = "discount"
    SHIPPING = "shipping"
    TAX = "tax"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    number = Column(String(50), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)
    coupon_code = Column(String(255), nullable=True)
    currency = Column(String(3), nullable=True)

    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True)
    shipping_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True)
    billing_address_id = Column(Integer, ForeignKey("addresses.id"), nullable=True)

    is_completed = Column(Boolean, default=False, nullable=False)
    date_ordered = Column(DateTime, nullable=True)
    # Set in the same transaction as the discount usage counters
    usage_recorded = Column(Boolean, default=False, nullable=False)

    # Custom field values, serialized into condition formula params
    field_values = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    customer = relationship("Customer", back_populates="orders")
    shipping_address = relationship("Address", foreign_keys=[shipping_address_id])
    billing_address = relationship("Address", foreign_keys=[billing_address_id])
    line_items = relationship(
        "LineItem", back_populates="order", cascade="all, delete-orphan", order_by="LineItem.id"
    )
    adjustments = relationship(
        "OrderAdjustment", back_populates="order", cascade="all, delete-orphan", order_by="OrderAdjustment.id"
    )

    @property
    def item_subtotal(self) -> float:
        return sum(line_item.subtotal for line_item in self.line_items)

    @property
    def total_qty(self) -> int:
        return sum(line_item.qty for line_item in self.line_items)

    @property
    def adjustments_total(self) -> float:
        return sum(adjustment.amount for adjustment in self.adjustments)

    @property
    def total_price(self) -> float:
        return max(0.0, self.item_subtotal + self.adjustments_total)

    def get_adjustments_by_type(self, adjustment_type: AdjustmentType) -> list["OrderAdjustment"]:
        return [a for a in self.adjustments if a.type == adjustment_type]

    def as_snapshot(self) -> dict:
        """Base order attributes merged with custom field values (field values win)."""
        snapshot = {
            "id": self.id,
            "number": self.number,
            "email": self.email,
            "coupon_code": self.coupon_code,
            "currency": self.currency,
            "customer_id": self.customer_id,
            "is_completed": self.is_completed,
            "date_ordered": self.date_ordered.isoformat() if self.date_ordered else None,
            "item_subtotal": self.item_subtotal,
            "total_qty": self.total_qty,
            "total_price": self.total_price,
            "line_items": [line_item.as_snapshot() for line_item in self.line_items],
            "shipping_address": self.shipping_address.as_snapshot() if self.shipping_address else None,
            "billing_address": self.billing_address.as_snapshot() if self.billing_address else None,
        }
        snapshot.update(self.field_values or {})
        return snapshot


class LineItem(Base):
    __tablename__ = "line_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    purchasable_id = Column(Integer, ForeignKey("purchasables.id"), nullable=True)

    description = Column(String(255), nullable=True)  # Snapshot at order time
    sku = Column(String(100), nullable=True)

    qty = Column(Integer, nullable=False, default=1)
    price = Column(Float, nullable=False)
    sale_price = Column(Float, nullable=False)

    # Relationships
    order = relationship("Order", back_populates="line_items")
    purchasable = relationship("Purchasable")

    @property
    def subtotal(self) -> float:
        return self.sale_price * self.qty

    @property
    def on_sale(self) -> bool:
        return self.sale_price < self.price

    def as_snapshot(self) -> dict:
        return {
            "id": self.id,
            "purchasable_id": self.purchasable_id,
            "description": self.description,
            "sku": self.sku,
            "qty": self.qty,
            "price": self.price,
            "sale_price": self.sale_price,
            "subtotal": self.subtotal,
            "on_sale": self.on_sale,
        }


class OrderAdjustment(Base):
    __tablename__ = "order_adjustments"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    line_item_id = Column(Integer, ForeignKey("line_items.id", ondelete="CASCADE"), nullable=True)

    type = Column(String(20), nullable=False)  # AdjustmentType value
    name = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    amount = Column(Float, nullable=False, default=0.0)
    # Discount adjustments carry {"discountUseId": <discount id>, ...}
    source_snapshot = Column(JSON, nullable=True)

    # Relationships
    order = relationship("Order", back_populates="adjustments")
    line_item = relationship("LineItem")
