from sqlalchemy import Column, Integer, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from promotions.db.base_class import Base


class CustomerDiscountUse(Base):
    __tablename__ = "customer_discount_uses"
    __table_args__ = (UniqueConstraint("customer_id", "discount_id", name="uq_customer_discount_use"),)

    id = Column(Integer, primary_key=True, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id", ondelete="CASCADE"), nullable=False)
    uses = Column(Integer, default=0, nullable=False)

    # Relationships
    discount = relationship("Discount")
    customer = relationship("Customer")


class EmailDiscountUse(Base):
    __tablename__ = "email_discount_uses"
    __table_args__ = (UniqueConstraint("email", "discount_id", name="uq_email_discount_use"),)

    id = Column(Integer, primary_key=True, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True)
    email = Column(String(255), nullable=False)
    uses = Column(Integer, default=0, nullable=False)

    # Relationships
    discount = relationship("Discount")
