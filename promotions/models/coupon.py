from sqlalchemy import Column, Integer, String, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from datetime import datetime
from promotions.db.base_class import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(255), unique=True, nullable=False, index=True)
    discount_id = Column(Integer, ForeignKey("discounts.id", ondelete="CASCADE"), nullable=False, index=True)

    max_uses = Column(Integer, nullable=True)  # None = unlimited
    uses = Column(Integer, default=0, nullable=False)

    date_created = Column(DateTime, default=datetime.utcnow)

    # Relationships
    discount = relationship("Discount", back_populates="coupons")

    @property
    def is_available(self) -> bool:
        return self.max_uses is None or self.max_uses > (self.uses or 0)

    def matches_code(self, code) -> bool:
        return bool(code) and self.code.lower() == code.lower()
