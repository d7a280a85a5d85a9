from sqlalchemy import Boolean, Column, Float, Integer, String
from promotions.db.base_class import Base


class PaymentCurrency(Base):
    __tablename__ = "payment_currencies"

    id = Column(Integer, primary_key=True, index=True)
    iso = Column(String(3), unique=True, nullable=False)
    primary = Column(Boolean, default=False, nullable=False)
    rate = Column(Float, default=1.0, nullable=False)  # Relative to the primary currency
