from sqlalchemy import Boolean, Column, Float, Integer, String
from promotions.db.base_class import Base


class Purchasable(Base):
    """A sellable variant."""
    __tablename__ = "purchasables"

    id = Column(Integer, primary_key=True, index=True)
    product_id = Column(Integer, nullable=True, index=True)
    sku = Column(String(100), unique=True, nullable=False, index=True)
    description = Column(String(255), nullable=True)
    price = Column(Float, nullable=False, default=0.0)
    is_promotable = Column(Boolean, default=True, nullable=False)

    @property
    def promotion_relation_source(self) -> int:
        """Element id that category relations are resolved against."""
        return self.product_id or self.id
