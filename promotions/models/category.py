from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from promotions.db.base_class import Base


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    parent_id = Column(Integer, ForeignKey("categories.id"), nullable=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)

    # Relationships
    parent = relationship("Category", remote_side=[id])
    relations = relationship("CategoryRelation", back_populates="category", cascade="all, delete-orphan")


class CategoryRelation(Base):
    """Relation between a category and a catalog element (a product or purchasable).

    ``element_is_source`` records the direction: True when the element holds the
    relation field pointing at the category, False when the category points at it.
    """
    __tablename__ = "category_relations"

    id = Column(Integer, primary_key=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    element_id = Column(Integer, nullable=False)
    element_is_source = Column(Boolean, default=True, nullable=False)

    # Relationships
    category = relationship("Category", back_populates="relations")


Index("ix_category_relations_element", CategoryRelation.element_id, CategoryRelation.element_is_source)
