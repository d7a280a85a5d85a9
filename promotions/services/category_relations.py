from typing import List
from sqlalchemy.orm import Session

from promotions.models.category import CategoryRelation
from promotions.models.discount import CategoryRelationshipType


class CategoryRelationResolver:
    """Resolves which categories a catalog element is related to."""

    def related_category_ids(
        self,
        db: Session,
        relationship_type: CategoryRelationshipType,
        source_id: int,
    ) -> List[int]:
        query = db.query(CategoryRelation.category_id).filter(CategoryRelation.element_id == source_id)

        if relationship_type == CategoryRelationshipType.SOURCE:
            query = query.filter(CategoryRelation.element_is_source == True)
        elif relationship_type == CategoryRelationshipType.TARGET:
            query = query.filter(CategoryRelation.element_is_source == False)

        return sorted({row.category_id for row in query.all()})
