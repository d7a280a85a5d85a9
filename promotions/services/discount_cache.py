from typing import Dict, List, Optional

from promotions.models.discount import Discount


class DiscountCache:
    """Memoized discount lookups for the lifetime of one DiscountService.

    Not a source of truth: every mutating DiscountService operation clears it.
    """

    def __init__(self):
        self.all_discounts: Optional[List[Discount]] = None
        self.active_discounts_by_key: Dict[str, List[Discount]] = {}
        self.line_item_category_matches: Dict[str, bool] = {}

    def clear_discounts(self) -> None:
        self.all_discounts = None
        self.active_discounts_by_key = {}

    def clear(self) -> None:
        self.clear_discounts()
        self.line_item_category_matches = {}
