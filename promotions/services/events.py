"""Observer hooks fired by DiscountService.

Handlers are plain callables receiving the event object::

    def no_discounts_on_gift_cards(event: MatchLineItemEvent):
        if event.line_item.sku.startswith("GIFT-"):
            event.invalidate()

    discount_events.on(EVENT_DISCOUNT_MATCHES_LINE_ITEM, no_discounts_on_gift_cards)
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, Dict, List

import structlog

logger = structlog.get_logger()

EVENT_BEFORE_SAVE_DISCOUNT = "before_save_discount"
EVENT_AFTER_SAVE_DISCOUNT = "after_save_discount"
EVENT_AFTER_DELETE_DISCOUNT = "after_delete_discount"
EVENT_DISCOUNT_MATCHES_LINE_ITEM = "discount_matches_line_item"
EVENT_DISCOUNT_MATCHES_ORDER = "discount_matches_order"


@dataclass
class DiscountEvent:
    discount: Any
    is_new: bool = False


@dataclass
class _MatchEvent:
    discount: Any
    is_valid: bool = True

    def invalidate(self) -> None:
        """Veto the match. A vetoed match cannot be restored by later handlers."""
        self.is_valid = False


@dataclass
class MatchLineItemEvent(_MatchEvent):
    line_item: Any = None


@dataclass
class MatchOrderEvent(_MatchEvent):
    order: Any = None


class DiscountEvents:
    def __init__(self):
        self._handlers: Dict[str, List[Callable[[Any], None]]] = defaultdict(list)

    def on(self, name: str, handler: Callable[[Any], None]) -> None:
        self._handlers[name].append(handler)

    def off(self, name: str, handler: Callable[[Any], None]) -> None:
        if handler in self._handlers.get(name, []):
            self._handlers[name].remove(handler)

    def has_handlers(self, name: str) -> bool:
        return bool(self._handlers.get(name))

    def clear(self) -> None:
        self._handlers.clear()

    def trigger(self, name: str, event: Any) -> Any:
        was_valid = getattr(event, "is_valid", None)
        for handler in list(self._handlers.get(name, [])):
            handler(event)
            # Handlers may only downgrade a match
            if was_valid is False:
                event.is_valid = False
            was_valid = getattr(event, "is_valid", None)
        return event


# Process-wide registry; handlers are registered at import/startup time
discount_events = DiscountEvents()
