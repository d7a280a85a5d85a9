"""Condition rule-sets attached to discounts.

A condition is a list of rules that must all match the target entity (an order, a
customer or an address). Rules are tagged by ``type`` and may nest through the
``all``/``any``/``not`` combinators. A condition without rules always matches.

Stored config example::

    {"rules": [
        {"type": "total_price", "operator": ">=", "value": 100},
        {"type": "any", "rules": [
            {"type": "in_list", "attribute": "shipping_address.country_code", "values": ["US", "CA"]},
            {"type": "text", "attribute": "email", "operator": "ends_with", "value": "@example.com"},
        ]},
    ]}
"""
from pydantic import BaseModel, Field
from typing import Annotated, Any, List, Literal, Optional, Union

_MISSING = object()


def resolve_attribute(entity: Any, path: str) -> Any:
    """Read a dotted attribute path from an ORM entity or a dict; missing parts give None."""
    value = entity
    for part in path.split("."):
        if value is None:
            return None
        if isinstance(value, dict):
            value = value.get(part)
        else:
            value = getattr(value, part, _MISSING)
            if value is _MISSING:
                return None
    return value


class TextRule(BaseModel):
    type: Literal["text"] = "text"
    attribute: str
    operator: Literal["=", "!=", "contains", "starts_with", "ends_with", "empty", "not_empty"] = "="
    value: str = ""

    def matches(self, entity: Any) -> bool:
        actual = resolve_attribute(entity, self.attribute)
        if self.operator == "empty":
            return actual is None or str(actual) == ""
        if self.operator == "not_empty":
            return actual is not None and str(actual) != ""
        if actual is None:
            return self.operator == "!="

        actual = str(actual).lower()
        expected = self.value.lower()
        if self.operator == "=":
            return actual == expected
        if self.operator == "!=":
            return actual != expected
        if self.operator == "contains":
            return expected in actual
        if self.operator == "starts_with":
            return actual.startswith(expected)
        return actual.endswith(expected)


class NumberRule(BaseModel):
    type: Literal["number"] = "number"
    attribute: str
    operator: Literal["=", "!=", "<", "<=", ">", ">=", "between", "empty", "not_empty"] = ">="
    value: Optional[float] = None
    max_value: Optional[float] = None

    def matches(self, entity: Any) -> bool:
        actual = resolve_attribute(entity, self.attribute)
        if self.operator == "empty":
            return actual is None
        if self.operator == "not_empty":
            return actual is not None
        if actual is None:
            return False

        try:
            actual = float(actual)
        except (TypeError, ValueError):
            return False

        if self.operator == "between":
            if self.value is not None and actual < self.value:
                return False
            if self.max_value is not None and actual > self.max_value:
                return False
            return True

        if self.value is None:
            return True
        if self.operator == "=":
            return actual == self.value
        if self.operator == "!=":
            return actual != self.value
        if self.operator == "<":
            return actual < self.value
        if self.operator == "<=":
            return actual <= self.value
        if self.operator == ">":
            return actual > self.value
        return actual >= self.value


class TotalPriceRule(NumberRule):
    """Order total price, after adjustments."""
    type: Literal["total_price"] = "total_price"
    attribute: str = "total_price"


class TotalQtyRule(NumberRule):
    type: Literal["total_qty"] = "total_qty"
    attribute: str = "total_qty"


class InListRule(BaseModel):
    type: Literal["in_list"] = "in_list"
    attribute: str
    operator: Literal["in", "not_in"] = "in"
    values: List[Union[int, str]] = Field(default_factory=list)

    def matches(self, entity: Any) -> bool:
        actual = resolve_attribute(entity, self.attribute)
        normalized = {str(v).lower() for v in self.values}
        found = actual is not None and str(actual).lower() in normalized
        return found if self.operator == "in" else not found


class BooleanRule(BaseModel):
    type: Literal["boolean"] = "boolean"
    attribute: str
    value: bool = True

    def matches(self, entity: Any) -> bool:
        return bool(resolve_attribute(entity, self.attribute)) is self.value


class AllRule(BaseModel):
    type: Literal["all"] = "all"
    rules: List["ConditionRule"] = Field(default_factory=list)

    def matches(self, entity: Any) -> bool:
        return all(rule.matches(entity) for rule in self.rules)


class AnyRule(BaseModel):
    type: Literal["any"] = "any"
    rules: List["ConditionRule"] = Field(default_factory=list)

    def matches(self, entity: Any) -> bool:
        if not self.rules:
            return True
        return any(rule.matches(entity) for rule in self.rules)


class NotRule(BaseModel):
    type: Literal["not"] = "not"
    rule: "ConditionRule"

    def matches(self, entity: Any) -> bool:
        return not self.rule.matches(entity)


ConditionRule = Annotated[
    Union[
        TextRule,
        NumberRule,
        TotalPriceRule,
        TotalQtyRule,
        InListRule,
        BooleanRule,
        AllRule,
        AnyRule,
        NotRule,
    ],
    Field(discriminator="type"),
]

AllRule.model_rebuild()
AnyRule.model_rebuild()
NotRule.model_rebuild()


class Condition(BaseModel):
    rules: List[ConditionRule] = Field(default_factory=list)

    @property
    def has_rules(self) -> bool:
        return bool(self.rules)

    def matches(self, entity: Any) -> bool:
        return all(rule.matches(entity) for rule in self.rules)

    @classmethod
    def from_config(cls, config: Any) -> "Condition":
        if not config:
            return cls()
        if isinstance(config, Condition):
            return config
        if isinstance(config, list):
            return cls.model_validate({"rules": config})
        return cls.model_validate(config)

    def get_config(self) -> Optional[dict]:
        if not self.rules:
            return None
        return self.model_dump(mode="json")
