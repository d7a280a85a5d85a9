"""Sandboxed evaluation of discount condition formulas.

Formulas are single expressions in a small Python-like grammar, evaluated against
plain dict params, e.g.::

    order.total_price > 100 and order.shipping_address.country_code in ["US", "CA"]

Only literals, names from the params, dict attribute/key access, arithmetic,
comparisons, boolean logic, conditional expressions and a fixed set of helper
functions are allowed. Anything else is rejected before evaluation.
"""
import ast
import operator
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger()

MAX_FORMULA_LENGTH = 2000


class FormulaError(Exception):
    pass


def _starts_with(value, prefix) -> bool:
    return str(value).startswith(str(prefix))


def _ends_with(value, suffix) -> bool:
    return str(value).endswith(str(suffix))


def _multiply(left, right):
    if isinstance(left, (str, list, tuple)) or isinstance(right, (str, list, tuple)):
        raise FormulaError("Only numbers can be multiplied")
    return operator.mul(left, right)


FUNCTIONS = {
    "abs": abs,
    "float": float,
    "int": int,
    "len": len,
    "lower": lambda value: str(value).lower(),
    "max": max,
    "min": min,
    "round": round,
    "str": str,
    "sum": sum,
    "upper": lambda value: str(value).upper(),
    "starts_with": _starts_with,
    "ends_with": _ends_with,
}

CONSTANTS = {"true": True, "false": False, "null": None, "none": None}

BIN_OPS = {
    ast.Add: operator.add,
    ast.Sub: operator.sub,
    ast.Mult: _multiply,
    ast.Div: operator.truediv,
    ast.FloorDiv: operator.floordiv,
    ast.Mod: operator.mod,
}

UNARY_OPS = {
    ast.Not: operator.not_,
    ast.USub: operator.neg,
    ast.UAdd: operator.pos,
}

COMPARE_OPS = {
    ast.Eq: operator.eq,
    ast.NotEq: operator.ne,
    ast.Lt: operator.lt,
    ast.LtE: operator.le,
    ast.Gt: operator.gt,
    ast.GtE: operator.ge,
    ast.In: lambda a, b: a in b,
    ast.NotIn: lambda a, b: a not in b,
    ast.Is: operator.is_,
    ast.IsNot: operator.is_not,
}

ALLOWED_NODES = (
    ast.Expression,
    ast.BoolOp,
    ast.And,
    ast.Or,
    ast.UnaryOp,
    ast.BinOp,
    ast.Compare,
    ast.IfExp,
    ast.Call,
    ast.Constant,
    ast.Name,
    ast.Load,
    ast.Attribute,
    ast.Subscript,
    ast.List,
    ast.Tuple,
) + tuple(BIN_OPS) + tuple(UNARY_OPS) + tuple(COMPARE_OPS)


def parse(formula: str) -> ast.Expression:
    """Parse and whitelist-check a formula. Raises FormulaError."""
    if len(formula) > MAX_FORMULA_LENGTH:
        raise FormulaError("Formula is too long")
    try:
        tree = ast.parse(formula.strip(), mode="eval")
    except SyntaxError as exc:
        raise FormulaError(f"Invalid formula syntax: {exc.msg}") from exc

    for node in ast.walk(tree):
        if not isinstance(node, ALLOWED_NODES):
            raise FormulaError(f"Unsupported expression: {type(node).__name__}")
        if isinstance(node, ast.Name) and node.id.startswith("_"):
            raise FormulaError(f"Unknown name: {node.id}")
        if isinstance(node, ast.Attribute) and node.attr.startswith("_"):
            raise FormulaError(f"Unknown attribute: {node.attr}")
        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.func.id not in FUNCTIONS:
                raise FormulaError("Only built-in formula functions may be called")
            if node.keywords:
                raise FormulaError("Keyword arguments are not supported")
    return tree


class _Evaluator:
    def __init__(self, params: Dict[str, Any]):
        self.params = params

    def eval(self, node: ast.AST) -> Any:
        if isinstance(node, ast.Expression):
            return self.eval(node.body)
        if isinstance(node, ast.Constant):
            return node.value
        if isinstance(node, ast.Name):
            if node.id in self.params:
                return self.params[node.id]
            if node.id in CONSTANTS:
                return CONSTANTS[node.id]
            raise FormulaError(f"Unknown name: {node.id}")
        if isinstance(node, ast.Attribute):
            value = self.eval(node.value)
            if not isinstance(value, dict):
                raise FormulaError(f"Cannot read “{node.attr}” from {type(value).__name__}")
            return value.get(node.attr)
        if isinstance(node, ast.Subscript):
            value = self.eval(node.value)
            key = self.eval(node.slice)
            if isinstance(value, dict):
                return value.get(key)
            if isinstance(value, (list, tuple, str)) and isinstance(key, int):
                return value[key]
            raise FormulaError("Unsupported subscript")
        if isinstance(node, (ast.List, ast.Tuple)):
            return [self.eval(element) for element in node.elts]
        if isinstance(node, ast.BoolOp):
            if isinstance(node.op, ast.And):
                result = True
                for value in node.values:
                    result = self.eval(value)
                    if not result:
                        return result
                return result
            result = False
            for value in node.values:
                result = self.eval(value)
                if result:
                    return result
            return result
        if isinstance(node, ast.UnaryOp):
            return UNARY_OPS[type(node.op)](self.eval(node.operand))
        if isinstance(node, ast.BinOp):
            return BIN_OPS[type(node.op)](self.eval(node.left), self.eval(node.right))
        if isinstance(node, ast.Compare):
            left = self.eval(node.left)
            for op, comparator in zip(node.ops, node.comparators):
                right = self.eval(comparator)
                if not COMPARE_OPS[type(op)](left, right):
                    return False
                left = right
            return True
        if isinstance(node, ast.IfExp):
            return self.eval(node.body) if self.eval(node.test) else self.eval(node.orelse)
        if isinstance(node, ast.Call):
            args = [self.eval(arg) for arg in node.args]
            return FUNCTIONS[node.func.id](*args)
        raise FormulaError(f"Unsupported expression: {type(node).__name__}")


def evaluate(formula: str, params: Optional[Dict[str, Any]] = None) -> Any:
    """Evaluate a formula. Raises FormulaError (or the runtime error of an operation)."""
    return _Evaluator(params or {}).eval(parse(formula))


def validate_condition_syntax(formula: str) -> bool:
    try:
        parse(formula)
    except FormulaError:
        return False
    return True


def evaluate_condition(formula: str, params: Dict[str, Any], name: str = "Evaluate Condition Formula") -> bool:
    """Evaluate a condition formula to a bool; any failure evaluates to False."""
    try:
        return bool(evaluate(formula, params))
    except Exception as exc:
        logger.warning(
            "discount_formula_failed",
            name=name,
            formula=formula,
            error_type=type(exc).__name__,
            detail=str(exc),
        )
        return False
