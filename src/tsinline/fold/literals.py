from __future__ import annotations

import math

from tsinline.syntax.nodes import (
    ArrayLiteral,
    BooleanLiteral,
    ComputedKey,
    Expr,
    Identifier,
    NumericLiteral,
    ObjectLiteral,
    Property,
    PropertyKey,
    StringLiteral,
    TemplateLiteral,
)
from tsinline.util.jsvalues import JsValue, to_string, unescape


def is_simple_literal(expr: object) -> bool:
    if isinstance(expr, (NumericLiteral, StringLiteral, BooleanLiteral)):
        return True
    return isinstance(expr, TemplateLiteral) and not expr.expressions


def is_deep_literal(expr: object) -> bool:
    """True when ``expr`` is built only from literals and arrays/objects of them."""
    if is_simple_literal(expr):
        return True
    if isinstance(expr, ArrayLiteral):
        return all(is_deep_literal(element) for element in expr.elements)
    if isinstance(expr, ObjectLiteral):
        for member in expr.members:
            if not isinstance(member, Property) or member.shorthand:
                return False
            if isinstance(member.key, ComputedKey) or not is_deep_literal(member.value):
                return False
        return True
    return False


def literal_value(expr: object) -> JsValue | None:
    if isinstance(expr, BooleanLiteral):
        return expr.value
    if isinstance(expr, NumericLiteral):
        return expr.value
    if isinstance(expr, StringLiteral):
        return expr.value
    if isinstance(expr, TemplateLiteral) and not expr.expressions:
        return unescape(expr.quasis[0], template=True)
    return None


def key_string(key: PropertyKey) -> str | None:
    """Canonical property name: ``a``, ``"a"`` and ``1`` / ``"1"`` compare equal."""
    if isinstance(key, Identifier):
        return key.name
    if isinstance(key, StringLiteral):
        return key.value
    if isinstance(key, NumericLiteral):
        return to_string(key.value)
    return None


def to_literal(value: JsValue) -> Expr | None:
    """Literal node for a computed value; non-finite numbers and -0 have none."""
    if isinstance(value, bool):
        return BooleanLiteral(value)
    if isinstance(value, float):
        if not math.isfinite(value):
            return None
        # a printed 0 would drop the sign
        if value == 0 and math.copysign(1.0, value) < 0:
            return None
        return NumericLiteral(value)
    return StringLiteral(value)
