from __future__ import annotations

import math
from collections.abc import Mapping

from tsinline.fold.literals import is_simple_literal, key_string, literal_value
from tsinline.syntax.nodes import (
    ArrayLiteral,
    ElementAccess,
    Expr,
    Hole,
    Identifier,
    ObjectLiteral,
    Parenthesized,
    Property,
    PropertyAccess,
    Spread,
)
from tsinline.util.jsvalues import to_string

# Bounds chains of constant aliases (`const a = b.c; const b = {...}`). The
# input tree is acyclic, so this only caps legitimate but long chains.
MAX_CONST_DEPTH = 8

ConstEnv = Mapping[str, Expr]


def resolve(expr: Expr, env: ConstEnv, depth: int = 0) -> Expr | None:
    """Resolve ``expr`` to a literal expression through ``env``, or None."""
    if depth > MAX_CONST_DEPTH:
        return None
    if is_simple_literal(expr) or isinstance(expr, (ArrayLiteral, ObjectLiteral)):
        return expr
    if isinstance(expr, Parenthesized):
        return resolve(expr.inner, env, depth)
    if isinstance(expr, Identifier):
        bound = env.get(expr.name)
        if bound is None:
            return None
        return resolve(bound, env, depth + 1)
    if isinstance(expr, PropertyAccess):
        base = resolve(expr.base, env, depth + 1)
        if not isinstance(base, ObjectLiteral):
            return None
        member = object_member(base, expr.name)
        return resolve(member, env, depth + 1) if member is not None else None
    if isinstance(expr, ElementAccess):
        base = resolve(expr.base, env, depth + 1)
        key = resolve(expr.index, env, depth + 1)
        if base is None or key is None or not is_simple_literal(key):
            return None
        value = literal_value(key)
        if isinstance(base, ArrayLiteral):
            if not isinstance(value, float) or isinstance(value, bool):
                return None
            element = array_element(base, value)
        elif isinstance(base, ObjectLiteral):
            if value is None:
                return None
            element = object_member(base, to_string(value))
        else:
            return None
        return resolve(element, env, depth + 1) if element is not None else None
    return None


def object_member(obj: ObjectLiteral, name: str) -> Expr | None:
    """Value of property ``name``; later properties win, unknown members block."""
    for member in reversed(obj.members):
        if not isinstance(member, Property):
            return None
        key = key_string(member.key)
        if key is None:
            return None
        if key == name:
            return member.value
    return None


def array_element(arr: ArrayLiteral, index: float) -> Expr | None:
    if math.isnan(index) or index < 0 or not index.is_integer():
        return None
    i = int(index)
    if i >= len(arr.elements):
        return None
    # a spread shifts the slots after it
    if any(isinstance(element, Spread) for element in arr.elements[: i + 1]):
        return None
    element = arr.elements[i]
    if isinstance(element, Hole):
        return None
    return element  # type: ignore[return-value]
