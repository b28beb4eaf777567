from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Any

from tsinline.syntax.nodes import (
    ArrayLiteral,
    Await,
    Binary,
    BooleanLiteral,
    Call,
    ComputedKey,
    Conditional,
    ElementAccess,
    Expr,
    FunctionExpr,
    Hole,
    Identifier,
    NumericLiteral,
    ObjectLiteral,
    Opaque,
    OpaqueMember,
    Parenthesized,
    Property,
    PropertyAccess,
    Slot,
    Spread,
    StringLiteral,
    TemplateLiteral,
    Unary,
)


def _none(expr: Any) -> Iterator[Expr]:
    return iter(())


def _elements(elements: Any) -> Iterator[Expr]:
    for element in elements:
        if isinstance(element, Spread):
            yield element.argument
        elif not isinstance(element, Hole):
            yield element


def _object(expr: ObjectLiteral) -> Iterator[Expr]:
    for member in expr.members:
        if isinstance(member, Spread):
            yield member.argument
        elif isinstance(member, Property):
            if isinstance(member.key, ComputedKey):
                yield member.key.expression
            yield member.value


def _opaque(expr: Opaque) -> Iterator[Expr]:
    for part in expr.parts:
        if isinstance(part, Slot):
            yield part.expression


def _function(expr: FunctionExpr) -> Iterator[Expr]:
    if expr.body is not None:
        yield expr.body


_CHILDREN: dict[type, Callable[[Any], Iterator[Expr]]] = {
    Identifier: _none,
    NumericLiteral: _none,
    StringLiteral: _none,
    BooleanLiteral: _none,
    TemplateLiteral: lambda e: iter(e.expressions),
    ArrayLiteral: lambda e: _elements(e.elements),
    ObjectLiteral: _object,
    PropertyAccess: lambda e: iter((e.base,)),
    ElementAccess: lambda e: iter((e.base, e.index)),
    Call: lambda e: _elements((e.callee, *e.args)),
    Conditional: lambda e: iter((e.condition, e.when_true, e.when_false)),
    Binary: lambda e: iter((e.left, e.right)),
    Unary: lambda e: iter((e.operand,)),
    Parenthesized: lambda e: iter((e.inner,)),
    Await: lambda e: iter((e.operand,)),
    FunctionExpr: _function,
    Opaque: _opaque,
}


def children(expr: Expr) -> Iterator[Expr]:
    handler = _CHILDREN.get(type(expr))
    if handler is None:
        raise TypeError(f"unknown expression node {type(expr).__name__}")
    return handler(expr)


def value_names(expr: Expr) -> set[str]:
    """Free value identifiers an expression reads."""
    if isinstance(expr, Identifier):
        return {expr.name}
    out: set[str] = set()
    if isinstance(expr, Opaque):
        out |= expr.names
    elif isinstance(expr, ObjectLiteral):
        for member in expr.members:
            if isinstance(member, OpaqueMember):
                out |= member.names
    elif isinstance(expr, FunctionExpr):
        inner = set(expr.head_names) | set(expr.block_names)
        if expr.body is not None:
            inner |= value_names(expr.body)
        return inner - expr.bound_names
    for child in children(expr):
        out |= value_names(child)
    return out


def type_names(expr: Expr) -> set[str]:
    out: set[str] = set()
    if isinstance(expr, (Opaque, FunctionExpr)):
        out |= expr.type_names
    for child in children(expr):
        out |= type_names(child)
    return out
