"""Reduce single if-chains and switches in a function body to one expression."""

from __future__ import annotations

import logging

from tsinline.fold.literals import is_simple_literal, literal_value, to_literal
from tsinline.fold.simplify import Simplifier
from tsinline.result import Result, Success, non_constant, unsupported
from tsinline.syntax.nodes import Block, Expr, If, Return, Stmt, Switch
from tsinline.util.jsvalues import JsValue, strict_equals

log = logging.getLogger(__name__)


def extract_return_expression(stmt: Stmt) -> Expr | None:
    """``return <expr>`` directly, or as the only statement of a block."""
    if isinstance(stmt, Return):
        return stmt.expression
    if isinstance(stmt, Block) and len(stmt.statements) == 1:
        inner = stmt.statements[0]
        if isinstance(inner, Return):
            return inner.expression
    return None


def _finish(simplifier: Simplifier, expr: Expr) -> Result[Expr]:
    result = simplifier.simplify(expr)
    if simplifier.failure is not None:
        return simplifier.failure
    return Success(result)


def reduce_if_chain(stmt: If, simplifier: Simplifier) -> Result[Expr]:
    branches: list[tuple[Expr, Expr]] = []
    otherwise: Expr | None = None
    current: If | None = stmt
    while current is not None:
        returned = extract_return_expression(current.consequent)
        if returned is None:
            return unsupported()
        branches.append((current.condition, returned))
        alternate = current.alternate
        if alternate is None:
            current = None
        elif isinstance(alternate, If):
            current = alternate
        else:
            otherwise = extract_return_expression(alternate)
            if otherwise is None:
                return unsupported()
            current = None

    chosen: Expr | None = None
    for condition, returned in branches:
        decided = simplifier.decide(condition, simplifier.simplify(condition))
        if not isinstance(decided, bool):
            log.debug("if condition is not constant after substitution")
            return non_constant()
        if decided and chosen is None:
            chosen = returned
    if chosen is None:
        chosen = otherwise
    if chosen is None:
        return non_constant()
    return _finish(simplifier, chosen)


def _label_value(expr: Expr, simplifier: Simplifier) -> JsValue | None:
    simplified = simplifier.simplify(expr)
    value = simplifier.decide(expr, simplified)
    if value is None:
        return None
    if isinstance(value, float) and value == 0:
        value = 0.0
    literal = to_literal(value)
    if literal is None or not is_simple_literal(literal):
        return None
    return literal_value(literal)


def reduce_switch(stmt: Switch, simplifier: Simplifier) -> Result[Expr]:
    discriminant = _label_value(stmt.discriminant, simplifier)
    if discriminant is None:
        log.debug("switch discriminant is not a literal after substitution")
        return non_constant()
    default: Expr | None = None
    for clause in stmt.clauses:
        if clause.test is None:
            if len(clause.body) != 1:
                return unsupported()
            default = extract_return_expression(clause.body[0])
            if default is None:
                return unsupported()
            continue
        label = _label_value(clause.test, simplifier)
        if label is None:
            return non_constant()
        if not strict_equals(discriminant, label):
            continue
        if len(clause.body) != 1:
            # fallthrough or multi-statement case
            return unsupported()
        returned = extract_return_expression(clause.body[0])
        if returned is None:
            return unsupported()
        return _finish(simplifier, returned)
    if default is None:
        return non_constant()
    return _finish(simplifier, default)


def reduce_body(body: Block, simplifier: Simplifier) -> Result[Expr]:
    """Single expression equivalent to a block body, or why there is none."""
    if len(body.statements) != 1:
        return unsupported()
    stmt = body.statements[0]
    if isinstance(stmt, Return):
        if stmt.expression is None:
            return unsupported()
        return _finish(simplifier, stmt.expression)
    if isinstance(stmt, If):
        return reduce_if_chain(stmt, simplifier)
    if isinstance(stmt, Switch):
        return reduce_switch(stmt, simplifier)
    return unsupported()
