"""Argument substitution and literal folding over the expression model."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Mapping
from typing import Any

from tsinline.fold.env import ConstEnv, object_member, resolve
from tsinline.fold.literals import is_deep_literal, is_simple_literal, key_string, literal_value, to_literal
from tsinline.result import Failure, unsupported
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
    ObjectMember,
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
from tsinline.syntax.render import PRIMARY, precedence
from tsinline.syntax.walk import value_names
from tsinline.util.jsvalues import (
    JsValue,
    add,
    arithmetic,
    compare,
    escape_template,
    loose_equals,
    strict_equals,
    to_number,
    to_string,
    truthy,
    unescape,
)

log = logging.getLogger(__name__)

_COMPARISONS = {"<", "<=", ">", ">="}
_ARITHMETIC = {"-", "*", "/", "%"}


def evaluate(expr: Expr, env: ConstEnv | None = None) -> JsValue | None:
    """Primitive value of ``expr`` when it is computable from literals alone.

    With ``env``, identifiers and member chains are first resolved through
    the constant environment.
    """
    if env and isinstance(expr, (Identifier, PropertyAccess, ElementAccess)):
        resolved = resolve(expr, env)
        if resolved is None or not is_simple_literal(resolved):
            return None
        return literal_value(resolved)
    value = literal_value(expr)
    if value is not None:
        return value
    if isinstance(expr, Parenthesized):
        return evaluate(expr.inner, env)
    if isinstance(expr, Unary):
        return _evaluate_unary(expr, env)
    if isinstance(expr, Binary):
        return _evaluate_binary(expr, env)
    if isinstance(expr, Conditional):
        condition = evaluate(expr.condition, env)
        if not isinstance(condition, bool):
            return None
        return evaluate(expr.when_true if condition else expr.when_false, env)
    if isinstance(expr, TemplateLiteral):
        out = [unescape(expr.quasis[0], template=True)]
        for sub, quasi in zip(expr.expressions, expr.quasis[1:]):
            sub_value = evaluate(sub, env)
            if sub_value is None:
                return None
            out.append(to_string(sub_value))
            out.append(unescape(quasi, template=True))
        return "".join(out)
    return None


def _evaluate_unary(expr: Unary, env: ConstEnv | None) -> JsValue | None:
    operand = evaluate(expr.operand, env)
    if operand is None:
        return None
    if expr.op == "!":
        return not truthy(operand)
    if expr.op == "-":
        return -to_number(operand)
    if expr.op == "+":
        return to_number(operand)
    if expr.op == "typeof":
        if isinstance(operand, bool):
            return "boolean"
        return "number" if isinstance(operand, float) else "string"
    return None


def _evaluate_binary(expr: Binary, env: ConstEnv | None) -> JsValue | None:
    left = evaluate(expr.left, env)
    if left is None:
        return None
    op = expr.op
    if op in {"&&", "||"}:
        # short circuit: the right operand only matters when it is reached
        if (op == "&&") != truthy(left):
            return left
        return evaluate(expr.right, env)
    right = evaluate(expr.right, env)
    if right is None:
        return None
    if op == "===":
        return strict_equals(left, right)
    if op == "!==":
        return not strict_equals(left, right)
    if op == "==":
        return loose_equals(left, right)
    if op == "!=":
        return not loose_equals(left, right)
    if op in _COMPARISONS:
        return compare(op, left, right)
    if op == "+":
        return add(left, right)
    if op in _ARITHMETIC:
        return arithmetic(op, left, right)
    return None


def _unwrap(expr: Expr) -> Expr:
    while isinstance(expr, Parenthesized):
        expr = expr.inner
    return expr


def _is_indexable_literal(expr: Expr) -> bool:
    # holes keep their slot, so a sparse array of literals can still be indexed
    if isinstance(expr, ArrayLiteral):
        return all(isinstance(element, Hole) or is_deep_literal(element) for element in expr.elements)
    return isinstance(expr, ObjectLiteral) and is_deep_literal(expr)


class Simplifier:
    """Substitutes bound arguments into an expression and folds literals.

    ``arg_map`` maps parameter names to caller-side expressions; each is
    folded once with an empty map and never substituted again.
    ``const_env`` maps names of the unsubstituted expression to literal
    values and is consulted when a decision (a condition, a switch label or
    a spread source) has to be made. A shape that cannot be substituted
    safely sets ``failure`` and leaves that subtree unchanged.
    """

    def __init__(
        self,
        arg_map: Mapping[str, Expr] | None = None,
        const_env: ConstEnv | None = None,
        _folded: dict[str, Expr] | None = None,
    ) -> None:
        self.arg_map: Mapping[str, Expr] = arg_map or {}
        self.const_env: ConstEnv = const_env or {}
        self.failure: Failure | None = None
        self._folded: dict[str, Expr] = {} if _folded is None else _folded
        self._handlers: dict[type, Callable[[Any], Expr]] = {
            Identifier: self._identifier,
            NumericLiteral: self._leaf,
            StringLiteral: self._leaf,
            BooleanLiteral: self._leaf,
            TemplateLiteral: self._template,
            ArrayLiteral: self._array,
            ObjectLiteral: self._object,
            PropertyAccess: self._property_access,
            ElementAccess: self._element_access,
            Call: self._call,
            Conditional: self._conditional,
            Binary: self._binary,
            Unary: self._unary,
            Parenthesized: self._parenthesized,
            Await: self._await,
            FunctionExpr: self._function,
            Opaque: self._opaque,
        }

    def simplify(self, expr: Expr) -> Expr:
        handler = self._handlers.get(type(expr))
        if handler is None:
            raise TypeError(f"cannot simplify {type(expr).__name__}")
        return handler(expr)

    def decide(self, original: Expr, simplified: Expr) -> JsValue | None:
        value = evaluate(original, self.const_env) if self.const_env else None
        if value is None:
            value = evaluate(simplified)
        return value

    def resolve_source(self, original: Expr, simplified: Expr) -> Expr | None:
        """Literal aggregate behind a spread source, if one is known."""
        resolved = resolve(original, self.const_env) if self.const_env else None
        if resolved is None:
            resolved = resolve(simplified, {})
        return resolved

    def _fail(self, reason: str) -> None:
        log.debug("Substitution aborted: %s", reason)
        if self.failure is None:
            self.failure = unsupported()

    def _argument(self, name: str) -> Expr:
        folded = self._folded.get(name)
        if folded is None:
            folder = Simplifier()
            folded = folder.simplify(self.arg_map[name])
            if folder.failure is not None:
                self.failure = self.failure or folder.failure
            self._folded[name] = folded
        return folded

    def _fold(self, expr: Expr) -> Expr:
        value = evaluate(expr)
        if value is None:
            return expr
        literal = to_literal(value)
        return literal if literal is not None else expr

    def _leaf(self, expr: Expr) -> Expr:
        return expr

    def _identifier(self, expr: Identifier) -> Expr:
        if expr.name in self.arg_map:
            return self._argument(expr.name)
        return expr

    def _template(self, expr: TemplateLiteral) -> Expr:
        quasis = [expr.quasis[0]]
        expressions: list[Expr] = []
        for sub, quasi in zip(expr.expressions, expr.quasis[1:]):
            simplified = self.simplify(sub)
            value = evaluate(simplified)
            if value is None or (isinstance(value, float) and not math.isfinite(value)):
                expressions.append(simplified)
                quasis.append(quasi)
            else:
                quasis[-1] += escape_template(to_string(value)) + quasi
        if not expressions:
            if not expr.expressions:
                return expr
            return StringLiteral(unescape(quasis[0], template=True))
        return TemplateLiteral(tuple(quasis), tuple(expressions))

    def _array(self, expr: ArrayLiteral) -> Expr:
        elements: list[Expr | Spread | Hole] = []
        for element in expr.elements:
            if isinstance(element, Hole):
                elements.append(element)
            elif isinstance(element, Spread):
                source = self.simplify(element.argument)
                resolved = self.resolve_source(element.argument, source)
                if isinstance(resolved, ArrayLiteral) and is_deep_literal(resolved):
                    elements.extend(resolved.elements)
                else:
                    elements.append(Spread(source))
            else:
                elements.append(self.simplify(element))
        return ArrayLiteral(tuple(elements))

    def _object(self, expr: ObjectLiteral) -> Expr:
        members: list[ObjectMember] = []
        spliced = False
        for member in expr.members:
            if isinstance(member, Spread):
                source = self.simplify(member.argument)
                resolved = self.resolve_source(member.argument, source)
                if isinstance(resolved, ObjectLiteral) and is_deep_literal(resolved):
                    members.extend(resolved.members)
                    spliced = True
                else:
                    members.append(Spread(source))
            elif isinstance(member, OpaqueMember):
                if member.names & self.arg_map.keys():
                    self._fail("method body reads a parameter")
                members.append(member)
            else:
                key = member.key
                if isinstance(key, ComputedKey):
                    key = ComputedKey(self.simplify(key.expression))
                value = self.simplify(member.value)
                shorthand = member.shorthand and value == member.value
                members.append(Property(key, value, shorthand))
        if spliced:
            members = merge_properties(members)
        return ObjectLiteral(tuple(members))

    def _property_access(self, expr: PropertyAccess) -> Expr:
        base = self.simplify(expr.base)
        inner = _unwrap(base)
        if isinstance(inner, ObjectLiteral) and is_deep_literal(inner):
            member = object_member(inner, expr.name)
            if member is not None:
                return member
        return PropertyAccess(base, expr.name, expr.optional)

    def _element_access(self, expr: ElementAccess) -> Expr:
        base = self.simplify(expr.base)
        index = self.simplify(expr.index)
        inner = _unwrap(base)
        if _is_indexable_literal(inner) and is_simple_literal(index):
            member = resolve(ElementAccess(inner, index), {})
            if member is not None:
                return member
        return ElementAccess(base, index, expr.optional)

    def _call(self, expr: Call) -> Expr:
        callee = self.simplify(expr.callee)
        args: list[Expr | Spread] = []
        for arg in expr.args:
            if isinstance(arg, Spread):
                args.append(Spread(self.simplify(arg.argument)))
            else:
                args.append(self.simplify(arg))
        return Call(callee, tuple(args), expr.optional, expr.type_arguments)

    def _conditional(self, expr: Conditional) -> Expr:
        condition = self.simplify(expr.condition)
        decided = self.decide(expr.condition, condition)
        if decided is True:
            return self.simplify(expr.when_true)
        if decided is False:
            return self.simplify(expr.when_false)
        return Conditional(condition, self.simplify(expr.when_true), self.simplify(expr.when_false))

    def _binary(self, expr: Binary) -> Expr:
        return self._fold(Binary(expr.op, self.simplify(expr.left), self.simplify(expr.right)))

    def _unary(self, expr: Unary) -> Expr:
        return self._fold(Unary(expr.op, self.simplify(expr.operand)))

    def _parenthesized(self, expr: Parenthesized) -> Expr:
        inner = self.simplify(expr.inner)
        if precedence(inner) >= PRIMARY:
            return inner
        return Parenthesized(inner)

    def _await(self, expr: Await) -> Expr:
        return Await(self.simplify(expr.operand))

    def _function(self, expr: FunctionExpr) -> Expr:
        inner_map = {k: v for k, v in self.arg_map.items() if k not in expr.bound_names}
        if expr.head_names & inner_map.keys():
            self._fail("parameter default reads a substituted name")
            return expr
        if expr.body is None:
            if expr.block_names & inner_map.keys():
                self._fail("block-bodied function reads a substituted name")
            return expr
        used = value_names(expr.body) & inner_map.keys()
        for name in used:
            if value_names(self._argument(name)) & expr.bound_names:
                self._fail(f"argument for {name} would be captured")
                return expr
        inner_env = {k: v for k, v in self.const_env.items() if k not in expr.bound_names}
        child = Simplifier(inner_map, inner_env, self._folded)
        body = child.simplify(expr.body)
        if child.failure is not None:
            self.failure = self.failure or child.failure
        return FunctionExpr(
            definition=expr.definition,
            head=expr.head,
            body=body,
            bound_names=expr.bound_names,
            head_names=expr.head_names,
            type_names=expr.type_names,
        )

    def _opaque(self, expr: Opaque) -> Expr:
        if expr.names & self.arg_map.keys():
            self._fail("opaque expression reads a substituted name")
            return expr
        parts: list[str | Slot] = []
        for part in expr.parts:
            if isinstance(part, Slot):
                parts.append(Slot(self.simplify(part.expression), part.precedence))
            else:
                parts.append(part)
        return Opaque(tuple(parts), expr.precedence, expr.names, expr.type_names, expr.binds)


def merge_properties(members: list[ObjectMember]) -> list[ObjectMember]:
    """Collapse repeated literal keys: first position, last value.

    Only properties with literal values merge, and only when no spread,
    computed key or method sits between the two occurrences.
    """
    out: list[ObjectMember] = []
    positions: dict[str, int] = {}
    for member in members:
        if not isinstance(member, Property) or isinstance(member.key, ComputedKey):
            positions.clear()
            out.append(member)
            continue
        key = key_string(member.key)
        if key is None:
            positions.clear()
            out.append(member)
            continue
        if not is_deep_literal(member.value):
            positions.pop(key, None)
            out.append(member)
            continue
        pos = positions.get(key)
        if pos is not None:
            earlier = out[pos]
            assert isinstance(earlier, Property)
            out[pos] = Property(earlier.key, member.value)
            continue
        positions[key] = len(out)
        out.append(member)
    return out


def simplify(expr: Expr, arg_map: Mapping[str, Expr] | None = None, const_env: ConstEnv | None = None) -> Expr:
    """Substitute and fold, ignoring shapes that cannot be substituted."""
    return Simplifier(arg_map, const_env).simplify(expr)
