from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from tsinline.fold.env import ConstEnv, resolve
from tsinline.fold.literals import is_deep_literal, is_simple_literal
from tsinline.fold.simplify import Simplifier
from tsinline.result import Result, Success, unsupported
from tsinline.syntax.nodes import (
    ArrayPattern,
    ElementAccess,
    Expr,
    Identifier,
    NamePattern,
    NumericLiteral,
    ObjectPattern,
    Param,
    Parenthesized,
    PatternElement,
    PropertyAccess,
    Spread,
    StringLiteral,
)
from tsinline.util.jsvalues import to_number

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Binding:
    """Parameter-bound names and the ones known to be literal constants."""

    arg_map: dict[str, Expr] = field(default_factory=dict)
    param_env: dict[str, Expr] = field(default_factory=dict)


def is_side_effect_free(expr: Expr) -> bool:
    return isinstance(expr, Identifier) or is_deep_literal(expr)


def is_reevaluable(expr: Expr) -> bool:
    """Expressions that can be repeated once per destructured name."""
    if isinstance(expr, Parenthesized):
        return is_reevaluable(expr.inner)
    if isinstance(expr, Identifier) or is_deep_literal(expr):
        return True
    if isinstance(expr, PropertyAccess):
        return is_reevaluable(expr.base)
    if isinstance(expr, ElementAccess):
        return is_reevaluable(expr.base) and (is_simple_literal(expr.index) or isinstance(expr.index, Identifier))
    return False


class _Binder:
    def __init__(self, caller_env: ConstEnv) -> None:
        self.caller_env = caller_env
        self.arg_map: dict[str, Expr] = {}
        self.param_env: dict[str, Expr] = {}

    def bind(self, name: str, value: Expr) -> None:
        self.arg_map[name] = value
        resolved = resolve(value, self.caller_env)
        if resolved is not None and is_deep_literal(resolved):
            self.param_env[name] = resolved

    def bind_element(self, element: PatternElement, access: Expr) -> bool:
        if element.rest or element.default is not None or not isinstance(element.target, NamePattern):
            return False
        self.bind(element.target.name, access)
        return True

    def bind_object(self, pattern: ObjectPattern, value: Expr) -> bool:
        for element in pattern.elements:
            if element.key is None or element.key_kind == "computed":
                return False
            access: Expr
            if element.key_kind == "identifier":
                access = PropertyAccess(value, element.key)
            elif element.key_kind == "number":
                access = ElementAccess(value, NumericLiteral(to_number(element.key)))
            else:
                access = ElementAccess(value, StringLiteral(element.key))
            if not self.bind_element(element, access):
                return False
        return True

    def bind_array(self, pattern: ArrayPattern, value: Expr) -> bool:
        for index, element in enumerate(pattern.elements):
            if element is None:
                continue
            if not self.bind_element(element, ElementAccess(value, NumericLiteral(float(index)))):
                return False
        return True


def bind_parameters(
    params: Sequence[Param],
    args: Sequence[Expr | Spread],
    caller_env: ConstEnv | None = None,
) -> Result[Binding]:
    """Map call arguments (or defaults) onto the callee's parameter patterns."""
    binder = _Binder(caller_env or {})
    if any(isinstance(arg, Spread) for arg in args):
        return unsupported()
    for extra in args[len(params) :]:
        assert not isinstance(extra, Spread)
        if not is_side_effect_free(extra):
            log.debug("extra argument may have side effects")
            return unsupported()
    for i, param in enumerate(params):
        if param.rest:
            return unsupported()
        arg = args[i] if i < len(args) else None
        assert not isinstance(arg, Spread)
        if arg == Identifier("undefined"):
            arg = None
        if arg is None:
            if param.default is None:
                log.debug("missing argument with no default")
                return unsupported()
            folder = Simplifier(dict(binder.arg_map))
            arg = folder.simplify(param.default)
            if folder.failure is not None:
                return folder.failure
        pattern = param.pattern
        if isinstance(pattern, NamePattern):
            binder.bind(pattern.name, arg)
            continue
        if isinstance(pattern, (ObjectPattern, ArrayPattern)):
            if not is_reevaluable(arg):
                log.debug("destructured argument is not side-effect free")
                return unsupported()
            ok = binder.bind_object(pattern, arg) if isinstance(pattern, ObjectPattern) else binder.bind_array(pattern, arg)
            if not ok:
                return unsupported()
            continue
        return unsupported()
    return Success(Binding(binder.arg_map, binder.param_env))
