"""Collapse ``.map`` and ``Object.fromEntries`` over constant data into literals."""

from __future__ import annotations

import logging
import re

from tsinline.fold.control_flow import reduce_body
from tsinline.fold.env import ConstEnv, resolve
from tsinline.fold.literals import is_deep_literal, is_simple_literal, key_string, literal_value
from tsinline.fold.simplify import Simplifier, merge_properties
from tsinline.inline.binder import bind_parameters
from tsinline.result import Failure, FailureKind, Result, Success
from tsinline.scope import collect_visible_constants
from tsinline.syntax.lower import FUNCTION_EXPRESSION_NODES, Lowerer, unwrap_const_assertion
from tsinline.syntax.nodes import (
    ArrayLiteral,
    Block,
    Expr,
    NumericLiteral,
    ObjectLiteral,
    ObjectMember,
    Property,
    StringLiteral,
)
from tsinline.syntax.parser import Node, SourceModule
from tsinline.syntax.render import property_name, render
from tsinline.syntax.selection import call_arguments, is_from_entries_call, is_map_call, is_object_entries_call
from tsinline.util.jsvalues import to_string

log = logging.getLogger(__name__)

MAP_SHAPES = "Literal-inline-array supports array or Object.entries(...).map(...) only."
BAD_CALLBACK = "Map callback must be an arrow function or function expression with a single return."
BAD_ENTRIES = "Object.fromEntries() argument must be a const array of entries."
BAD_ENTRY = "Each entry must be a [key, value] array."

# integer keys enumerate first, in ascending order
_ARRAY_INDEX_RE = re.compile(r"^(?:0|[1-9][0-9]*)$")
_MAX_ARRAY_INDEX = 2**32 - 2


def _is_array_index(key: str) -> bool:
    return bool(_ARRAY_INDEX_RE.match(key)) and int(key) <= _MAX_ARRAY_INDEX


def object_entries(obj: ObjectLiteral) -> list[Expr]:
    """``Object.entries`` of a deep-literal object as ``[key, value]`` arrays."""
    values: dict[str, Expr] = {}
    for member in obj.members:
        assert isinstance(member, Property)
        key = key_string(member.key)
        assert key is not None
        values[key] = member.value
    indices = sorted((k for k in values if _is_array_index(k)), key=int)
    names = [k for k in values if not _is_array_index(k)]
    return [ArrayLiteral((StringLiteral(k), values[k])) for k in indices + names]


def _map_source(lowerer: Lowerer, receiver: Node, env: ConstEnv) -> Result[list[Expr]]:
    module = lowerer.module
    receiver = unwrap_const_assertion(receiver, module)
    if is_object_entries_call(module, receiver):
        args = call_arguments(receiver)
        if not args:
            return Failure(FailureKind.UNSUPPORTED, "Object.entries() requires one argument.")
        resolved = resolve(lowerer.expr(args[0]), env)
        if not isinstance(resolved, ObjectLiteral) or not is_deep_literal(resolved):
            return Failure(FailureKind.NON_CONSTANT, "Object.entries() argument must be a const object literal.")
        return Success(object_entries(resolved))
    resolved = resolve(lowerer.expr(receiver), env)
    if isinstance(resolved, ArrayLiteral) and is_deep_literal(resolved):
        return Success(list(resolved.elements))  # type: ignore[arg-type]
    if receiver.type == "identifier":
        return Failure(FailureKind.NON_CONSTANT, f'"{module.node_text(receiver)}" must be a const array literal.')
    return Failure(FailureKind.UNSUPPORTED, MAP_SHAPES)


def inline_map(module: SourceModule, call: Node, env: ConstEnv) -> Result[ArrayLiteral]:
    lowerer = Lowerer(module)
    callee = call.child_by_field_name("function")
    receiver = callee.child_by_field_name("object") if callee is not None else None
    if receiver is None:
        return Failure(FailureKind.SELECTION, "Selection is not a .map(...) call.")
    source = _map_source(lowerer, receiver, env)
    if isinstance(source, Failure):
        return source
    elements = source.value

    args = call_arguments(call)
    callback = unwrap_const_assertion(args[0], module) if args else None
    if callback is None or callback.type not in FUNCTION_EXPRESSION_NODES:
        return Failure(FailureKind.UNSUPPORTED, BAD_CALLBACK)
    definition = lowerer.function_def(callback, "")
    if definition.is_async or definition.is_generator or definition.uses_this:
        return Failure(FailureKind.UNSUPPORTED, BAD_CALLBACK)

    full_array = ArrayLiteral(tuple(elements))
    results: list[Expr] = []
    for i, element in enumerate(elements):
        binding = bind_parameters(definition.params, [element, NumericLiteral(float(i)), full_array], env)
        if isinstance(binding, Failure):
            return binding
        simplifier = Simplifier(binding.value.arg_map, binding.value.param_env)
        if isinstance(definition.body, Block):
            reduced = reduce_body(definition.body, simplifier)
            if isinstance(reduced, Failure):
                log.debug("map callback body did not reduce for element %d: %s", i, reduced.message)
                return Failure(reduced.kind, BAD_CALLBACK) if reduced.kind == FailureKind.UNSUPPORTED else reduced
            results.append(reduced.value)
            continue
        value = simplifier.simplify(definition.body)
        if simplifier.failure is not None:
            return simplifier.failure
        results.append(value)
    return Success(ArrayLiteral(tuple(results)))


def _entry_property(entry: Expr) -> Result[Property]:
    if not isinstance(entry, ArrayLiteral) or len(entry.elements) < 2:
        return Failure(FailureKind.UNSUPPORTED, BAD_ENTRY)
    key, value = entry.elements[0], entry.elements[1]
    if not is_simple_literal(key):
        return Failure(FailureKind.UNSUPPORTED, "Invalid entry.")
    if isinstance(key, NumericLiteral):
        return Success(Property(key, value))  # type: ignore[arg-type]
    name = literal_value(key)
    assert name is not None
    return Success(Property(property_name(to_string(name)), value))  # type: ignore[arg-type]


def inline_from_entries(module: SourceModule, call: Node, env: ConstEnv) -> Result[ObjectLiteral]:
    args = call_arguments(call)
    if not args:
        return Failure(FailureKind.UNSUPPORTED, "Object.fromEntries() requires one argument.")
    source = unwrap_const_assertion(args[0], module)
    entries: Expr | None
    if is_map_call(module, source):
        mapped = inline_map(module, source, env)
        if isinstance(mapped, Failure):
            return mapped
        entries = mapped.value
    else:
        entries = resolve(Lowerer(module).expr(source), env)
    if not isinstance(entries, ArrayLiteral) or not is_deep_literal(entries):
        return Failure(FailureKind.NON_CONSTANT, BAD_ENTRIES)
    members: list[ObjectMember] = []
    for entry in entries.elements:
        prop = _entry_property(entry)  # type: ignore[arg-type]
        if isinstance(prop, Failure):
            return prop
        members.append(prop.value)
    return Success(ObjectLiteral(tuple(merge_properties(members))))


def literal_inline_comprehension(module: SourceModule, call: Node, env: ConstEnv | None = None) -> Result[str]:
    """Render a ``.map`` or ``Object.fromEntries`` call over constants as a literal."""
    if env is None:
        env = collect_visible_constants(module, call.start_byte)
    folded: Result[ArrayLiteral] | Result[ObjectLiteral]
    if is_from_entries_call(module, call):
        folded = inline_from_entries(module, call, env)
    elif is_map_call(module, call):
        folded = inline_map(module, call, env)
    else:
        return Failure(FailureKind.SELECTION, "Selection is not a .map(...) or Object.fromEntries(...) call.")
    if isinstance(folded, Failure):
        return folded
    return Success(render(folded.value))
