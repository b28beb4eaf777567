"""Editor-style entry points over (text, selection, path).

Offsets in and out are character offsets into ``text``. Every runner
returns a ``Success[Replacement]`` or a ``Failure`` with a message fit for
the user; none of them raises for an input that cannot be transformed.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from tsinline.config.schema import InlineConfig
from tsinline.fold.comprehension import inline_from_entries, inline_map, literal_inline_comprehension
from tsinline.fold.env import ConstEnv, resolve
from tsinline.fold.literals import is_deep_literal
from tsinline.fold.simplify import Simplifier
from tsinline.inline.pipeline import InlineResult, bind_and_inline
from tsinline.resolve.functions import resolve_definition
from tsinline.result import Failure, FailureKind, Result, Success, unsupported
from tsinline.scope import collect_visible_constants
from tsinline.syntax.lower import Lowerer
from tsinline.syntax.module import module_index
from tsinline.syntax.nodes import Call, Expr
from tsinline.syntax.parser import Node, SourceModule, parse_source
from tsinline.syntax.render import render
from tsinline.syntax.selection import (
    check_async_context,
    find_enclosing_from_entries_call,
    find_enclosing_map_call,
    find_selected_call,
    find_selected_expression,
    needs_parentheses,
)

log = logging.getLogger(__name__)

__all__ = [
    "InlineResult",
    "Replacement",
    "apply_replacement",
    "bind_and_inline",
    "collect_visible_constants",
    "literal_fold",
    "literal_inline_comprehension",
    "resolve_definition",
    "run_literal_inline",
    "run_literal_inline_array",
    "run_literal_inline_object",
    "run_smart_inline",
    "selection_offsets",
]

NO_CALL = "No function call expression found at the selection."
NOT_IDENTIFIER = "Only simple function identifiers are supported (no methods or property accesses)."
NO_EXPRESSION = "No expression found at the selection."
NOT_IN_MAP = "Selection must be inside a .map(...) call (e.g. myArray.map(...) or Object.entries(obj).map(...))."
NOT_IN_FROM_ENTRIES = "Selection must be inside Object.fromEntries(...)."

# failures of the environment rather than of the input
_RUNTIME_ERRORS = (OSError, ValueError, RecursionError)


@dataclass(frozen=True)
class Replacement:
    text: str
    start: int
    end: int
    # import declarations to add to the edited file, one per line
    imports: list[str] = field(default_factory=list)


def selection_offsets(text: str, snippet: str) -> tuple[int, int]:
    """Offsets of the first occurrence of ``snippet`` in ``text``."""
    start = text.find(snippet)
    if start == -1:
        raise ValueError(f"Selection substring not found: {json.dumps(snippet)}")
    return start, start + len(snippet)


def fold_literals(expr: Expr, const_env: ConstEnv) -> Expr:
    arg_map: dict[str, Expr] = {}
    literal_env: dict[str, Expr] = {}
    for name, bound in const_env.items():
        resolved = resolve(bound, const_env)
        if resolved is not None and is_deep_literal(resolved):
            arg_map[name] = resolved
            literal_env[name] = resolved
        else:
            arg_map[name] = bound
    return Simplifier(arg_map, literal_env).simplify(expr)


def literal_fold(expr: Expr, const_env: ConstEnv) -> str:
    """Fold ``expr`` with every constant in ``const_env`` replaced by its value."""
    return render(fold_literals(expr, const_env))


def _parse(text: str, path: Path) -> Result[SourceModule]:
    module = parse_source(path, text)
    if module is None:
        return Failure(FailureKind.IO, f"Could not parse {path}.")
    return Success(module)


def _replacement(module: SourceModule, node: Node, expr: Expr, text: str, imports: list[str] | None = None) -> Replacement:
    if needs_parentheses(module, node, expr):
        text = f"({text})"
    return Replacement(
        text=text,
        start=module.byte_to_char(node.start_byte),
        end=module.byte_to_char(node.end_byte),
        imports=imports or [],
    )


def _absolute(path: Path, workspace_root: Path) -> Path:
    return path if path.is_absolute() else workspace_root / path


def _runtime_failure(action: str, e: BaseException) -> Failure:
    log.debug("%s failed", action, exc_info=True)
    return Failure(FailureKind.IO, f"{action} failed: {e}")


async def _smart_inline(
    text: str, start: int, end: int, path: Path, workspace_root: Path, config: InlineConfig | None
) -> Result[Replacement]:
    parsed = _parse(text, path)
    if isinstance(parsed, Failure):
        return parsed
    module = parsed.value
    call_node = find_selected_call(module, module.char_to_byte(start), module.char_to_byte(end))
    if call_node is None:
        return Failure(FailureKind.SELECTION, NO_CALL)
    callee = call_node.child_by_field_name("function")
    if callee is None or callee.type != "identifier":
        return Failure(FailureKind.UNSUPPORTED, NOT_IDENTIFIER)

    resolved = await resolve_definition(module.node_text(callee), module, workspace_root, config)
    if isinstance(resolved, Failure):
        return resolved
    definition = resolved.value
    if definition.is_async:
        async_failure = check_async_context(module, call_node)
        if async_failure is not None:
            return async_failure

    call = Lowerer(module).expr(call_node)
    if not isinstance(call, Call):
        return unsupported()
    caller_env = collect_visible_constants(module, call_node.start_byte)
    inlined = bind_and_inline(call, definition, caller_env, module)
    if isinstance(inlined, Failure):
        return inlined
    result = inlined.value
    imports = [decl + "\n" for decl in result.needed_imports]
    return Success(_replacement(module, call_node, result.expression, result.text, imports))


async def run_smart_inline(
    text: str,
    start: int,
    end: int,
    path: Path,
    workspace_root: Path,
    config: InlineConfig | None = None,
) -> Result[Replacement]:
    """Replace the selected call with the callee's body folded to one expression."""
    try:
        return await _smart_inline(text, start, end, _absolute(path, workspace_root), workspace_root, config)
    except _RUNTIME_ERRORS as e:
        return _runtime_failure("Smart Inline Function", e)


def run_literal_inline(text: str, start: int, end: int, path: Path) -> Result[Replacement]:
    """Fold the selected expression with the constants visible at it."""
    try:
        return _literal_inline(text, start, end, path)
    except _RUNTIME_ERRORS as e:
        return _runtime_failure("Literal Inline", e)


def _literal_inline(text: str, start: int, end: int, path: Path) -> Result[Replacement]:
    parsed = _parse(text, path)
    if isinstance(parsed, Failure):
        return parsed
    module = parsed.value
    node = find_selected_expression(module, module.char_to_byte(start), module.char_to_byte(end))
    if node is None:
        return Failure(FailureKind.SELECTION, "No expression found at the selection to literal-inline.")
    env = collect_visible_constants(module, node.start_byte)
    folded = fold_literals(Lowerer(module).expr(node), env)
    return Success(_replacement(module, node, folded, render(folded)))


def _comprehension(
    text: str,
    start: int,
    end: int,
    path: Path,
    find: Callable[[SourceModule, Node], Node | None],
    missing: str,
    fold: Callable[[SourceModule, Node, ConstEnv], Result],
) -> Result[Replacement]:
    parsed = _parse(text, path)
    if isinstance(parsed, Failure):
        return parsed
    module = parsed.value
    node = find_selected_expression(module, module.char_to_byte(start), module.char_to_byte(end))
    if node is None:
        return Failure(FailureKind.SELECTION, NO_EXPRESSION)
    call = find(module, node)
    if call is None:
        return Failure(FailureKind.SELECTION, missing)
    folded = fold(module, call, collect_visible_constants(module, call.start_byte))
    if isinstance(folded, Failure):
        return folded
    return Success(_replacement(module, call, folded.value, render(folded.value)))


def _run_comprehension(
    text: str,
    start: int,
    end: int,
    path: Path,
    find: Callable[[SourceModule, Node], Node | None],
    missing: str,
    fold: Callable[[SourceModule, Node, ConstEnv], Result],
) -> Result[Replacement]:
    try:
        return _comprehension(text, start, end, path, find, missing, fold)
    except _RUNTIME_ERRORS as e:
        return _runtime_failure("Literal Inline", e)


def run_literal_inline_array(text: str, start: int, end: int, path: Path) -> Result[Replacement]:
    """Collapse the enclosing ``.map(...)`` over constant data into an array literal."""
    return _run_comprehension(text, start, end, path, find_enclosing_map_call, NOT_IN_MAP, inline_map)


def run_literal_inline_object(text: str, start: int, end: int, path: Path) -> Result[Replacement]:
    """Collapse the enclosing ``Object.fromEntries(...)`` into an object literal."""
    return _run_comprehension(
        text, start, end, path, find_enclosing_from_entries_call, NOT_IN_FROM_ENTRIES, inline_from_entries
    )


def apply_replacement(text: str, path: Path, replacement: Replacement) -> str:
    """``text`` with the replacement made and its imports added after the last import."""
    edited = text[: replacement.start] + replacement.text + text[replacement.end :]
    if not replacement.imports:
        return edited
    block = "".join(replacement.imports)
    module = parse_source(path, text)
    imports = module_index(module).imports if module is not None else []
    if not imports:
        return block + edited
    at = module.byte_to_char(imports[-1].end_byte)  # type: ignore[union-attr]
    if at > replacement.start:
        at += len(replacement.text) - (replacement.end - replacement.start)
    return edited[:at] + "\n" + block.rstrip("\n") + edited[at:]
