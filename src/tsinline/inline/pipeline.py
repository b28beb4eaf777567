from __future__ import annotations

import logging
from dataclasses import dataclass, field

from tsinline.fold.control_flow import reduce_body
from tsinline.fold.env import ConstEnv
from tsinline.fold.simplify import Simplifier
from tsinline.inline.binder import bind_parameters
from tsinline.resolve.imports import needed_imports
from tsinline.result import Failure, Result, Success, unsupported
from tsinline.syntax.nodes import Block, Call, Expr, FunctionDef
from tsinline.syntax.parser import SourceModule
from tsinline.syntax.render import render

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class InlineResult:
    expression: Expr
    text: str
    # import declarations (source text) the caller has to add
    needed_imports: list[str] = field(default_factory=list)


def inline_body(definition: FunctionDef, call: Call, caller_env: ConstEnv) -> Result[Expr]:
    """The callee body as one expression over the call's arguments."""
    if definition.is_generator or definition.uses_this:
        log.debug("%s is a generator or reads this/arguments", definition.name)
        return unsupported()
    binding = bind_parameters(definition.params, call.args, caller_env)
    if isinstance(binding, Failure):
        return binding
    simplifier = Simplifier(binding.value.arg_map, binding.value.param_env)
    if isinstance(definition.body, Block):
        return reduce_body(definition.body, simplifier)
    expr = simplifier.simplify(definition.body)
    if simplifier.failure is not None:
        return simplifier.failure
    return Success(expr)


def bind_and_inline(
    call: Call,
    definition: FunctionDef,
    caller_env: ConstEnv,
    caller: SourceModule | None = None,
) -> Result[InlineResult]:
    folded = inline_body(definition, call, caller_env)
    if isinstance(folded, Failure):
        return folded
    expr = folded.value
    imports: list[str] = []
    if caller is not None and definition.module is not None:
        imports = needed_imports(expr, definition.module, caller)
    return Success(InlineResult(expr, render(expr), imports))
