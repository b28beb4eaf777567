from __future__ import annotations

from pathlib import Path

from tsinline.scope import collect_visible_constants
from tsinline.syntax.nodes import ArrayLiteral, NumericLiteral
from tsinline.syntax.parser import SourceModule, parse_source


def _parse(src: str) -> SourceModule:
    module = parse_source(Path("sample.ts"), src)
    assert module is not None
    return module


def _at(module: SourceModule, snippet: str) -> int:
    return module.source.index(snippet.encode("utf-8"))


def test_parameters_hide_outer_constants_and_later_constants_are_invisible() -> None:
    src = (
        "const a = 1;\n"
        "function f(a: number) {\n"
        "  const b = 2;\n"
        "  return a + b + c;\n"
        "}\n"
        "const c = 3;\n"
    )
    module = _parse(src)
    env = collect_visible_constants(module, _at(module, "a + b + c"))
    assert sorted(env) == ["b"]
    assert env["b"] == NumericLiteral(2.0, raw="2")


def test_innermost_constant_wins() -> None:
    src = (
        "const size = 1;\n"
        "function f() {\n"
        "  const size = 5;\n"
        "  return size * 2;\n"
        "}\n"
    )
    module = _parse(src)
    env = collect_visible_constants(module, _at(module, "size * 2"))
    assert env["size"] == NumericLiteral(5.0, raw="5")


def test_let_in_inner_block_masks_outer_const() -> None:
    src = "const x = 1;\n{\n  let x = 2;\n  use(x);\n}\nuse(x);\n"
    module = _parse(src)
    assert "x" not in collect_visible_constants(module, _at(module, "use(x);\n}"))
    assert collect_visible_constants(module, module.source.rindex(b"use(x)"))["x"] == NumericLiteral(1.0, raw="1")


def test_only_deep_literals_are_collected() -> None:
    src = (
        "const arr = [1, 2] as const;\n"
        "const nested = { list: [1, { ok: true }] };\n"
        "const made = make();\n"
        "const ref = arr;\n"
        "export const exported = 'e';\n"
        "use();\n"
    )
    module = _parse(src)
    env = collect_visible_constants(module, _at(module, "use();"))
    assert sorted(env) == ["arr", "exported", "nested"]
    assert isinstance(env["arr"], ArrayLiteral)


def test_constant_is_not_visible_inside_its_own_declaration() -> None:
    src = "const total = [1, 2].map((n) => n + total);\n"
    module = _parse(src)
    assert collect_visible_constants(module, _at(module, "n + total")) == {}
