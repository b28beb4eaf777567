from __future__ import annotations

import asyncio
import base64
import json
from pathlib import Path

from tsinline.api import Replacement, run_smart_inline, selection_offsets
from tsinline.config.schema import InlineConfig
from tsinline.resolve.functions import relative_candidates, resolve_definition
from tsinline.resolve.packages import exports_target, sibling_source, split_specifier
from tsinline.result import Failure, FailureKind, Success
from tsinline.syntax.parser import parse_source


def _write(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _inline(root: Path, main_src: str, snippet: str, config: InlineConfig | None = None) -> Success | Failure:
    main = _write(root / "src" / "main.ts", main_src)
    start, end = selection_offsets(main_src, snippet)
    return asyncio.run(run_smart_inline(main_src, start, end, main, root, config))


def test_relative_import(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "math.ts", "export function double(n: number) { return n * 2; }\n")
    result = _inline(tmp_path, 'import { double } from "./math";\nconst r = double(4);\n', "double(4)")
    assert isinstance(result, Success)
    assert result.value.text == "8"
    assert result.value.imports == []


def test_esm_js_specifier_maps_to_ts_source(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "math.ts", "export const half = (n: number) => n / 2;\n")
    result = _inline(tmp_path, 'import { half } from "./math.js";\nconst r = half(x);\n', "half(x)")
    assert isinstance(result, Success)
    assert result.value.text == "x / 2"


def test_default_import(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "greet.ts", "export default function greet(name: string) { return `hi ${name}`; }\n")
    result = _inline(tmp_path, 'import hello from "./greet";\nconst r = hello("bo");\n', 'hello("bo")')
    assert isinstance(result, Success)
    assert result.value.text == '"hi bo"'


def test_reexports_through_index(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "lib" / "index.ts", 'export { inc as increment } from "./ops";\nexport * from "./more";\n')
    _write(tmp_path / "src" / "lib" / "ops.ts", "export const inc = (n: number) => n + 1;\n")
    _write(tmp_path / "src" / "lib" / "more.ts", "export const dec = (n: number) => n - 1;\n")
    main_src = 'import { increment, dec } from "./lib";\nconst a = increment(1);\nconst b = dec(1);\n'
    first = _inline(tmp_path, main_src, "increment(1)")
    assert isinstance(first, Success)
    assert first.value.text == "2"
    second = _inline(tmp_path, main_src, "dec(1)")
    assert isinstance(second, Success)
    assert second.value.text == "0"


def test_reexport_hops_are_bounded(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "a.ts", 'export * from "./b";\n')
    _write(tmp_path / "src" / "b.ts", "export const one = () => 1;\n")
    main_src = 'import { one } from "./a";\nconst r = one();\n'
    result = _inline(tmp_path, main_src, "one()", InlineConfig(max_reexport_hops=0))
    assert isinstance(result, Failure)
    assert result.kind == FailureKind.UNRESOLVED


def _package(root: Path, name: str, files: dict[str, str], manifest: dict | None = None) -> Path:
    pkg = root / "node_modules" / name
    _write(pkg / "package.json", json.dumps(manifest or {"main": "dist/index.js"}))
    for rel, text in files.items():
        _write(pkg / rel, text)
    return pkg


def test_package_with_sibling_source(tmp_path: Path) -> None:
    _package(
        tmp_path,
        "calc",
        {
            "dist/index.js": "exports.triple = (n) => n * 3;\n",
            "dist/index.ts": "export const triple = (n: number) => n * 3;\n",
        },
    )
    result = _inline(tmp_path, 'import { triple } from "calc";\nconst r = triple(2);\n', "triple(2)")
    assert isinstance(result, Success)
    assert result.value.text == "6"


def test_package_exports_field_and_scoped_name(tmp_path: Path) -> None:
    _package(
        tmp_path,
        "@acme/util",
        {"lib/main.js": "", "lib/main.ts": "export function neg(n: number) { return -n; }\n"},
        {"exports": {".": {"import": "./lib/main.mjs", "require": "./lib/main.js"}}},
    )
    result = _inline(tmp_path, 'import { neg } from "@acme/util";\nconst r = neg(v);\n', "neg(v)")
    assert isinstance(result, Success)
    assert result.value.text == "-v"


def test_package_source_map_with_embedded_sources(tmp_path: Path) -> None:
    source_map = {
        "version": 3,
        "sources": ["../src/index.ts"],
        "sourcesContent": ["export function inc(n: number) { return n + 1; }\n"],
        "mappings": "",
    }
    _package(
        tmp_path,
        "mapped",
        {"dist/index.js": "//# sourceMappingURL=index.js.map\n", "dist/index.js.map": json.dumps(source_map)},
    )
    result = _inline(tmp_path, 'import { inc } from "mapped";\nconst r = inc(1);\n', "inc(1)")
    assert isinstance(result, Success)
    assert result.value.text == "2"


def test_package_inline_data_uri_source_map(tmp_path: Path) -> None:
    pkg = tmp_path / "node_modules" / "inline-map"
    _write(pkg / "src" / "index.ts", "export const twice = (s: string) => s + s;\n")
    source_map = {"version": 3, "sources": ["../src/index.ts"], "mappings": ""}
    payload = base64.b64encode(json.dumps(source_map).encode("utf-8")).decode("ascii")
    _package(
        tmp_path,
        "inline-map",
        {"dist/index.js": f"//# sourceMappingURL=data:application/json;base64,{payload}\n"},
    )
    result = _inline(tmp_path, 'import { twice } from "inline-map";\nconst r = twice("ab");\n', 'twice("ab")')
    assert isinstance(result, Success)
    assert result.value.text == '"abab"'


def test_package_function_brings_its_imports(tmp_path: Path) -> None:
    _package(
        tmp_path,
        "safe",
        {
            "dist/index.js": "",
            "dist/index.ts": 'import { clamp } from "mathlib";\nexport const safe = (n: number) => clamp(n, 0, 10);\n',
        },
    )
    result = _inline(tmp_path, 'import { safe } from "safe";\nconst r = safe(y);\n', "safe(y)")
    assert isinstance(result, Success)
    assert result.value == Replacement(
        text="clamp(y, 0, 10)",
        start=result.value.start,
        end=result.value.end,
        imports=['import { clamp } from "mathlib";\n'],
    )


def test_package_resolution_can_be_disabled(tmp_path: Path) -> None:
    _package(tmp_path, "calc", {"dist/index.js": "", "dist/index.ts": "export const id = (n: number) => n;\n"})
    main_src = 'import { id } from "calc";\nconst r = id(1);\n'
    result = _inline(tmp_path, main_src, "id(1)", InlineConfig(resolve_packages=False))
    assert isinstance(result, Failure)
    assert 'Could not resolve function declaration for "id".' == result.message


def test_namespace_import_is_not_resolved(tmp_path: Path) -> None:
    _write(tmp_path / "src" / "math.ts", "export const one = () => 1;\n")
    caller = parse_source(tmp_path / "src" / "main.ts", 'import * as math from "./math";\nmath;\n')
    assert caller is not None
    result = asyncio.run(resolve_definition("math", caller, tmp_path))
    assert isinstance(result, Failure)
    assert result.kind == FailureKind.UNRESOLVED


def test_specifier_helpers() -> None:
    assert split_specifier("@scope/pkg/sub/path") == ("@scope/pkg", "sub/path")
    assert split_specifier("pkg") == ("pkg", "")
    exports = {".": "./main.js", "./utils/*": {"require": "./cjs/utils/*.js"}}
    assert exports_target(exports, ".", ["require"]) == "./main.js"
    assert exports_target(exports, "./utils/fmt", ["require"]) == "./cjs/utils/fmt.js"
    assert exports_target(exports, "./missing", ["require"]) is None
    assert sibling_source(Path("dist/a.js")) == Path("dist/a.ts")
    assert sibling_source(Path("dist/a.d.ts")) is None
    assert sibling_source(Path("src/a.ts")) == Path("src/a.ts")
    candidates = relative_candidates("./m.js", Path("/w"), ["", ".ts"])
    assert Path("/w/m.ts") in candidates
